"""
MiniCloneSet operator.

A Kubernetes controller that keeps a set of identical pods at the declared
replica count and image, rolling or recreating them on image changes, plus
the conversion webhook for the resource's three served API versions.
"""
