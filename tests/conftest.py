import pytest

from minicloneset.context import PassContext
from minicloneset.conversion import build_scheme
from minicloneset.models import ResourceIdentity


@pytest.fixture
def scheme():
    return build_scheme()


@pytest.fixture
def ctx():
    return PassContext(timeout=30)


@pytest.fixture
def identity():
    return ResourceIdentity("default", "web")
