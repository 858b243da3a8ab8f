"""
Pydantic models for the three served versions of the MiniCloneSet resource.

v1 is the hub (and storage) version. v1beta1 shares its nested layout,
v1alpha1 is the original flat layout with a free-string update strategy.
Field names follow the wire (camelCase) so objects round-trip unchanged.
"""
from enum import Enum
from typing import Dict, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import CRD_GROUP, CRD_KIND, DEFAULT_MAX_UNAVAILABLE

V1ALPHA1 = f"{CRD_GROUP}/v1alpha1"
V1BETA1 = f"{CRD_GROUP}/v1beta1"
V1 = f"{CRD_GROUP}/v1"


class ResourceIdentity(NamedTuple):
    """Namespace + name of one MiniCloneSet."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class UpdateStrategyType(str, Enum):
    ROLLING_UPDATE = "RollingUpdate"
    RECREATE = "Recreate"


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata; unknown keys are preserved."""
    model_config = ConfigDict(extra="allow")

    name: str
    namespace: str = "default"
    uid: Optional[str] = None
    resourceVersion: Optional[str] = None
    generation: Optional[int] = None
    labels: Dict[str, str] = Field(default_factory=dict)


class MiniCloneSetStatus(BaseModel):
    availableReplicas: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# v1alpha1: flat layout
# ---------------------------------------------------------------------------

class MiniCloneSetSpecV1Alpha1(BaseModel):
    replicas: int = Field(default=1, ge=0)
    image: str = Field(..., min_length=1)
    updateStrategy: str = UpdateStrategyType.ROLLING_UPDATE.value


class MiniCloneSetV1Alpha1(BaseModel):
    apiVersion: str = V1ALPHA1
    kind: str = CRD_KIND
    metadata: ObjectMeta
    spec: MiniCloneSetSpecV1Alpha1
    status: MiniCloneSetStatus = Field(default_factory=MiniCloneSetStatus)


# ---------------------------------------------------------------------------
# Nested layout shared by v1beta1 and v1
# ---------------------------------------------------------------------------

class Container(BaseModel):
    image: str = Field(..., min_length=1)


class UpdateStrategy(BaseModel):
    # Unknown strings are kept as-is; the enum is enforced by the CRD schema.
    type: Union[UpdateStrategyType, str] = Field(
        default=UpdateStrategyType.ROLLING_UPDATE,
        union_mode="left_to_right",
    )
    maxUnavailable: Optional[str] = Field(
        default=DEFAULT_MAX_UNAVAILABLE,
        description="Absolute count or percentage, e.g. '1' or '25%'",
    )


class MiniCloneSetSpec(BaseModel):
    """Desired state (hub layout)."""
    replicas: int = Field(default=1, ge=0)
    container: Container
    updateStrategy: UpdateStrategy = Field(default_factory=UpdateStrategy)


class MiniCloneSetV1Beta1(BaseModel):
    apiVersion: str = V1BETA1
    kind: str = CRD_KIND
    metadata: ObjectMeta
    spec: MiniCloneSetSpec
    status: MiniCloneSetStatus = Field(default_factory=MiniCloneSetStatus)


class MiniCloneSet(BaseModel):
    """Hub version. The reconciler only ever sees this representation."""
    apiVersion: str = V1
    kind: str = CRD_KIND
    metadata: ObjectMeta
    spec: MiniCloneSetSpec
    status: MiniCloneSetStatus = Field(default_factory=MiniCloneSetStatus)

    @property
    def identity(self) -> ResourceIdentity:
        return ResourceIdentity(self.metadata.namespace, self.metadata.name)


# ---------------------------------------------------------------------------
# ConversionReview (apiextensions.k8s.io/v1)
# ---------------------------------------------------------------------------

class ConversionRequest(BaseModel):
    uid: str
    desiredAPIVersion: str
    objects: list[dict] = Field(default_factory=list)


class ConversionResult(BaseModel):
    status: str = "Success"
    message: str = ""


class ConversionResponse(BaseModel):
    uid: str
    convertedObjects: list[dict] = Field(default_factory=list)
    result: ConversionResult = Field(default_factory=ConversionResult)


class ConversionReview(BaseModel):
    apiVersion: str = "apiextensions.k8s.io/v1"
    kind: str = "ConversionReview"
    request: Optional[ConversionRequest] = None
    response: Optional[ConversionResponse] = None
