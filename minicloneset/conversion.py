"""
Version conversion for MiniCloneSet.

Every non-hub version has one converter bound to its concrete model class;
all conversions go through the hub (v1). Handing a converter an object of
any other class raises ConversionError instead of silently mis-reading it.

    scheme = build_scheme()
    hub = scheme.to_hub(scheme.decode(raw))
    raw_alpha = scheme.encode(scheme.from_hub(hub, V1ALPHA1))
"""
import logging
from typing import Generic, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import CRD_KIND, DEFAULT_MAX_UNAVAILABLE
from .errors import ConversionError
from .models import (
    V1,
    V1ALPHA1,
    V1BETA1,
    Container,
    MiniCloneSet,
    MiniCloneSetSpec,
    MiniCloneSetSpecV1Alpha1,
    MiniCloneSetV1Alpha1,
    MiniCloneSetV1Beta1,
    UpdateStrategy,
    UpdateStrategyType,
)

logger = logging.getLogger("minicloneset.conversion")

T = TypeVar("T", bound=BaseModel)


def _expect(obj: BaseModel, model: Type[BaseModel]):
    if type(obj) is not model:
        raise ConversionError(
            f"expected {model.__name__}, got {type(obj).__name__}"
        )


def _strategy_name(value) -> str:
    if isinstance(value, UpdateStrategyType):
        return value.value
    return str(value)


def _default_max_unavailable(strategy: UpdateStrategy) -> UpdateStrategy:
    if strategy.maxUnavailable is None:
        strategy.maxUnavailable = DEFAULT_MAX_UNAVAILABLE
    return strategy


class Converter(Generic[T]):
    """Up/down conversion between one served version and the hub."""

    api_version: str
    model: Type[T]

    def to_hub(self, obj: T) -> MiniCloneSet:
        _expect(obj, self.model)
        return self.convert_up(obj)

    def from_hub(self, hub: MiniCloneSet) -> T:
        _expect(hub, MiniCloneSet)
        return self.convert_down(hub)

    def convert_up(self, obj: T) -> MiniCloneSet:
        raise NotImplementedError

    def convert_down(self, hub: MiniCloneSet) -> T:
        raise NotImplementedError


class HubConverter(Converter[MiniCloneSet]):
    api_version = V1
    model = MiniCloneSet

    def convert_up(self, obj: MiniCloneSet) -> MiniCloneSet:
        return obj.model_copy(deep=True)

    def convert_down(self, hub: MiniCloneSet) -> MiniCloneSet:
        return hub.model_copy(deep=True)


class V1Alpha1Converter(Converter[MiniCloneSetV1Alpha1]):
    """Flat v1alpha1 <-> hub. Down-conversion drops maxUnavailable."""

    api_version = V1ALPHA1
    model = MiniCloneSetV1Alpha1

    def convert_up(self, obj: MiniCloneSetV1Alpha1) -> MiniCloneSet:
        # The free string goes in as-is; admission validates the enum.
        strategy = UpdateStrategy.model_construct(
            type=obj.spec.updateStrategy, maxUnavailable=None
        )
        return MiniCloneSet(
            metadata=obj.metadata.model_copy(deep=True),
            spec=MiniCloneSetSpec(
                replicas=obj.spec.replicas,
                container=Container(image=obj.spec.image),
                updateStrategy=_default_max_unavailable(strategy),
            ),
            status=obj.status.model_copy(),
        )

    def convert_down(self, hub: MiniCloneSet) -> MiniCloneSetV1Alpha1:
        return MiniCloneSetV1Alpha1(
            metadata=hub.metadata.model_copy(deep=True),
            spec=MiniCloneSetSpecV1Alpha1(
                replicas=hub.spec.replicas,
                image=hub.spec.container.image,
                updateStrategy=_strategy_name(hub.spec.updateStrategy.type),
            ),
            status=hub.status.model_copy(),
        )


class V1Beta1Converter(Converter[MiniCloneSetV1Beta1]):
    api_version = V1BETA1
    model = MiniCloneSetV1Beta1

    def convert_up(self, obj: MiniCloneSetV1Beta1) -> MiniCloneSet:
        spec = obj.spec.model_copy(deep=True)
        _default_max_unavailable(spec.updateStrategy)
        return MiniCloneSet(
            metadata=obj.metadata.model_copy(deep=True),
            spec=spec,
            status=obj.status.model_copy(),
        )

    def convert_down(self, hub: MiniCloneSet) -> MiniCloneSetV1Beta1:
        return MiniCloneSetV1Beta1(
            metadata=hub.metadata.model_copy(deep=True),
            spec=hub.spec.model_copy(deep=True),
            status=hub.status.model_copy(),
        )


class Scheme:
    """Registry of served versions. Build once with build_scheme() and pass it around."""

    hub_version = V1

    def __init__(self):
        self._by_version: dict[str, Converter] = {}
        self._by_model: dict[type, Converter] = {}

    def register(self, converter: Converter):
        if converter.api_version in self._by_version:
            raise ValueError(f"version {converter.api_version} already registered")
        self._by_version[converter.api_version] = converter
        self._by_model[converter.model] = converter

    @property
    def versions(self) -> list[str]:
        return sorted(self._by_version)

    def converter_for(self, api_version: str) -> Converter:
        try:
            return self._by_version[api_version]
        except KeyError:
            raise ConversionError(f"unsupported apiVersion {api_version!r}") from None

    def decode(self, raw: dict) -> BaseModel:
        """Parse a wire object into the model of its declared apiVersion."""
        kind = raw.get("kind")
        if kind != CRD_KIND:
            raise ConversionError(f"unsupported kind {kind!r}")
        converter = self.converter_for(raw.get("apiVersion", ""))
        try:
            return converter.model.model_validate(raw)
        except ValidationError as e:
            raise ConversionError(f"invalid {converter.api_version} object: {e}") from e

    def encode(self, obj: BaseModel) -> dict:
        return obj.model_dump(mode="json", exclude_none=True)

    def to_hub(self, obj: BaseModel) -> MiniCloneSet:
        converter = self._by_model.get(type(obj))
        if converter is None:
            raise ConversionError(f"no converter registered for {type(obj).__name__}")
        return converter.to_hub(obj)

    def from_hub(self, hub: MiniCloneSet, api_version: str) -> BaseModel:
        return self.converter_for(api_version).from_hub(hub)

    def convert(self, raw: dict, desired_api_version: str) -> dict:
        """Convert one wire object to ``desired_api_version`` through the hub."""
        obj = self.decode(raw)
        converted = self.from_hub(self.to_hub(obj), desired_api_version)
        logger.debug(
            f"converted {obj.metadata.name} {obj.apiVersion} -> {desired_api_version}"
        )
        return self.encode(converted)


def build_scheme() -> Scheme:
    scheme = Scheme()
    scheme.register(HubConverter())
    scheme.register(V1Alpha1Converter())
    scheme.register(V1Beta1Converter())
    return scheme
