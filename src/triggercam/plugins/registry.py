"""Name-to-class registry for classifier and storage plugins.

A plugin is a class with a pydantic `config_cls` and a `create(config)`
classmethod. Decorating it with `@plugin(...)` makes it loadable by the
name used in the YAML config.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PluginType(str, Enum):
    CLASSIFIER = "classifier"
    STORAGE = "storage"


ConfigT = TypeVar("ConfigT", bound=BaseModel)
ProductT = TypeVar("ProductT", covariant=True)


class PluginProtocol(Protocol[ConfigT, ProductT]):
    config_cls: type[ConfigT]

    @classmethod
    def create(cls, config: ConfigT) -> ProductT: ...


PluginSettings = dict[str, Any] | BaseModel


class PluginRegistry(Generic[ConfigT, ProductT]):
    """Plugins of one type, keyed by name."""

    def __init__(self, plugin_type: PluginType) -> None:
        self.plugin_type = plugin_type
        self._classes: dict[str, type[PluginProtocol[ConfigT, ProductT]]] = {}

    def register(self, name: str, plugin_cls: type[PluginProtocol[ConfigT, ProductT]]) -> None:
        existing = self._classes.get(name)
        if existing is not None:
            raise ValueError(
                f"{self.plugin_type.value} plugin {name!r} is already provided by "
                f"{existing.__module__}.{existing.__qualname__}"
            )
        self._classes[name] = plugin_cls
        logger.debug("%s plugin %r -> %s", self.plugin_type.value, name, plugin_cls.__qualname__)

    def validate(self, name: str, settings: PluginSettings) -> ConfigT:
        """Coerce `settings` into the plugin's config model.

        Raises:
            ValueError: If no plugin is registered under `name`.
            ValidationError: If the settings do not fit the plugin's model.
        """
        config_cls = self._lookup(name).config_cls
        if isinstance(settings, config_cls):
            return settings
        if isinstance(settings, BaseModel):
            settings = settings.model_dump()
        return config_cls.model_validate(settings)

    def load(self, name: str, settings: PluginSettings) -> ProductT:
        """Validate `settings` and build the plugin."""
        config = self.validate(name, settings)
        return self._lookup(name).create(config)

    def names(self) -> list[str]:
        return sorted(self._classes)

    def _lookup(self, name: str) -> type[PluginProtocol[ConfigT, ProductT]]:
        try:
            return self._classes[name]
        except KeyError:
            raise ValueError(
                f"No {self.plugin_type.value} plugin named {name!r}; "
                f"installed: {', '.join(self.names()) or 'none'}"
            ) from None


_REGISTRIES: dict[PluginType, PluginRegistry[Any, Any]] = {
    kind: PluginRegistry(kind) for kind in PluginType
}


def plugin(plugin_type: PluginType, name: str) -> Callable[[type], type]:
    """Register the decorated class as the `name` plugin of `plugin_type`."""

    def register(cls: type) -> type:
        for attribute in ("config_cls", "create"):
            if not hasattr(cls, attribute):
                raise TypeError(f"{cls.__qualname__} cannot be a plugin without {attribute!r}")
        _REGISTRIES[plugin_type].register(name, cls)
        return cls

    return register


def load_plugin(plugin_type: PluginType, name: str, settings: PluginSettings) -> Any:
    return _REGISTRIES[plugin_type].load(name, settings)


def validate_plugin(plugin_type: PluginType, name: str, settings: PluginSettings) -> BaseModel:
    return _REGISTRIES[plugin_type].validate(name, settings)


def get_plugin_names(plugin_type: PluginType) -> list[str]:
    return _REGISTRIES[plugin_type].names()
