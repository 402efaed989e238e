"""Plugin-aware config validation."""

from __future__ import annotations

from pydantic import ValidationError

from triggercam.config.loader import ConfigError, ConfigErrorCode
from triggercam.models.config import Config
from triggercam.plugins.registry import PluginType, get_plugin_names, validate_plugin


def validate_plugin_names(config: Config) -> None:
    """Ensure classifier and storage backends are registered.

    Raises:
        ConfigError: If a backend name is unknown
    """
    errors: list[str] = []

    classifiers = get_plugin_names(PluginType.CLASSIFIER)
    if config.classifier.backend not in classifiers:
        errors.append(
            f"classifier.backend '{config.classifier.backend}' is not registered. "
            f"Available: {', '.join(classifiers) or '(none)'}"
        )

    storage = get_plugin_names(PluginType.STORAGE)
    if config.storage.backend not in storage:
        errors.append(
            f"storage.backend '{config.storage.backend}' is not registered. "
            f"Available: {', '.join(storage) or '(none)'}"
        )

    if errors:
        raise ConfigError(
            "Invalid plugin names:\n  " + "\n  ".join(errors),
            code=ConfigErrorCode.PLUGIN_NAMES_INVALID,
        )


def validate_plugin_configs(config: Config) -> None:
    """Validate the classifier's plugin-specific config section.

    Replaces `config.classifier.config` with the validated model.

    Raises:
        ConfigError: If the section does not match the plugin's config model
    """
    try:
        validated = validate_plugin(
            PluginType.CLASSIFIER, config.classifier.backend, config.classifier.config
        )
    except ValidationError as e:
        raise ConfigError(
            f"classifier.config invalid for backend '{config.classifier.backend}': {e}",
            code=ConfigErrorCode.PLUGIN_CONFIG_INVALID,
            cause=e,
        ) from e
    object.__setattr__(config.classifier, "config", validated)


def validate_config(config: Config) -> None:
    validate_plugin_names(config)
    validate_plugin_configs(config)
