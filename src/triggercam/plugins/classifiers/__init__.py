"""Classifier plugins."""

from __future__ import annotations

import logging
from typing import cast

from triggercam.interfaces import Classifier
from triggercam.models.config import ClassifierConfig
from triggercam.plugins.registry import PluginType, load_plugin

logger = logging.getLogger(__name__)


def load_classifier_plugin(config: ClassifierConfig) -> Classifier:
    """Load and instantiate the classifier named in config.

    Raises:
        ValueError: If the backend is unknown or its config is invalid.
    """
    classifier = load_plugin(PluginType.CLASSIFIER, config.backend, config.config)
    logger.debug("Loaded classifier plugin: %s", config.backend)
    return cast(Classifier, classifier)


__all__ = ["load_classifier_plugin"]
