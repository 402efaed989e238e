"""Plugin discovery for classifiers and storage backends.

Built-in plugins live in the `classifiers` and `storage` subpackages and
register on import. Third-party packages expose theirs through the
`triggercam.plugins` entry point group.
"""

import importlib
import logging
import pkgutil
from collections.abc import Iterable
from importlib import metadata

logger = logging.getLogger(__name__)

_BUILTIN_PACKAGES = ("triggercam.plugins.classifiers", "triggercam.plugins.storage")
_ENTRY_POINT_GROUP = "triggercam.plugins"


def iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=group)


def _import_logged(module_name: str, origin: str) -> bool:
    # A broken plugin (often a missing optional dependency such as torch)
    # must not take the other plugins down with it.
    try:
        importlib.import_module(module_name)
    except Exception as exc:
        logger.error("Skipping %s plugin module %s: %s", origin, module_name, exc, exc_info=True)
        return False
    return True


def _builtin_modules() -> Iterable[str]:
    for package_name in _BUILTIN_PACKAGES:
        package = importlib.import_module(package_name)
        for info in pkgutil.iter_modules(package.__path__):
            if not info.name.startswith("_"):
                yield f"{package_name}.{info.name}"


def discover_all_plugins() -> None:
    """Import every built-in and installed plugin module so each registers itself.

    Safe to call repeatedly; modules that are already imported are not re-run.
    """
    loaded = sum(_import_logged(name, "built-in") for name in _builtin_modules())
    for point in iter_entry_points(_ENTRY_POINT_GROUP):
        loaded += _import_logged(point.module, f"external ({point.name})")
    logger.debug("Plugin discovery imported %d module(s)", loaded)
