"""gzconform: differential conformance harness for gzip-compatible tools."""
from __future__ import annotations

import importlib
import logging
import os
from typing import Iterable, List, Optional

from .version import __version__

__all__ = [
    "PLUGIN_ENV",
    "__version__",
    "bootstrap",
]

PLUGIN_ENV = "GZCONFORM_PLUGINS"

logger = logging.getLogger(__name__)

_loaded: List[str] = []


def bootstrap(plugins: Optional[Iterable[str]] = None) -> List[str]:
    """Import plugin modules and call their ``register()`` hook.

    ``plugins`` defaults to the comma-separated ``GZCONFORM_PLUGINS`` value.
    Each module is registered at most once per process; the names loaded so
    far are returned.
    """

    names = plugins if plugins is not None else _plugin_names(os.environ.get(PLUGIN_ENV, ""))
    for name in names:
        if name in _loaded:
            continue
        module = importlib.import_module(name)
        hook = getattr(module, "register", None)
        if callable(hook):
            hook()
        _loaded.append(name)
        logger.debug("plugin %s registered", name)
    return list(_loaded)


def _plugin_names(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
