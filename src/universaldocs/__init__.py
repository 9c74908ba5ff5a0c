"""Universal Docs: crawl documentation sites into a local, searchable index."""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "universal-docs"
_FALLBACK_VERSION = "0.0.0+unknown"


def _resolve_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        # Running from a source checkout that was never installed
        warnings.warn(
            f"Package metadata for {DISTRIBUTION_NAME!r} not found; reporting version {_FALLBACK_VERSION!r}.",
            RuntimeWarning,
            stacklevel=3,
        )
        return _FALLBACK_VERSION


__version__ = _resolve_version()

__all__ = ["DISTRIBUTION_NAME", "__version__"]
