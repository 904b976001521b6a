"""polycat - locale resolution and message catalogs for a multi-locale client."""

from __future__ import annotations

__version__ = "0.1.0"

from polycat.runtime.runtime import LocaleRuntime, LocaleSwitchResult

__all__ = ["LocaleRuntime", "LocaleSwitchResult", "__version__"]
