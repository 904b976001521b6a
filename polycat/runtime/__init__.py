"""Locale runtime: detection, preference storage, switching and title sync."""

from __future__ import annotations

from polycat.runtime.detector import EnvironmentLocaleReporter, LocaleDetector
from polycat.runtime.preferences import (
    JsonPreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
)
from polycat.runtime.runtime import LocaleRuntime, LocaleSwitchResult, StaticAuthStatus
from polycat.runtime.title import (
    DocumentSurface,
    MemoryDocumentSurface,
    NavigationContext,
    StaticNavigation,
    TitleSynchronizer,
)

__all__ = [
    "DocumentSurface",
    "EnvironmentLocaleReporter",
    "JsonPreferenceStore",
    "LocaleDetector",
    "LocaleRuntime",
    "LocaleSwitchResult",
    "MemoryDocumentSurface",
    "MemoryPreferenceStore",
    "NavigationContext",
    "PreferenceStore",
    "StaticAuthStatus",
    "StaticNavigation",
    "TitleSynchronizer",
]
