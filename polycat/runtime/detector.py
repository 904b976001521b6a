"""Initial locale detection.

Order, first match wins: persisted preference, platform language tag,
configured default locale. Detection always yields a supported identifier.
"""

from __future__ import annotations

import locale
import os
from typing import TYPE_CHECKING, Callable, Union

from polycat.catalog.locales import coerce_locale, is_supported, match_platform_tag
from polycat.utils.logging_config import get_logger

if TYPE_CHECKING:
    from polycat.models import LocaleConfig
    from polycat.runtime.preferences import PreferenceStore

logger = get_logger(__name__)

LOCALE_ENV_VARS = ("LC_ALL", "LC_MESSAGES", "LANG")


class EnvironmentLocaleReporter:
    """Reports the platform language tag from the process environment."""

    def __init__(self, env_vars: tuple[str, ...] = LOCALE_ENV_VARS) -> None:
        self.env_vars = env_vars

    def current_locale_tag(self) -> str | None:
        for name in self.env_vars:
            value = os.environ.get(name, "").strip()
            if value and value.split(".", 1)[0] not in {"C", "POSIX"}:
                return value
        try:
            tag, _encoding = locale.getlocale()
        except ValueError:
            return None
        return tag or None


PlatformReporter = Union[EnvironmentLocaleReporter, Callable[[], Union[str, None]]]


class LocaleDetector:
    """Derives the locale to show at startup."""

    def __init__(
        self,
        preferences: PreferenceStore,
        config: LocaleConfig,
        platform: PlatformReporter | None = None,
    ) -> None:
        self.preferences = preferences
        self.config = config
        self.platform = platform if platform is not None else EnvironmentLocaleReporter()
        self.last_source: str | None = None

    def stored_preference(self) -> str | None:
        """Supported persisted preference, if any."""
        try:
            stored = self.preferences.get(self.config.preference_key)
        except Exception:
            logger.exception("Preference store read failed")
            return None
        if not stored:
            return None
        if not is_supported(stored):
            logger.info("Ignoring unsupported stored locale %r", stored)
            return None
        return stored

    def platform_locale(self) -> str | None:
        """Supported identifier matching the platform tag, if any."""
        try:
            if hasattr(self.platform, "current_locale_tag"):
                tag = self.platform.current_locale_tag()
            else:
                tag = self.platform()
        except Exception as e:
            logger.debug("Platform locale unavailable: %s", e)
            return None
        matched = match_platform_tag(tag)
        if tag and matched is None:
            logger.debug("Platform locale %r has no supported match", tag)
        return matched

    def resolve_initial_locale(self) -> str:
        """Return the locale to activate at startup."""
        stored = self.stored_preference()
        if stored is not None:
            self.last_source = "preference"
            return stored

        detected = self.platform_locale()
        if detected is not None:
            self.last_source = "platform"
            return detected

        self.last_source = "default"
        return coerce_locale(self.config.default_locale, self.config.fallback_locale)
