"""Supported locale identifiers and the tables derived from them."""

from __future__ import annotations

import re

# Loader iteration order follows this tuple
SUPPORTED_LOCALES: tuple[str, ...] = (
    "zh-CN",
    "en-US",
    "zh-TW",
    "ja-JP",
    "ko-KR",
    "ru-RU",
    "fa-IR",
)

FALLBACK_LOCALE = "en-US"

# Endonyms; these are never translated
LOCALE_NAMES: dict[str, str] = {
    "zh-CN": "简体中文",
    "en-US": "English",
    "zh-TW": "繁體中文",
    "ja-JP": "日本語",
    "ko-KR": "한국어",
    "ru-RU": "Русский",
    "fa-IR": "فارسی",
}

INDEX_RESOURCE = "index.json"

CATALOG_LOCATORS: dict[str, str] = {
    locale_id: f"{locale_id}.json" for locale_id in SUPPORTED_LOCALES
}

# Platform tags (lower-cased) that map onto a supported identifier as a whole
PLATFORM_EXACT: dict[str, str] = {
    "zh-cn": "zh-CN",
    "zh-tw": "zh-TW",
    "zh-hk": "zh-TW",
    "ja": "ja-JP",
    "ja-jp": "ja-JP",
    "ko": "ko-KR",
    "ko-kr": "ko-KR",
    "ru": "ru-RU",
    "ru-ru": "ru-RU",
    "fa": "fa-IR",
    "fa-ir": "fa-IR",
    "en": "en-US",
    "en-us": "en-US",
}

# Primary language subtag -> identifier, tried when no exact entry matches
PLATFORM_PREFIX: dict[str, str] = {
    "zh": "zh-CN",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "ru": "ru-RU",
    "fa": "fa-IR",
    "en": "en-US",
}

_TAG_SEPARATORS = re.compile(r"[_\s]+")


def is_supported(locale_id: str | None) -> bool:
    """Return True if ``locale_id`` is a member of the supported set."""
    return locale_id in SUPPORTED_LOCALES


def coerce_locale(locale_id: str | None, fallback: str = FALLBACK_LOCALE) -> str:
    """Return ``locale_id`` if supported, otherwise ``fallback``."""
    if is_supported(locale_id):
        return locale_id  # type: ignore[return-value]
    return fallback


def normalize_tag(tag: str | None) -> str | None:
    """Normalise a platform language tag.

    ``zh_CN.UTF-8`` becomes ``zh-cn``; ``de_DE@euro`` becomes ``de-de``.
    Returns None for empty tags and the POSIX ``C`` locales.
    """
    if not tag or not isinstance(tag, str):
        return None
    tag = tag.split(".", 1)[0].split("@", 1)[0].strip()
    tag = _TAG_SEPARATORS.sub("-", tag).lower()
    if not tag or tag in {"c", "posix"}:
        return None
    return tag


def match_platform_tag(tag: str | None) -> str | None:
    """Map a platform language tag onto a supported identifier.

    Exact table first, then the primary subtag. Returns None when neither
    matches so the caller can fall through to its own default.
    """
    normalized = normalize_tag(tag)
    if normalized is None:
        return None
    exact = PLATFORM_EXACT.get(normalized)
    if exact is not None:
        return exact
    primary = normalized.split("-", 1)[0]
    return PLATFORM_PREFIX.get(primary)


def locale_name(locale_id: str) -> str:
    """Get the display name for a locale."""
    return LOCALE_NAMES.get(locale_id, locale_id)
