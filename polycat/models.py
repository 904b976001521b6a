"""Pydantic models for polycat.

Provides validated configuration models and shared enums.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from polycat.catalog.locales import FALLBACK_LOCALE, SUPPORTED_LOCALES


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SourceContext(str, Enum):
    """Which of the two disjoint catalog origins is consulted."""

    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"

    @classmethod
    def from_flag(cls, authenticated: bool) -> SourceContext:
        """Map an authentication flag onto a source context."""
        return cls.AUTHENTICATED if authenticated else cls.UNAUTHENTICATED


class CatalogSourceKind(str, Enum):
    """Catalog fetcher implementations."""

    FILE = "file"
    HTTP = "http"


class RuntimePhase(str, Enum):
    """Locale runtime lifecycle phases."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class LocaleConfig(BaseModel):
    """Locale selection configuration."""

    default_locale: str = Field(
        default=FALLBACK_LOCALE,
        description="Locale used when neither preference nor platform yields one",
    )
    fallback_locale: str = Field(
        default=FALLBACK_LOCALE,
        description="Locale substituted for missing catalogs and unsupported requests",
    )
    preference_key: str = Field(
        default="language",
        min_length=1,
        description="Key under which the chosen locale is persisted",
    )
    preference_file: str | None = Field(
        default=None,
        description="Preference store path (default ~/.config/polycat/preferences.json)",
    )
    title_resync_delay: float = Field(
        default=0.3,
        ge=0.0,
        le=10.0,
        description="Delay in seconds before the second title sync when no render hook exists",
    )

    @field_validator("default_locale", "fallback_locale")
    @classmethod
    def validate_supported(cls, v: str) -> str:
        """Validate that the locale is a supported identifier."""
        if v not in SUPPORTED_LOCALES:
            msg = f"Unsupported locale '{v}', expected one of {', '.join(SUPPORTED_LOCALES)}"
            raise ValueError(msg)
        return v


class BrandingConfig(BaseModel):
    """Deployment branding injected into every catalog."""

    site_name: str = Field(
        default="EZ THEME USER",
        min_length=1,
        description="Product display name",
    )
    placeholder: str = Field(
        default="V2Board Admin",
        min_length=1,
        description="Placeholder product name replaced in welcome messages",
    )


class CatalogSourceConfig(BaseModel):
    """Where catalogs are fetched from."""

    kind: CatalogSourceKind = Field(
        default=CatalogSourceKind.FILE,
        description="Fetcher implementation",
    )
    authenticated_root: str = Field(
        default="locales",
        description="Main catalog root: authenticated index and every per-locale catalog",
    )
    unauthenticated_root: str = Field(
        default="locales/auth",
        description="Directory or base URL holding the unauthenticated index",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Per-request timeout in seconds (http only)",
    )

    @model_validator(mode="after")
    def validate_roots(self):
        """Both contexts must resolve to distinct origins."""
        if self.authenticated_root.rstrip("/") == self.unauthenticated_root.rstrip("/"):
            msg = "authenticated_root and unauthenticated_root must differ"
            raise ValueError(msg)
        if self.kind == CatalogSourceKind.HTTP:
            for root in (self.authenticated_root, self.unauthenticated_root):
                if not root.startswith(("http://", "https://")):
                    msg = f"HTTP catalog root must be an http(s) URL: {root}"
                    raise ValueError(msg)
        return self


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Write the log file as JSON lines",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    locale: LocaleConfig = Field(
        default_factory=LocaleConfig,
        description="Locale selection configuration",
    )
    branding: BrandingConfig = Field(
        default_factory=BrandingConfig,
        description="Branding configuration",
    )
    catalogs: CatalogSourceConfig = Field(
        default_factory=CatalogSourceConfig,
        description="Catalog source configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    model_config = {"use_enum_values": True}
