"""Document title synchronization."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from polycat.utils.logging_config import get_logger

if TYPE_CHECKING:
    from polycat.models import BrandingConfig

logger = get_logger(__name__)


@runtime_checkable
class NavigationContext(Protocol):
    """The currently displayed view."""

    title_key: str | None


@runtime_checkable
class DocumentSurface(Protocol):
    """Where the active title and language are reflected."""

    def set_title(self, title: str) -> None: ...

    def set_language(self, language: str) -> None: ...


@dataclass
class StaticNavigation:
    """Navigation context holding a single, settable title key."""

    title_key: str | None = None


@dataclass
class MemoryDocumentSurface:
    """Document surface that records what was written to it."""

    title: str | None = None
    language: str | None = None
    title_history: list[str] = field(default_factory=list)

    def set_title(self, title: str) -> None:
        self.title = title
        self.title_history.append(title)

    def set_language(self, language: str) -> None:
        self.language = language


class TitleSynchronizer:
    """Derives the document title from the active view and the branding name."""

    def __init__(
        self,
        translate: Callable[[str], str],
        document: DocumentSurface,
        branding: BrandingConfig,
        navigation: NavigationContext | None = None,
    ) -> None:
        self.translate = translate
        self.document = document
        self.branding = branding
        self.navigation = navigation

    def compose_title(self) -> str:
        """Title for the current view; the site name alone when it has no title key."""
        site_name = self.branding.site_name
        title_key = getattr(self.navigation, "title_key", None)
        if not title_key:
            return site_name
        try:
            return f"{self.translate(title_key)} - {site_name}"
        except Exception as e:
            logger.debug("Title translation failed for %r: %s", title_key, e)
            return site_name

    def sync_title(self) -> str | None:
        """Write the composed title to the document. Never raises.

        Returns:
            The title written, or None when nothing was written

        """
        if self.navigation is None:
            return None
        try:
            title = self.compose_title()
        except Exception as e:
            logger.debug("Title composition failed: %s", e)
            title = self.branding.site_name
        try:
            self.document.set_title(title)
        except Exception:
            logger.exception("Document surface rejected title %r", title)
            return None
        return title
