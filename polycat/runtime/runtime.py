"""Locale runtime: the active locale plus the installed catalogs.

The runtime is an explicitly constructed object handed to whatever needs
translations. It is the only writer of its state, which changes exclusively
through ``initialize``, ``switch_locale`` and ``reload_catalogs``. Each of
these clears every catalog, reloads all of them for the current
authentication state and installs the result wholesale.

Requests are serialized by a lock. Every request takes a ticket; when a
request finishes loading and a newer ticket has been issued in the
meantime, its results are dropped and the newer request installs instead.
A switch records its target the moment it is requested, so a later reload
keeps the user's choice even if the switch itself was superseded.

A load that fails, is cancelled or is superseded puts the previously
installed catalogs back before giving up the lock. A cancelled request no
longer counts as newer, so an older request still in flight can install.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Union

from polycat.catalog.branding import inject_branding
from polycat.catalog.catalog import MessageCatalog, empty_catalogs, lookup
from polycat.catalog.fetcher import build_fetcher
from polycat.catalog.loader import CatalogLoader
from polycat.catalog.locales import SUPPORTED_LOCALES, coerce_locale, is_supported
from polycat.models import RuntimePhase, SourceContext
from polycat.runtime.detector import LocaleDetector
from polycat.runtime.preferences import JsonPreferenceStore, PreferenceStore
from polycat.runtime.title import MemoryDocumentSurface, TitleSynchronizer
from polycat.utils.events import EventPriority, EventType, publish
from polycat.utils.logging_config import LoggingContext, get_logger
from polycat.utils.tasks import BackgroundTaskGroup

if TYPE_CHECKING:
    from polycat.catalog.fetcher import CatalogFetcher
    from polycat.models import Config
    from polycat.runtime.detector import PlatformReporter
    from polycat.runtime.title import DocumentSurface, NavigationContext
    from polycat.utils.events import EventBus


class StaticAuthStatus:
    """Authentication status provider backed by a settable flag."""

    def __init__(self, authenticated: bool = False) -> None:
        self.authenticated = authenticated

    def is_authenticated(self) -> bool:
        return self.authenticated


AuthStatusProvider = Union[StaticAuthStatus, Callable[[], bool], Any]


@dataclass
class LocaleSwitchResult:
    """Outcome of a switch, reload or initial load.

    A superseded request installs nothing, so its ``available_locales`` and
    ``substituted`` are always empty; the request that superseded it reports
    what was installed.
    """

    success: bool
    active_locale: str
    available_locales: list[str] = field(default_factory=list)
    substituted: list[str] = field(default_factory=list)
    superseded: bool = False


class LocaleRuntime:
    """Holds the active locale and installed catalogs."""

    def __init__(
        self,
        config: Config,
        loader: CatalogLoader,
        auth: AuthStatusProvider,
        preferences: PreferenceStore,
        detector: LocaleDetector | None = None,
        document: DocumentSurface | None = None,
        navigation: NavigationContext | None = None,
        event_bus: EventBus | None = None,
    ):
        """Initialize the runtime.

        Args:
            config: Application configuration
            loader: Catalog loader for both source contexts
            auth: Object with ``is_authenticated()``, or a zero-argument callable
            preferences: Durable store for the chosen locale
            detector: Initial-locale detector (built from ``preferences`` if omitted)
            document: Surface receiving title and language updates
            navigation: Active view exposing an optional ``title_key``
            event_bus: Optional diagnostics bus

        """
        self.config = config
        self.loader = loader
        self.auth = auth
        self.preferences = preferences
        self.detector = detector or LocaleDetector(preferences, config.locale)
        self.document = document if document is not None else MemoryDocumentSurface()
        self.event_bus = event_bus
        self.fallback_locale = coerce_locale(config.locale.fallback_locale)
        self.title_sync = TitleSynchronizer(
            self.translate, self.document, config.branding, navigation
        )
        self.logger = get_logger(__name__)

        self._catalogs: dict[str, MessageCatalog] = empty_catalogs()
        self._active_locale = self.fallback_locale
        self._desired_locale: str | None = None
        self._persist_desired = False
        self._phase = RuntimePhase.UNINITIALIZED
        self._lock = asyncio.Lock()
        self._ticket = 0
        self._pending: set[int] = set()
        self._title_tasks = BackgroundTaskGroup()
        self.stats = {"loads": 0, "superseded": 0}

    @classmethod
    def from_config(
        cls,
        config: Config,
        auth: AuthStatusProvider,
        *,
        fetcher: CatalogFetcher | None = None,
        preferences: PreferenceStore | None = None,
        platform: PlatformReporter | None = None,
        document: DocumentSurface | None = None,
        navigation: NavigationContext | None = None,
        event_bus: EventBus | None = None,
    ) -> LocaleRuntime:
        """Build a runtime and its collaborators from configuration."""
        fetcher = fetcher or build_fetcher(config.catalogs)
        preferences = preferences or JsonPreferenceStore(config.locale.preference_file)
        loader = CatalogLoader(fetcher, config.locale.fallback_locale, event_bus)
        detector = LocaleDetector(preferences, config.locale, platform)
        return cls(
            config,
            loader,
            auth,
            preferences,
            detector=detector,
            document=document,
            navigation=navigation,
            event_bus=event_bus,
        )

    # State

    @property
    def phase(self) -> RuntimePhase:
        return self._phase

    @property
    def active_locale(self) -> str:
        return self._active_locale

    @property
    def available_locales(self) -> list[str]:
        """Locales with a non-empty installed catalog, in supported-set order."""
        return [loc for loc in SUPPORTED_LOCALES if self._catalogs.get(loc)]

    @property
    def catalogs(self) -> dict[str, MessageCatalog]:
        """Snapshot of the non-empty installed catalogs."""
        return {loc: cat for loc, cat in self._catalogs.items() if cat}

    @property
    def navigation(self) -> NavigationContext | None:
        return self.title_sync.navigation

    @navigation.setter
    def navigation(self, value: NavigationContext | None) -> None:
        self.title_sync.navigation = value
        self.title_sync.sync_title()

    # Lookup

    def translate(self, key: str) -> str:
        """Translate ``key`` in the active locale.

        Falls back to the fallback locale's catalog, then to the key itself.
        """
        return self.translate_in(self._active_locale, key)

    def translate_in(self, locale_id: str, key: str) -> str:
        """Translate ``key`` in ``locale_id`` with the same fallback chain."""
        for candidate in (coerce_locale(locale_id, self.fallback_locale), self.fallback_locale):
            value = lookup(self._catalogs.get(candidate), key)
            if value is not None:
                return value
        return key

    # Operations

    async def initialize(self) -> LocaleSwitchResult:
        """Detect the initial locale and perform the first load."""
        try:
            target = self.detector.resolve_initial_locale()
        except Exception:
            self.logger.exception("Locale detection failed; using %s", self.fallback_locale)
            target = self.fallback_locale
        return await self._request(coerce_locale(target, self.fallback_locale), "initialize")

    async def switch_locale(self, target: str) -> LocaleSwitchResult:
        """Reload every catalog and activate ``target``.

        Unsupported targets are replaced by the fallback locale. The activated
        locale is persisted.
        """
        if not is_supported(target):
            self.logger.info(
                "Unsupported locale %r requested; using %s", target, self.fallback_locale
            )
            target = self.fallback_locale
        return await self._request(target, "switch")

    async def reload_catalogs(self) -> LocaleSwitchResult:
        """Reload every catalog, keeping the active locale.

        Called when authentication state changes without a language change.
        """
        return await self._request(None, "reload")

    async def wait_idle(self) -> None:
        """Wait for pending delayed title updates."""
        await self._title_tasks.wait()

    async def close(self) -> None:
        """Cancel pending title updates and release the fetcher."""
        await self._title_tasks.cancel_and_wait()
        try:
            await self.loader.fetcher.close()
        except Exception:
            self.logger.exception("Failed to close catalog fetcher")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    # Internals

    async def _request(self, target: str | None, operation: str) -> LocaleSwitchResult:
        self._ticket += 1
        ticket = self._ticket
        self._pending.add(ticket)
        prior_desired = (self._desired_locale, self._persist_desired)
        if target is not None:
            self._desired_locale = target
            self._persist_desired = operation == "switch"

        try:
            async with self._lock:
                try:
                    return await self._load_and_install(ticket, operation)
                except Exception:
                    self.logger.exception("Locale %s failed", operation)
                    self._phase = RuntimePhase.READY
                    return self._result(success=False)
        except asyncio.CancelledError:
            # Withdraw the target only if no newer request has replaced it
            if target is not None and ticket == max(self._pending):
                self._desired_locale, self._persist_desired = prior_desired
            self.logger.info("Locale %s cancelled", operation)
            raise
        finally:
            self._pending.discard(ticket)

    def _is_superseded(self, ticket: int) -> bool:
        return ticket != max(self._pending)

    async def _load_and_install(self, ticket: int, operation: str) -> LocaleSwitchResult:
        if self._is_superseded(ticket):
            return await self._supersede(operation, loaded=False)

        replaced = (self._phase, self._catalogs)
        self._phase = RuntimePhase.LOADING
        self._catalogs = empty_catalogs()
        try:
            context = SourceContext.from_flag(await self._read_auth_state())
            self.stats["loads"] += 1
            with LoggingContext(f"{operation} catalogs", self.logger, context=context.value):
                report = await self.loader.load_catalogs(context)
        except BaseException:
            self._phase, self._catalogs = replaced
            raise

        if self._is_superseded(ticket):
            self._phase, self._catalogs = replaced
            return await self._supersede(operation, loaded=True)

        inject_branding(report.catalogs, self.config.branding)
        for locale_id, catalog in report.catalogs.items():
            if catalog:
                self._catalogs[locale_id] = catalog

        previous = self._active_locale
        active = coerce_locale(self._desired_locale or previous, self.fallback_locale)
        self._active_locale = active
        self._phase = RuntimePhase.READY
        self._set_document_language(active)
        if self._persist_desired:
            await self._persist(active)
            self._persist_desired = False

        self.logger.info(
            "Locale %s complete: active=%s context=%s available=%s",
            operation,
            active,
            context.value,
            ",".join(report.available_locales),
        )
        if previous != active or operation == "initialize":
            await publish(
                self.event_bus,
                EventType.LOCALE_CHANGED,
                "locale_runtime",
                EventPriority.HIGH,
                previous=previous,
                locale=active,
                operation=operation,
            )
        await publish(
            self.event_bus,
            EventType.CATALOGS_RELOADED,
            "locale_runtime",
            context=context.value,
            operation=operation,
            available=report.available_locales,
            substituted=sorted(report.substituted),
            missing=list(report.missing),
        )

        await self._sync_title()
        if operation != "initialize":
            self._title_tasks.create(self._resync_title_after_render())

        return self._result(success=True, substituted=sorted(report.substituted))

    async def _supersede(self, operation: str, loaded: bool) -> LocaleSwitchResult:
        self.stats["superseded"] += 1
        self.logger.info(
            "Locale %s superseded by a newer request%s",
            operation,
            "; discarding loaded catalogs" if loaded else "",
        )
        await publish(
            self.event_bus,
            EventType.LOAD_SUPERSEDED,
            "locale_runtime",
            EventPriority.LOW,
            operation=operation,
            loaded=loaded,
        )
        return LocaleSwitchResult(
            success=False, active_locale=self._active_locale, superseded=True
        )

    def _result(
        self,
        success: bool,
        substituted: list[str] | None = None,
    ) -> LocaleSwitchResult:
        return LocaleSwitchResult(
            success=success,
            active_locale=self._active_locale,
            available_locales=self.available_locales,
            substituted=substituted or [],
        )

    async def _read_auth_state(self) -> bool:
        check = getattr(self.auth, "is_authenticated", self.auth)
        try:
            return bool(check())
        except Exception as e:
            self.logger.warning(
                "Authentication status unavailable (%s); loading unauthenticated catalogs", e
            )
            await publish(
                self.event_bus,
                EventType.AUTH_STATUS_FAILED,
                "locale_runtime",
                error=str(e),
            )
            return False

    async def _persist(self, locale_id: str) -> None:
        key = self.config.locale.preference_key
        try:
            self.preferences.set(key, locale_id)
        except Exception as e:
            self.logger.warning("Failed to persist locale %s: %s", locale_id, e)
            await publish(
                self.event_bus,
                EventType.PREFERENCE_WRITE_FAILED,
                "locale_runtime",
                locale=locale_id,
                error=str(e),
            )

    def _set_document_language(self, locale_id: str) -> None:
        try:
            self.document.set_language(locale_id)
        except Exception:
            self.logger.exception("Document surface rejected language %s", locale_id)

    async def _resync_title_after_render(self) -> None:
        """Second title sync, once the surface has re-rendered.

        Surfaces exposing ``wait_rendered()`` are awaited; otherwise the
        configured delay stands in for the render.
        """
        wait_rendered = getattr(self.document, "wait_rendered", None)
        try:
            if wait_rendered is not None:
                await wait_rendered()
            else:
                await asyncio.sleep(self.config.locale.title_resync_delay)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.debug("Render wait failed: %s", e)
        await self._sync_title()

    async def _sync_title(self) -> None:
        title = self.title_sync.sync_title()
        if title is not None:
            await publish(
                self.event_bus,
                EventType.TITLE_UPDATED,
                "locale_runtime",
                EventPriority.LOW,
                title=title,
            )
