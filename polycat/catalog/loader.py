"""Two-phase catalog loading.

Phase A fetches one aggregate index for the source context and adopts every
supported locale found in it. Phase B fetches each remaining locale's own
resource; when that fails, the fallback locale's own resource is installed
under the missing identifier instead. Loading never raises: a locale whose
sources are all unreachable is simply absent from the result.

Only the index differs between source contexts. Per-locale resources are
always read from the main catalog root, which is the authenticated one.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from polycat.catalog.catalog import MessageCatalog, count_messages, validate_catalog
from polycat.catalog.locales import (
    CATALOG_LOCATORS,
    FALLBACK_LOCALE,
    INDEX_RESOURCE,
    SUPPORTED_LOCALES,
    coerce_locale,
)
from polycat.models import SourceContext
from polycat.utils.events import EventPriority, EventType, publish
from polycat.utils.exceptions import CatalogError, CatalogFormatError
from polycat.utils.logging_config import get_logger, log_exception

if TYPE_CHECKING:
    from polycat.catalog.fetcher import CatalogFetcher
    from polycat.utils.events import EventBus

SOURCE_INDEX = "index"
SOURCE_DEDICATED = "dedicated"
SOURCE_SUBSTITUTED = "substituted"

# Root holding every locale's own resource, whatever the source context
DEDICATED_CONTEXT = SourceContext.AUTHENTICATED


@dataclass
class CatalogLoadReport:
    """Outcome of one load."""

    context: SourceContext
    catalogs: dict[str, MessageCatalog] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)
    substituted: set[str] = field(default_factory=set)
    missing: list[str] = field(default_factory=list)
    index_available: bool = False

    @property
    def available_locales(self) -> list[str]:
        """Populated locales, in supported-set order."""
        return [loc for loc in SUPPORTED_LOCALES if loc in self.catalogs]

    @property
    def message_counts(self) -> dict[str, int]:
        return {loc: count_messages(cat) for loc, cat in self.catalogs.items()}


class CatalogLoader:
    """Loads every supported locale's catalog for a source context."""

    def __init__(
        self,
        fetcher: CatalogFetcher,
        fallback_locale: str = FALLBACK_LOCALE,
        event_bus: EventBus | None = None,
    ):
        """Initialize the loader.

        Args:
            fetcher: Resource fetcher for both source contexts
            fallback_locale: Locale substituted for locales that fail to load
            event_bus: Optional diagnostics bus

        """
        self.fetcher = fetcher
        self.fallback_locale = coerce_locale(fallback_locale)
        self.event_bus = event_bus
        self.logger = get_logger(__name__)
        self.stats = {
            "loads": 0,
            "index_failures": 0,
            "fetch_failures": 0,
            "substitutions": 0,
        }

    async def load_catalogs(self, context: SourceContext | bool) -> CatalogLoadReport:
        """Load catalogs for every supported locale.

        Args:
            context: Source context, or an authentication flag

        Returns:
            Report holding the catalogs that could be obtained

        """
        if isinstance(context, bool):
            context = SourceContext.from_flag(context)
        context = SourceContext(context)
        report = CatalogLoadReport(context=context)
        self.stats["loads"] += 1

        await self._load_index(report)

        # Fallback locale's own resource, shared by every substitution in this load
        fallback_cache: dict[str, MessageCatalog | None] = {}

        for locale_id in SUPPORTED_LOCALES:
            if locale_id in report.catalogs:
                continue
            if locale_id == self.fallback_locale:
                catalog = await self._fallback_catalog(context, fallback_cache)
            else:
                catalog = await self._fetch_dedicated(context, locale_id)
            if catalog is not None:
                report.catalogs[locale_id] = catalog
                report.sources[locale_id] = SOURCE_DEDICATED
                continue

            if locale_id == self.fallback_locale:
                report.missing.append(locale_id)
                continue

            substitute = await self._fallback_catalog(context, fallback_cache)
            if substitute is None:
                self.logger.error(
                    "No catalog available for %s (%s); fallback %s also unavailable",
                    locale_id,
                    context.value,
                    self.fallback_locale,
                )
                report.missing.append(locale_id)
                continue

            report.catalogs[locale_id] = copy.deepcopy(substitute)
            report.sources[locale_id] = SOURCE_SUBSTITUTED
            report.substituted.add(locale_id)
            self.stats["substitutions"] += 1
            self.logger.warning(
                "Catalog %s unavailable (%s); serving %s catalog in its place",
                locale_id,
                context.value,
                self.fallback_locale,
            )
            await publish(
                self.event_bus,
                EventType.CATALOG_SUBSTITUTED,
                "catalog_loader",
                locale=locale_id,
                substitute=self.fallback_locale,
                context=context.value,
            )

        self.logger.debug(
            "Loaded %d/%d catalogs for %s context (index=%s, substituted=%s, missing=%s)",
            len(report.catalogs),
            len(SUPPORTED_LOCALES),
            context.value,
            report.index_available,
            sorted(report.substituted),
            report.missing,
        )
        return report

    async def _load_index(self, report: CatalogLoadReport) -> None:
        """Phase A: adopt every supported locale present in the aggregate index."""
        context = report.context
        try:
            index = await self.fetcher.fetch(context, INDEX_RESOURCE)
            if not isinstance(index, Mapping):
                raise CatalogFormatError(
                    "Catalog index is not a mapping",
                    {"type": type(index).__name__},
                )
        except Exception as e:
            self.stats["index_failures"] += 1
            self.logger.info(
                "Catalog index unavailable for %s context: %s", context.value, e
            )
            await publish(
                self.event_bus,
                EventType.CATALOG_INDEX_UNAVAILABLE,
                "catalog_loader",
                EventPriority.LOW,
                context=context.value,
                error=str(e),
            )
            return

        report.index_available = True
        for locale_id in SUPPORTED_LOCALES:
            entry = index.get(locale_id)
            if isinstance(entry, Mapping) and entry:
                report.catalogs[locale_id] = copy.deepcopy(dict(entry))
                report.sources[locale_id] = SOURCE_INDEX
            elif entry is not None:
                self.logger.debug(
                    "Ignoring unusable index entry for %s (%s)",
                    locale_id,
                    type(entry).__name__,
                )

        ignored = [key for key in index if key not in CATALOG_LOCATORS]
        if ignored:
            self.logger.debug("Ignoring unsupported index entries: %s", ignored)

    async def _fetch_dedicated(
        self, context: SourceContext, locale_id: str
    ) -> MessageCatalog | None:
        """Phase B: fetch one locale's own resource, or None on any failure.

        ``context`` is the source context of the load and only tags
        diagnostics; the resource itself comes from the main root.
        """
        resource = CATALOG_LOCATORS[locale_id]
        try:
            payload = await self.fetcher.fetch(DEDICATED_CONTEXT, resource)
            return validate_catalog(payload, resource)
        except CatalogError as e:
            await self._record_failure(context, locale_id, e)
        except Exception as e:
            log_exception(self.logger, e, f"Unexpected error fetching {resource}")
            await self._record_failure(context, locale_id, e)
        return None

    async def _fallback_catalog(
        self,
        context: SourceContext,
        cache: dict[str, Any],
    ) -> MessageCatalog | None:
        """The fallback locale's own resource, fetched at most once per load.

        An index entry for the fallback locale is not used as a substitute.
        """
        if self.fallback_locale not in cache:
            cache[self.fallback_locale] = await self._fetch_dedicated(
                context, self.fallback_locale
            )
        return cache[self.fallback_locale]

    async def _record_failure(
        self, context: SourceContext, locale_id: str, error: BaseException
    ) -> None:
        self.stats["fetch_failures"] += 1
        self.logger.warning(
            "Failed to load %s catalog (%s): %s", locale_id, context.value, error
        )
        await publish(
            self.event_bus,
            EventType.CATALOG_FETCH_FAILED,
            "catalog_loader",
            locale=locale_id,
            context=context.value,
            error=str(error),
        )
