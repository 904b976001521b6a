"""Branding injection into loaded catalogs."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any

from polycat.utils.logging_config import get_logger

if TYPE_CHECKING:
    from polycat.models import BrandingConfig

COMMON_NAMESPACE = "common"
PRODUCT_NAME_FIELD = "appName"
WELCOME_FIELD = "welcome"

logger = get_logger(__name__)


def inject_branding(
    catalogs: MutableMapping[str, Any], branding: BrandingConfig
) -> MutableMapping[str, Any]:
    """Write the deployment's product name into every catalog, in place.

    ``common.appName`` is set to the site name, and the placeholder product
    name inside ``common.welcome`` is replaced. Locales without a ``common``
    namespace are left alone. Applying this twice is the same as applying it
    once.

    Returns:
        The same ``catalogs`` mapping

    """
    site_name = branding.site_name
    placeholder = branding.placeholder

    for locale_id, catalog in catalogs.items():
        if not isinstance(catalog, MutableMapping):
            continue
        common = catalog.get(COMMON_NAMESPACE)
        if not isinstance(common, MutableMapping):
            continue

        common[PRODUCT_NAME_FIELD] = site_name

        welcome = common.get(WELCOME_FIELD)
        if isinstance(welcome, str) and placeholder in welcome:
            common[WELCOME_FIELD] = welcome.replace(placeholder, site_name)
            logger.debug("Branded welcome message for %s", locale_id)

    return catalogs
