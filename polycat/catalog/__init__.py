"""Message catalogs: supported locales, fetching, loading and branding.

Submodules are imported directly (``polycat.catalog.loader`` etc.);
``polycat.models`` depends on ``polycat.catalog.locales``, so this package
must stay import-free.
"""
