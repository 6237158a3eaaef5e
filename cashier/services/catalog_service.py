"""Catalog Service - Reads of the backend's product catalog."""

import logging
from typing import Any, Dict, List, Optional

from flask import current_app

from cashier.models import CatalogEntry, merge_catalog_rows
from cashier.services.cache_service import CacheService
from cashier.services.pos_api_client import PosApiClient

logger = logging.getLogger(__name__)

CATALOG_MODULE = 'catalog'


def fetch_catalog(
    client: PosApiClient,
    category_id: Optional[int] = None,
    cache: Optional[CacheService] = None
) -> List[CatalogEntry]:
    """
    Catalog for browsing, optionally for one category.

    Goes through the read cache when one is given. Submission-time
    re-checks must call ``fetch_fresh_catalog`` instead.
    """
    key = 'all' if category_id is None else f'category:{int(category_id)}'
    loader = lambda: client.get_products(category_id) or []

    if cache is None:
        rows = loader()
    else:
        ttl = current_app.config.get('CACHE_CATALOG_TTL', 30)
        rows = cache.memoize(CATALOG_MODULE, key, loader, ttl)
    return merge_catalog_rows(rows)


def fetch_fresh_catalog(client: PosApiClient) -> Dict[int, CatalogEntry]:
    """Point-in-time read of every product, bypassing any cache."""
    entries = merge_catalog_rows(client.get_all_products() or [])
    return {entry.id: entry for entry in entries}


def fetch_categories(client: PosApiClient, cache: Optional[CacheService] = None) -> List[Dict[str, Any]]:
    if cache is None:
        return client.get_categories() or []
    ttl = current_app.config.get('CACHE_CATEGORIES_TTL', 300)
    return cache.memoize(CATALOG_MODULE, 'categories', lambda: client.get_categories() or [], ttl)


def invalidate_catalog(cache: Optional[CacheService]) -> None:
    """Drop cached catalog reads after the backend changed stock."""
    if cache is None:
        return
    cache.invalidate_module(CATALOG_MODULE)
