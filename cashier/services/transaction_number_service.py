"""Transaction numbers for new drafts."""

import logging
import time
from typing import Optional, Tuple

from cashier.exceptions import UpstreamError
from cashier.services.pos_api_client import PosApiClient

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_PREFIX = 'LOCAL'


def local_placeholder(prefix: str = DEFAULT_LOCAL_PREFIX, now: Optional[float] = None) -> str:
    """Placeholder number, visibly not server-issued: PREFIX-<epoch millis>."""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{prefix}-{millis}"


def issue_transaction_number(client: PosApiClient, local_prefix: str = DEFAULT_LOCAL_PREFIX) -> Tuple[str, bool]:
    """
    Reserve the next transaction number.

    Returns:
        (number, is_local) where ``is_local`` is True when the issuer
        failed and a placeholder was generated instead.
    """
    try:
        return client.get_next_transaction_number(), False
    except UpstreamError as e:
        placeholder = local_placeholder(local_prefix)
        logger.warning(f"[CHECKOUT] Failed to fetch order number ({e.message}), using local fallback {placeholder}")
        return placeholder, True
