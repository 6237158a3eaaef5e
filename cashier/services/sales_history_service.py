"""Sales History - Day listing of persisted sales, marked for editing."""

import datetime
import logging
from typing import Any, Dict, List, Optional

from cashier.exceptions import BusinessLogicError
from cashier.models import SaleStatus
from cashier.services.pos_api_client import PosApiClient
from cashier.utils.number_format import to_int

logger = logging.getLogger(__name__)


def parse_day(value: Optional[str], today: Optional[datetime.date] = None) -> datetime.date:
    """
    Parse a ``YYYY-MM-DD`` filter; blank means today.

    Raises:
        BusinessLogicError: If the date is malformed.
    """
    if not value:
        return today or datetime.date.today()
    try:
        return datetime.date.fromisoformat(str(value).strip())
    except ValueError:
        raise BusinessLogicError(f'Invalid date: {value!r}. Use YYYY-MM-DD')


def list_sales(client: PosApiClient, day: datetime.date) -> List[Dict[str, Any]]:
    """
    Sales recorded on ``day``, each with its status label and whether it
    can still be opened for editing.

    Rows with a status code the till does not know are listed but never
    editable.
    """
    rows = []
    for sale in client.get_sales(day.isoformat()):
        row = dict(sale)
        try:
            status = SaleStatus(to_int(sale.get('status')))
        except ValueError:
            logger.warning(f"[SALES] Sale {sale.get('id')} has unknown status {sale.get('status')!r}")
            row['status_label'] = 'Unknown'
            row['editable'] = False
        else:
            row['status_label'] = status.label
            row['editable'] = status.is_mutable
        rows.append(row)
    return rows
