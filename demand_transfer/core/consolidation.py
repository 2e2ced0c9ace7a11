# demand_transfer/core/consolidation.py
import logging
from typing import Dict, Iterable, List, Tuple

from ..models import DemandRecord

logger = logging.getLogger(__name__)

def consolidate_records(records: Iterable[DemandRecord]) -> List[DemandRecord]:
    """Collapse rows sharing (variant, week number, source location).

    Quantities are summed and non-empty histories are space-joined in
    encounter order. The first row seen for a key supplies every other field.

    Args:
        records: Rows of a single DFU

    Returns:
        One row per identity key, in first-seen order
    """
    consolidated: Dict[Tuple[str, str, str], DemandRecord] = {}

    for record in records:
        key = record.identity_key()
        existing = consolidated.get(key)

        if existing is None:
            consolidated[key] = record
            continue

        existing.quantity += record.quantity
        if record.history:
            existing.history = f"{existing.history} {record.history}" if existing.history else record.history

    return list(consolidated.values())

def consolidate_dfu(store, dfu_code: str) -> int:
    """Consolidate one DFU's rows inside a record store.

    Args:
        store: RecordStore holding the rows
        dfu_code: DFU to consolidate

    Returns:
        Number of rows removed by the merge
    """
    records = store.for_dfu(dfu_code)
    consolidated = consolidate_records(records)
    removed = len(records) - len(consolidated)

    if removed:
        store.replace_dfu(dfu_code, consolidated)
        logger.debug(f"Consolidated DFU {dfu_code}: {len(records)} rows into {len(consolidated)}")

    return removed
