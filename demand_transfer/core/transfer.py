# demand_transfer/core/transfer.py
import logging
from typing import Callable, Dict, Hashable, Iterable, List, NamedTuple, Optional, Set

from ..models import DemandRecord, TransferEntry
from ..utils.math_utils import format_quantity, quantities_equal

logger = logging.getLogger(__name__)

MatchKey = Callable[[DemandRecord], Hashable]


def calendar_match_key(record: DemandRecord) -> Hashable:
    """Bulk and individual transfers match on calendar week and source location."""
    return record.calendar_key()


def week_match_key(record: DemandRecord) -> Hashable:
    """Granular transfers match on week number and source location."""
    return record.week_key()


class MoveResult(NamedTuple):
    """Outcome of moving quantity from one row to a target variant."""
    entry: TransferEntry
    match: Optional[DemandRecord] = None
    created: Optional[DemandRecord] = None
    retired: bool = False


def history_entry(source_variant: str, amount: float, timestamp: str, week: Optional[str] = None) -> str:
    """Render one audit history entry, e.g. ``[W1 A → 40 @ 01/07/2025, 10:00:00]``."""
    label = f"W{week} " if week is not None else ''
    return f"[{label}{source_variant} → {format_quantity(amount)} @ {timestamp}]"


def find_match(
    rows: Iterable[DemandRecord],
    source: DemandRecord,
    target_variant: str,
    match_key: MatchKey
) -> Optional[DemandRecord]:
    """Find the target variant's row sharing the source row's match key.

    Args:
        rows: Rows of the DFU
        source: Row being transferred
        target_variant: Variant receiving the quantity
        match_key: Function returning the comparison key of a row

    Returns:
        First matching row or None
    """
    key = match_key(source)
    for row in rows:
        if row is not source and row.variant == target_variant and match_key(row) == key:
            return row
    return None


def move_quantity(
    rows: List[DemandRecord],
    source: DemandRecord,
    target_variant: str,
    amount: float,
    timestamp: str,
    match_key: MatchKey,
    tag: str = 'PIPO',
    week: Optional[str] = None
) -> MoveResult:
    """Apply the merge rule for one source row.

    With a matching target row the amount is added to it and taken off the
    source; a source drained to zero is flagged as retired and hands its
    history to the match. Without a match a full transfer repoints the
    source row to the target variant and a partial transfer splits the
    source row, the new row carrying the target variant and the amount.

    Args:
        rows: Rows of the DFU (searched for a match, not modified)
        source: Row giving up quantity
        target_variant: Variant receiving the quantity
        amount: Quantity to move
        timestamp: Formatted execution timestamp
        match_key: Function returning the comparison key of a row
        tag: Literal written before the first history entry of a row
        week: Week number label for granular transfers

    Returns:
        MoveResult describing the audit entry and any row changes
    """
    source_variant = source.variant
    full = quantities_equal(amount, source.quantity)
    text = history_entry(source_variant, amount, timestamp, week)
    entry = TransferEntry(
        from_variant=source_variant,
        to_variant=target_variant,
        amount=amount,
        timestamp=timestamp,
        week=week
    )

    match = find_match(rows, source, target_variant, match_key)

    if match is not None:
        match.quantity += amount

        if full:
            # The drained source is retired; keep its earlier hops on the match
            if source.history:
                match.history = f"{match.history} {source.history}" if match.history else source.history
                source.history = ''
            source.quantity = 0.0
        else:
            source.quantity -= amount

        match.append_history(text, tag)
        logger.debug(f"Merged {amount} from {source_variant} into existing {target_variant} row")
        return MoveResult(entry=entry, match=match, retired=full)

    if full:
        source.variant = target_variant
        source.append_history(text, tag)
        logger.debug(f"Repointed row from {source_variant} to {target_variant}")
        return MoveResult(entry=entry)

    created = source.split(amount)
    created.variant = target_variant
    created.append_history(text, tag)
    logger.debug(f"Split {amount} off {source_variant} into new {target_variant} row")
    return MoveResult(entry=entry, created=created)


def ambiguous_calendar_weeks(rows: Iterable[DemandRecord]) -> Dict[str, Set[str]]:
    """Week numbers that carry more than one calendar-week label.

    Calendar-week matching (bulk, individual) and week-number matching
    (granular) can pick different rows for such weeks.
    """
    labels: Dict[str, Set[str]] = {}
    for row in rows:
        if row.calendar_week:
            labels.setdefault(row.week_number, set()).add(row.calendar_week)
    return {week: found for week, found in labels.items() if len(found) > 1}
