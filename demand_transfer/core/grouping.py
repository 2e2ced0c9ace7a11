# demand_transfer/core/grouping.py
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from ..models import (
    DESCRIPTION_NOT_AVAILABLE, CompletionRecord, DemandRecord, DFUView,
    GroupingResult, VariantSummary, WeekBucket
)
from ..utils.math_utils import normalize_identifier

logger = logging.getLogger(__name__)

def collect_plant_locations(records: Iterable[DemandRecord]) -> List[str]:
    """Sorted distinct non-empty plant locations.

    Args:
        records: Demand records (unfiltered)

    Returns:
        Sorted list of plant location values
    """
    return sorted({record.plant_location for record in records if record.plant_location})

def summarize_variant(variant: str, records: List[DemandRecord]) -> VariantSummary:
    """Aggregate one variant's rows into totals and weekly buckets.

    Args:
        variant: Variant identifier
        records: Rows of that variant within one DFU

    Returns:
        VariantSummary for the variant
    """
    summary = VariantSummary(variant=variant)

    for record in records:
        summary.total_demand += record.quantity
        summary.record_count += 1

        if not summary.description and record.description:
            summary.description = record.description

        week_key = record.week_key()
        bucket = summary.weekly.get(week_key)
        if bucket is None:
            bucket = WeekBucket(week_number=record.week_number, source_location=record.source_location)
            summary.weekly[week_key] = bucket
        bucket.demand += record.quantity
        bucket.record_count += 1

    summary.description = summary.description or DESCRIPTION_NOT_AVAILABLE
    return summary

def build_dfu_view(
    dfu_code: str,
    records: List[DemandRecord],
    completion: Optional[CompletionRecord] = None
) -> DFUView:
    """Build the view of a single DFU from its rows."""
    by_variant: Dict[str, List[DemandRecord]] = {}
    for record in records:
        by_variant.setdefault(record.variant, []).append(record)

    view = DFUView(
        dfu_code=dfu_code,
        variants=list(by_variant),
        total_records=len(records),
        plant_location=records[0].plant_location if records else None,
        is_completed=completion is not None,
        completion=completion
    )
    for variant, variant_records in by_variant.items():
        view.variant_demand[variant] = summarize_variant(variant, variant_records)

    return view

def is_multi_variant(view: DFUView) -> bool:
    """A DFU is review-worthy with more than one variant or a completed transfer."""
    return len(view.variants) > 1 or view.is_completed

def group_records(
    records: Iterable[DemandRecord],
    plant_location: Optional[str] = None,
    completed: Optional[Mapping[str, CompletionRecord]] = None
) -> GroupingResult:
    """Group demand records by DFU and detect multi-variant DFUs.

    The plant filter is applied to the whole record set before grouping.
    Records without a DFU code or variant are skipped.

    Args:
        records: All demand records
        plant_location: Optional plant location to restrict to
        completed: Completion records keyed by DFU code

    Returns:
        GroupingResult with the qualifying DFU views and plant locations
    """
    records = list(records)
    completed = completed or {}
    plant_filter = normalize_identifier(plant_location)

    result = GroupingResult(plant_locations=collect_plant_locations(records))

    if plant_filter:
        filtered = [record for record in records if record.plant_location == plant_filter]
        if not filtered:
            logger.warning(f"No records found for plant location {plant_filter}")
    else:
        filtered = records

    grouped: Dict[str, List[DemandRecord]] = {}
    skipped = 0
    for record in filtered:
        if not record.dfu_code or not record.variant:
            skipped += 1
            continue
        grouped.setdefault(record.dfu_code, []).append(record)

    if skipped:
        logger.debug(f"Skipped {skipped} records without DFU code or variant")

    result.total_dfus = len(grouped)

    for dfu_code, dfu_records in grouped.items():
        view = build_dfu_view(dfu_code, dfu_records, completed.get(dfu_code))
        if is_multi_variant(view):
            result.views[dfu_code] = view

    logger.debug(
        f"Grouped {len(filtered)} records into {result.total_dfus} DFUs, "
        f"{len(result.views)} with multiple variants"
    )
    return result

def search_views(views: Mapping[str, DFUView], term: Optional[str]) -> Dict[str, DFUView]:
    """Filter views by a case-insensitive match on DFU code or any variant.

    Args:
        views: DFU views keyed by DFU code
        term: Search text; blank returns every view

    Returns:
        Matching views, in the original order
    """
    needle = (term or '').strip().lower()
    if not needle:
        return dict(views)

    return {
        dfu_code: view
        for dfu_code, view in views.items()
        if needle in dfu_code.lower() or any(needle in variant.lower() for variant in view.variants)
    }
