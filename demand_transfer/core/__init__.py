from .grouping import (
    group_records, build_dfu_view, summarize_variant,
    collect_plant_locations, is_multi_variant, search_views
)
from .consolidation import consolidate_records, consolidate_dfu
from .transfer import (
    move_quantity, find_match, history_entry, calendar_match_key,
    week_match_key, ambiguous_calendar_weeks, MoveResult
)

__all__ = [
    'group_records',
    'build_dfu_view',
    'summarize_variant',
    'collect_plant_locations',
    'is_multi_variant',
    'search_views',
    'consolidate_records',
    'consolidate_dfu',
    'move_quantity',
    'find_match',
    'history_entry',
    'calendar_match_key',
    'week_match_key',
    'ambiguous_calendar_weeks',
    'MoveResult'
]
