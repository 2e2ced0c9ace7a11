import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from demand_transfer.config import config
from demand_transfer.core.grouping import group_records, search_views
from demand_transfer.exceptions import ConfigError, NotFoundError, TransferError, ValidationError
from demand_transfer.logging_setup import logger as app_logging
from demand_transfer.models import (
    ColumnMapping, CompletionRecord, DFUState, DFUView, PlanType, TransferPlan, WeekKey
)
from demand_transfer.services.executor import TransferExecutor
from demand_transfer.services.planner import TransferPlanner
from demand_transfer.services.record_store import RecordStore
from demand_transfer.utils.math_utils import normalize_identifier

logger = logging.getLogger(__name__)

class DemandTransferEngine:
    """Reconciliation engine for one loaded demand dataset.

    Holds the record store, the staged plans and the completion records.
    Queries return projections; every mutation goes through execute().
    Single-threaded: do not call a second operation before the first returns.
    """

    def __init__(
        self,
        columns: Optional[ColumnMapping] = None,
        history_tag: Optional[str] = None,
        timestamp_format: Optional[str] = None
    ):
        """Initialize the engine.

        Args:
            columns: Column mapping, defaults to the [COLUMNS] configuration
            history_tag: History tag, defaults to [TRANSFER] history_tag
            timestamp_format: History timestamp format, defaults to [TRANSFER] timestamp_format
        """
        transfer_config = config.transfer_config

        self.columns = columns or ColumnMapping.from_config(config)
        self.history_tag = history_tag if history_tag is not None else transfer_config['history_tag']
        self.timestamp_format = timestamp_format or transfer_config['timestamp_format']

        self.store = RecordStore(self.columns)
        self.planner = TransferPlanner()
        self._completed: Dict[str, CompletionRecord] = {}
        self._plant_filter: Optional[str] = None
        self._views: Dict[str, DFUView] = {}
        self._plant_locations: List[str] = []

    # Loading and projections

    def load_records(self, rows: Sequence[Dict[str, object]]) -> Dict[str, DFUView]:
        """Load a dataset and detect multi-variant DFUs.

        Args:
            rows: Flat key-value rows

        Returns:
            Multi-variant DFU views keyed by DFU code

        Raises:
            ConfigError: Empty dataset or missing required columns; the
                engine keeps its previous state
        """
        rows = list(rows)
        log_info = app_logging.operation_start_log('load_records', {'rows': len(rows)})

        try:
            store = RecordStore.from_rows(rows, self.columns)
        except ConfigError as e:
            logger.error(f"Could not load records: {e}")
            app_logging.operation_end_log(log_info, success=False)
            raise

        self.store = store
        self.planner.reset()
        self._completed = {}
        self._regroup()

        if not self._views:
            logger.warning("No DFU codes with multiple variants found in the data")
        else:
            logger.info(f"Found {len(self._views)} DFUs with multiple variants")

        app_logging.operation_end_log(log_info, result_info={
            'records': len(self.store),
            'multi_variant_dfus': len(self._views)
        })
        return self.views

    def _regroup(self) -> None:
        result = group_records(self.store, self._plant_filter, self._completed)
        self._views = result.views
        self._plant_locations = result.plant_locations

    def set_plant_filter(self, plant_location: Optional[str]) -> Dict[str, DFUView]:
        """Restrict the views to one plant location; blank clears the filter."""
        self._plant_filter = normalize_identifier(plant_location) or None
        logger.info(f"Filtering by plant location: {self._plant_filter or 'All'}")
        self._regroup()
        return self.views

    @property
    def plant_filter(self) -> Optional[str]:
        return self._plant_filter

    @property
    def plant_locations(self) -> List[str]:
        return list(self._plant_locations)

    @property
    def views(self) -> Dict[str, DFUView]:
        return dict(self._views)

    def get_view(self, dfu_code: str) -> DFUView:
        dfu_code = normalize_identifier(dfu_code)
        view = self._views.get(dfu_code)
        if view is None:
            raise NotFoundError(f"DFU {dfu_code} is not a multi-variant DFU", code='DFU_NOT_FOUND')
        return view

    def search(self, term: Optional[str]) -> Dict[str, DFUView]:
        """Views whose DFU code or variants contain the search term."""
        return search_views(self._views, term)

    # Planning

    def _check_variants(self, dfu_code: str, *variants: str) -> DFUView:
        try:
            view = self.get_view(dfu_code)
        except NotFoundError as e:
            raise ValidationError(e.message, code='UNKNOWN_DFU')

        for variant in variants:
            if normalize_identifier(variant) not in view.variants:
                raise ValidationError(
                    f"Variant {variant} does not belong to DFU {view.dfu_code}",
                    code='UNKNOWN_VARIANT',
                    details={'variants': list(view.variants)}
                )
        return view

    def stage_bulk(self, dfu_code: str, target_variant: str) -> None:
        """Stage a transfer of every other variant into the target."""
        self._check_variants(dfu_code, target_variant)
        self.planner.set_bulk_target(dfu_code, target_variant)

    def stage_individual(self, dfu_code: str, source_variant: str, target_variant: str) -> None:
        """Stage the target of one source variant."""
        self._check_variants(dfu_code, source_variant, target_variant)
        self.planner.set_individual_target(dfu_code, source_variant, target_variant)

    def stage_granular(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str],
        selected: bool = True,
        quantity: Optional[Union[float, str]] = None
    ) -> bool:
        """Select or deselect a week slice of a source variant, optionally partial.

        Returns:
            The resulting selection state
        """
        view = self._check_variants(dfu_code, source_variant, target_variant)
        if normalize_identifier(source_variant) == normalize_identifier(target_variant):
            raise ValidationError("Source and target variant must differ", code='SAME_VARIANT')

        if selected:
            key = WeekKey.coerce(week_key)
            summary = view.variant_demand[normalize_identifier(source_variant)]
            if key not in summary.weekly:
                raise ValidationError(
                    f"Variant {source_variant} has no demand for week {key}",
                    code='UNKNOWN_WEEK'
                )

        return self.planner.set_granular_week(
            dfu_code, source_variant, target_variant, week_key, selected, quantity
        )

    def toggle_granular_week(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str]
    ) -> bool:
        selection = self.planner.get_selection(dfu_code, source_variant, target_variant, week_key)
        selected = not (selection is not None and selection.selected)
        return self.stage_granular(dfu_code, source_variant, target_variant, week_key, selected)

    def set_granular_quantity(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str],
        value: Optional[Union[float, str]]
    ) -> None:
        self.planner.set_granular_quantity(dfu_code, source_variant, target_variant, week_key, value)

    def clear_plan(self, dfu_code: str) -> None:
        """Cancel whatever is staged for the DFU."""
        self.planner.clear_plan(dfu_code)

    def get_plan(self, dfu_code: str) -> TransferPlan:
        return self.planner.get_plan(dfu_code)

    # Execution

    def execute(self, dfu_code: str, now: Optional[datetime] = None) -> Optional[CompletionRecord]:
        """Execute the staged plan of a DFU, consolidate it and regroup.

        Args:
            dfu_code: DFU code
            now: Optional fixed execution time

        Returns:
            The new CompletionRecord, or None when nothing was staged

        Raises:
            TransferError: The DFU has no records
        """
        dfu_code = normalize_identifier(dfu_code)
        if not self.store.for_dfu(dfu_code):
            raise TransferError(f"DFU {dfu_code} has no records", code='UNKNOWN_DFU')

        log_info = app_logging.operation_start_log(f"transfer for DFU {dfu_code}")

        plan = self.planner.pop_plan(dfu_code)
        executor = TransferExecutor(self.store, self.history_tag, self.timestamp_format)
        completion = executor.execute(dfu_code, plan, self._views.get(dfu_code), now=now)

        if completion is not None:
            self._completed[dfu_code] = completion

        self._regroup()

        app_logging.operation_end_log(log_info, result_info=completion.to_dict() if completion else None)
        return completion

    def dfu_state(self, dfu_code: str) -> DFUState:
        dfu_code = normalize_identifier(dfu_code)
        if self.planner.plan_type(dfu_code) is not PlanType.NONE:
            return DFUState.PLANNED
        if dfu_code in self._completed:
            return DFUState.COMPLETED
        return DFUState.UNTOUCHED

    def completion(self, dfu_code: str) -> Optional[CompletionRecord]:
        return self._completed.get(normalize_identifier(dfu_code))

    @property
    def completed_transfers(self) -> Dict[str, CompletionRecord]:
        return dict(self._completed)

    # Export

    def export_records(self) -> List[Dict[str, object]]:
        """Flat rows of the current record set, including transfer history."""
        rows = self.store.to_rows()
        logger.info(f"Exporting {len(rows)} records")
        return rows
