import logging
from datetime import datetime
from typing import List, Optional

from demand_transfer.core.consolidation import consolidate_dfu
from demand_transfer.core.transfer import (
    ambiguous_calendar_weeks, calendar_match_key, move_quantity, week_match_key
)
from demand_transfer.models import (
    CompletionRecord, DemandRecord, DFUView, PlanType, TransferEntry, TransferPlan
)
from demand_transfer.services.record_store import RecordStore
from demand_transfer.utils.date_utils import capture_timestamp, format_timestamp

logger = logging.getLogger(__name__)

class TransferExecutor:
    """Applies staged transfer plans to a RecordStore."""

    def __init__(self, store: RecordStore, history_tag: str = 'PIPO', timestamp_format: Optional[str] = None):
        """Initialize the executor.

        Args:
            store: Record store to mutate
            history_tag: Literal written before the first history entry of a row
            timestamp_format: strftime format for history timestamps
        """
        self.store = store
        self.history_tag = history_tag
        self.timestamp_format = timestamp_format

    def execute(
        self,
        dfu_code: str,
        plan: TransferPlan,
        view: Optional[DFUView] = None,
        now: Optional[datetime] = None
    ) -> Optional[CompletionRecord]:
        """Execute a plan for one DFU and consolidate its rows.

        Only one plan shape is applied, bulk before individual before
        granular. The timestamp is captured once and shared by every entry.

        Args:
            dfu_code: DFU code
            plan: Staged plan for the DFU
            view: Current view of the DFU (used for the original variant count)
            now: Optional fixed execution time

        Returns:
            CompletionRecord, or None when the plan is empty
        """
        executed_at = capture_timestamp(now)
        timestamp = format_timestamp(executed_at, self.timestamp_format)
        rows = self.store.for_dfu(dfu_code)
        kind = plan.kind

        if view is not None:
            original_variant_count = len(view.variants)
        else:
            original_variant_count = len({row.variant for row in rows if row.variant})

        completion = None

        if kind is PlanType.BULK:
            completion = self._execute_bulk(dfu_code, rows, plan.bulk_target, timestamp)
        elif kind is PlanType.INDIVIDUAL:
            if plan.granular:
                logger.warning(
                    f"DFU {dfu_code} has both individual and granular selections; "
                    f"applying individual transfers only"
                )
            completion = self._execute_individual(dfu_code, rows, plan.individual, timestamp)
        elif kind is PlanType.GRANULAR:
            completion = self._execute_granular(dfu_code, rows, plan, timestamp)
        else:
            logger.info(f"No transfer staged for DFU {dfu_code}")

        if completion is not None:
            completion.original_variant_count = original_variant_count
            completion.executed_at = executed_at

        consolidate_dfu(self.store, dfu_code)
        return completion

    def _warn_calendar_ambiguity(self, dfu_code: str, rows: List[DemandRecord]) -> None:
        ambiguous = ambiguous_calendar_weeks(rows)
        for week_number, labels in sorted(ambiguous.items()):
            logger.warning(
                f"DFU {dfu_code} week {week_number} has several calendar weeks "
                f"({', '.join(sorted(labels))}); calendar-week matching may differ from week-level matching"
            )

    def _move(
        self,
        rows: List[DemandRecord],
        source: DemandRecord,
        target_variant: str,
        amount: float,
        timestamp: str,
        granular: bool = False
    ) -> TransferEntry:
        result = move_quantity(
            rows,
            source,
            target_variant,
            amount,
            timestamp,
            week_match_key if granular else calendar_match_key,
            tag=self.history_tag,
            week=source.week_number if granular else None
        )

        if result.retired:
            self._retire(rows, source)
        if result.created is not None:
            rows.append(result.created)
            self.store.add(result.created)

        return result.entry

    def _retire(self, rows: List[DemandRecord], record: DemandRecord) -> None:
        """Drop a row drained to zero; its quantity now lives on the match."""
        for index, row in enumerate(rows):
            if row is record:
                del rows[index]
                break
        self.store.remove(record)

    def _execute_bulk(self, dfu_code: str, rows: List[DemandRecord], target_variant: str,
                      timestamp: str) -> CompletionRecord:
        logger.info(f"Executing bulk transfer for DFU {dfu_code} into {target_variant}")
        self._warn_calendar_ambiguity(dfu_code, rows)

        entries = []
        # Rows without a variant are outside every DFU view
        sources = [row for row in rows if row.variant and row.variant != target_variant]
        for source in sources:
            entries.append(self._move(rows, source, target_variant, source.quantity, timestamp))

        return CompletionRecord(
            dfu_code=dfu_code,
            transfer_type=PlanType.BULK,
            timestamp=timestamp,
            transfer_count=len(entries),
            target_variant=target_variant,
            entries=entries
        )

    def _execute_individual(self, dfu_code: str, rows: List[DemandRecord], mapping: dict,
                            timestamp: str) -> CompletionRecord:
        logger.info(f"Executing individual transfers for DFU {dfu_code}: {mapping}")
        self._warn_calendar_ambiguity(dfu_code, rows)

        entries = []
        transfer_count = 0
        for source_variant, target_variant in mapping.items():
            if not source_variant or source_variant == target_variant:
                continue

            # Entries apply in order to the rows as they stand, so with A -> B
            # and B -> C every row that reaches B moves on to C
            sources = [row for row in rows if row.variant == source_variant]
            logger.debug(f"Moving {len(sources)} rows from {source_variant} to {target_variant}")
            for source in sources:
                entries.append(self._move(rows, source, target_variant, source.quantity, timestamp))

            transfer_count += 1

        return CompletionRecord(
            dfu_code=dfu_code,
            transfer_type=PlanType.INDIVIDUAL,
            timestamp=timestamp,
            transfer_count=transfer_count,
            mapping=dict(mapping),
            entries=entries
        )

    def _execute_granular(self, dfu_code: str, rows: List[DemandRecord], plan: TransferPlan,
                          timestamp: str) -> CompletionRecord:
        logger.info(f"Executing granular transfers for DFU {dfu_code}")

        entries = []
        for source_variant, targets in plan.granular.items():
            for target_variant, weeks in targets.items():
                if not source_variant or source_variant == target_variant:
                    continue

                for week_key, selection in weeks.items():
                    if not selection.selected:
                        continue

                    source = next(
                        (row for row in rows
                         if row.variant == source_variant and row.week_key() == week_key),
                        None
                    )
                    if source is None:
                        logger.warning(
                            f"No {source_variant} row for week {week_key} in DFU {dfu_code}; skipping"
                        )
                        continue

                    amount = source.quantity
                    if selection.custom_quantity is not None:
                        if selection.custom_quantity > source.quantity:
                            logger.warning(
                                f"Requested {selection.custom_quantity} from {source_variant} week {week_key} "
                                f"exceeds available {source.quantity}; transferring the full quantity"
                            )
                        else:
                            amount = selection.custom_quantity

                    if amount <= 0 and source.quantity > 0:
                        logger.debug(f"Nothing to transfer for {source_variant} week {week_key}")
                        continue

                    entries.append(self._move(rows, source, target_variant, amount, timestamp, granular=True))

        return CompletionRecord(
            dfu_code=dfu_code,
            transfer_type=PlanType.GRANULAR,
            timestamp=timestamp,
            transfer_count=len(entries),
            entries=entries
        )
