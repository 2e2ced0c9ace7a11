import logging
import math
from typing import Dict, Optional, Union

from demand_transfer.exceptions import ValidationError
from demand_transfer.models import GranularSelection, PlanType, TransferPlan, WeekKey
from demand_transfer.utils.math_utils import normalize_identifier

logger = logging.getLogger(__name__)

class TransferPlanner:
    """Staging area for transfer intent, one plan per DFU.

    The planner never touches demand records. A bulk target excludes every
    other shape for its DFU; individual mappings and granular selections
    exclude each other per source variant.
    """

    def __init__(self):
        self._plans: Dict[str, TransferPlan] = {}

    def _plan(self, dfu_code: str) -> TransferPlan:
        return self._plans.setdefault(dfu_code, TransferPlan())

    def _prune(self, dfu_code: str) -> None:
        plan = self._plans.get(dfu_code)
        if plan is not None and plan.is_empty():
            del self._plans[dfu_code]

    def set_bulk_target(self, dfu_code: str, target_variant: str) -> None:
        """Stage a bulk transfer of every other variant into the target.

        Args:
            dfu_code: DFU code
            target_variant: Variant receiving all demand
        """
        dfu_code = normalize_identifier(dfu_code)
        self._plans[dfu_code] = TransferPlan(bulk_target=normalize_identifier(target_variant))
        logger.debug(f"Staged bulk transfer for DFU {dfu_code} into {target_variant}")

    def set_individual_target(self, dfu_code: str, source_variant: str, target_variant: str) -> None:
        """Stage (or overwrite) the target of one source variant.

        Granular selections staged for the same source variant are dropped.

        Args:
            dfu_code: DFU code
            source_variant: Variant giving up demand
            target_variant: Variant receiving it
        """
        dfu_code = normalize_identifier(dfu_code)
        source_variant = normalize_identifier(source_variant)

        plan = self._plan(dfu_code)
        plan.bulk_target = None
        plan.individual[source_variant] = normalize_identifier(target_variant)
        plan.granular.pop(source_variant, None)

        logger.debug(f"Staged individual transfer for DFU {dfu_code}: {source_variant} -> {target_variant}")

    def set_granular_week(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str],
        selected: bool = True,
        quantity: Optional[Union[float, str]] = None
    ) -> bool:
        """Select or deselect one week slice of a source variant.

        Selecting drops the individual mapping of the same source variant.
        Deselecting removes the entry so the structure stays sparse.

        Args:
            dfu_code: DFU code
            source_variant: Variant giving up demand
            target_variant: Variant receiving it
            week_key: Week slice (WeekKey, (week, location) or "week-location")
            selected: Whether the slice should be selected
            quantity: Optional partial quantity, blank or None for the full slice

        Returns:
            The resulting selection state
        """
        dfu_code = normalize_identifier(dfu_code)
        source_variant = normalize_identifier(source_variant)
        target_variant = normalize_identifier(target_variant)
        week_key = WeekKey.coerce(week_key)

        if not selected:
            self._deselect(dfu_code, source_variant, target_variant, week_key)
            return False

        custom_quantity = self._parse_quantity(quantity)

        plan = self._plan(dfu_code)
        plan.bulk_target = None
        plan.individual.pop(source_variant, None)
        weeks = plan.granular.setdefault(source_variant, {}).setdefault(target_variant, {})
        weeks[week_key] = GranularSelection(selected=True, custom_quantity=custom_quantity)

        logger.debug(
            f"Selected week {week_key} of {source_variant} -> {target_variant} for DFU {dfu_code}"
        )
        return True

    def toggle_granular_week(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str]
    ) -> bool:
        """Flip the selection of one week slice.

        Returns:
            The resulting selection state
        """
        selection = self.get_selection(dfu_code, source_variant, target_variant, week_key)
        selected = not (selection is not None and selection.selected)
        return self.set_granular_week(dfu_code, source_variant, target_variant, week_key, selected)

    def set_granular_quantity(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str],
        value: Optional[Union[float, str]]
    ) -> None:
        """Set the partial quantity of an already selected week slice.

        A blank value resets the slice to its full quantity. Nothing happens
        when the slice is not selected.

        Raises:
            ValidationError: Value is negative or not a number
        """
        selection = self.get_selection(dfu_code, source_variant, target_variant, week_key)
        if selection is None or not selection.selected:
            return

        selection.custom_quantity = self._parse_quantity(value)

    def get_selection(
        self,
        dfu_code: str,
        source_variant: str,
        target_variant: str,
        week_key: Union[WeekKey, tuple, str]
    ) -> Optional[GranularSelection]:
        plan = self._plans.get(normalize_identifier(dfu_code))
        if plan is None:
            return None
        weeks = plan.granular.get(normalize_identifier(source_variant), {}).get(normalize_identifier(target_variant), {})
        return weeks.get(WeekKey.coerce(week_key))

    def clear_plan(self, dfu_code: str) -> None:
        """Drop every staged shape for the DFU."""
        self._plans.pop(normalize_identifier(dfu_code), None)

    def get_plan(self, dfu_code: str) -> TransferPlan:
        """Copy of the DFU's plan (empty when nothing is staged)."""
        plan = self._plans.get(normalize_identifier(dfu_code))
        return plan.copy() if plan is not None else TransferPlan()

    def pop_plan(self, dfu_code: str) -> TransferPlan:
        """Remove and return the DFU's plan."""
        return self._plans.pop(normalize_identifier(dfu_code), None) or TransferPlan()

    def plan_type(self, dfu_code: str) -> PlanType:
        plan = self._plans.get(normalize_identifier(dfu_code))
        return plan.kind if plan is not None else PlanType.NONE

    def has_plan(self, dfu_code: str) -> bool:
        return self.plan_type(dfu_code) is not PlanType.NONE

    def reset(self) -> None:
        self._plans.clear()

    def _deselect(self, dfu_code: str, source_variant: str, target_variant: str, week_key: WeekKey) -> None:
        plan = self._plans.get(dfu_code)
        if plan is None:
            return

        targets = plan.granular.get(source_variant, {})
        weeks = targets.get(target_variant, {})
        weeks.pop(week_key, None)

        if not weeks:
            targets.pop(target_variant, None)
        if not targets:
            plan.granular.pop(source_variant, None)

        self._prune(dfu_code)

    @staticmethod
    def _parse_quantity(value: Optional[Union[float, str]]) -> Optional[float]:
        if value is None:
            return None

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                quantity = float(text)
            except ValueError:
                raise ValidationError(f"Invalid transfer quantity: {value!r}", code='INVALID_QUANTITY')
        else:
            quantity = float(value)

        if math.isnan(quantity) or quantity < 0:
            raise ValidationError(f"Transfer quantity must be a non-negative number: {value!r}", code='INVALID_QUANTITY')

        return quantity
