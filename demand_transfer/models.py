# demand_transfer/models.py
import copy
import enum
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from demand_transfer.utils.math_utils import normalize_identifier, to_quantity

DESCRIPTION_NOT_AVAILABLE = 'Description not available'


class PlanType(enum.Enum):
    """Shape of a staged transfer plan."""
    NONE = 'none'
    BULK = 'bulk'
    INDIVIDUAL = 'individual'
    GRANULAR = 'granular'


class DFUState(enum.Enum):
    """Lifecycle of a single DFU in one session."""
    UNTOUCHED = 'untouched'
    PLANNED = 'planned'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class ColumnMapping:
    """Binding of logical demand fields to the dataset's column names."""
    dfu: str = 'DFU'
    variant: str = 'Product Number'
    quantity: str = 'weekly fcst'
    plant_location: str = 'Plant Location'
    week_number: str = 'Week Number'
    description: str = 'PartDescription'
    calendar_week: str = 'Calendar.week'
    source_location: str = 'Source Location'
    history: str = 'Transfer History'

    REQUIRED = ('dfu', 'variant', 'quantity', 'plant_location', 'week_number')

    @classmethod
    def from_config(cls, cfg) -> 'ColumnMapping':
        """Build a mapping from the [COLUMNS] section of a Config."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in cfg.column_config.items() if key in known and value}
        return cls(**values)

    def required_columns(self) -> List[str]:
        return [getattr(self, name) for name in self.REQUIRED]

    def mapped_columns(self) -> List[str]:
        """Every column the mapping binds, history last."""
        return [getattr(self, f.name) for f in fields(self)]


class WeekKey(NamedTuple):
    """Identity of a weekly slice of one variant: week number and source location."""
    week_number: str
    source_location: str

    def __str__(self):
        return f"{self.week_number}-{self.source_location}"

    @classmethod
    def parse(cls, text: str) -> 'WeekKey':
        """Parse the "<week>-<location>" form, splitting on the first dash."""
        week_number, _, source_location = str(text).partition('-')
        return cls(normalize_identifier(week_number), normalize_identifier(source_location))

    @classmethod
    def coerce(cls, value: Union['WeekKey', Tuple, str]) -> 'WeekKey':
        if isinstance(value, WeekKey):
            return value
        if isinstance(value, tuple):
            week_number, source_location = value
            return cls(normalize_identifier(week_number), normalize_identifier(source_location))
        return cls.parse(value)


@dataclass
class DemandRecord:
    """One row of forecast data, owned by the RecordStore."""
    dfu_code: str
    variant: str
    quantity: float = 0.0
    week_number: str = ''
    source_location: str = ''
    plant_location: str = ''
    description: str = ''
    calendar_week: str = ''
    history: str = ''
    extra: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Dict[str, object], columns: ColumnMapping) -> 'DemandRecord':
        """Ingest a flat row, normalising identifiers once."""
        mapped = set(columns.mapped_columns())
        description = row.get(columns.description)
        history = row.get(columns.history)
        return cls(
            dfu_code=normalize_identifier(row.get(columns.dfu)),
            variant=normalize_identifier(row.get(columns.variant)),
            quantity=to_quantity(row.get(columns.quantity)),
            week_number=normalize_identifier(row.get(columns.week_number)),
            source_location=normalize_identifier(row.get(columns.source_location)),
            plant_location=normalize_identifier(row.get(columns.plant_location)),
            description='' if description is None else normalize_identifier(description),
            calendar_week=normalize_identifier(row.get(columns.calendar_week)),
            history='' if history is None else normalize_identifier(history),
            extra={key: value for key, value in row.items() if key not in mapped}
        )

    def to_row(self, columns: ColumnMapping) -> Dict[str, object]:
        row = dict(self.extra)
        row[columns.dfu] = self.dfu_code
        row[columns.variant] = self.variant
        row[columns.quantity] = self.quantity
        row[columns.description] = self.description
        row[columns.plant_location] = self.plant_location
        row[columns.calendar_week] = self.calendar_week
        row[columns.source_location] = self.source_location
        row[columns.week_number] = self.week_number
        row[columns.history] = self.history
        return row

    def identity_key(self) -> Tuple[str, str, str]:
        """Consolidation key: at most one row per key within a DFU."""
        return (self.variant, self.week_number, self.source_location)

    def week_key(self) -> WeekKey:
        return WeekKey(self.week_number, self.source_location)

    def calendar_key(self) -> Tuple[str, str]:
        """Match key used by bulk and individual transfers."""
        return (self.calendar_week or self.week_number, self.source_location)

    def append_history(self, entry: str, tag: str = 'PIPO') -> None:
        """Append an audit entry; the tag is written before the first one."""
        if self.history:
            self.history = f"{self.history} {entry}"
        else:
            self.history = f"{tag} {entry}" if tag else entry

    def split(self, amount: float) -> 'DemandRecord':
        """Split this row at the given quantity.

        The returned row carries ``amount`` and no history; this row keeps the
        remainder. Together they sum to the original quantity.
        """
        self.quantity -= amount
        return replace(self, quantity=amount, history='', extra=dict(self.extra))


@dataclass
class WeekBucket:
    week_number: str
    source_location: str
    demand: float = 0.0
    record_count: int = 0


@dataclass
class VariantSummary:
    variant: str
    total_demand: float = 0.0
    record_count: int = 0
    description: str = ''
    weekly: Dict[WeekKey, WeekBucket] = field(default_factory=dict)


@dataclass
class TransferEntry:
    """One row-level move in the audit trail."""
    from_variant: str
    to_variant: str
    amount: float
    timestamp: str
    week: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        entry = {
            'from': self.from_variant,
            'to': self.to_variant,
            'amount': self.amount,
            'timestamp': self.timestamp
        }
        if self.week is not None:
            entry['week'] = self.week
        return entry


@dataclass
class CompletionRecord:
    """Audit summary marking a DFU as having undergone a transfer."""
    dfu_code: str
    transfer_type: PlanType
    timestamp: str
    transfer_count: int = 0
    original_variant_count: int = 0
    target_variant: Optional[str] = None
    mapping: Dict[str, str] = field(default_factory=dict)
    entries: List[TransferEntry] = field(default_factory=list)
    executed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            'dfu': self.dfu_code,
            'type': self.transfer_type.value,
            'target_variant': self.target_variant,
            'transfers': dict(self.mapping),
            'timestamp': self.timestamp,
            'transfer_count': self.transfer_count,
            'original_variant_count': self.original_variant_count,
            'transfer_history': [entry.to_dict() for entry in self.entries]
        }


@dataclass
class DFUView:
    """Read-only projection of one DFU for display and planning."""
    dfu_code: str
    variants: List[str] = field(default_factory=list)
    variant_demand: Dict[str, VariantSummary] = field(default_factory=dict)
    total_records: int = 0
    plant_location: Optional[str] = None
    is_completed: bool = False
    completion: Optional[CompletionRecord] = None

    @property
    def total_demand(self) -> float:
        return sum(summary.total_demand for summary in self.variant_demand.values())


@dataclass
class GroupingResult:
    views: Dict[str, DFUView] = field(default_factory=dict)
    plant_locations: List[str] = field(default_factory=list)
    total_dfus: int = 0


@dataclass
class GranularSelection:
    selected: bool = True
    custom_quantity: Optional[float] = None


@dataclass
class TransferPlan:
    """Staged transfer intent for one DFU."""
    bulk_target: Optional[str] = None
    individual: Dict[str, str] = field(default_factory=dict)
    granular: Dict[str, Dict[str, Dict[WeekKey, GranularSelection]]] = field(default_factory=dict)

    @property
    def kind(self) -> PlanType:
        if self.bulk_target:
            return PlanType.BULK
        if self.individual:
            return PlanType.INDIVIDUAL
        if self.granular:
            return PlanType.GRANULAR
        return PlanType.NONE

    def is_empty(self) -> bool:
        return self.kind is PlanType.NONE

    def copy(self) -> 'TransferPlan':
        return copy.deepcopy(self)
