import logging
from typing import Dict, Iterator, List, Optional, Sequence

from demand_transfer.models import ColumnMapping, DemandRecord
from demand_transfer.utils.validation import validate_dataset

logger = logging.getLogger(__name__)

class RecordStore:
    """Owner of the demand records of one loaded dataset."""

    def __init__(self, columns: ColumnMapping, records: Optional[List[DemandRecord]] = None,
                 source_columns: Optional[List[str]] = None):
        """Initialize the store.

        Args:
            columns: Column mapping used for ingestion and export
            records: Initial records
            source_columns: Column names of the input, in input order
        """
        self.columns = columns
        self._records: List[DemandRecord] = list(records or [])
        self._source_columns = list(source_columns or [])

    @classmethod
    def from_rows(cls, rows: Sequence[Dict[str, object]], columns: ColumnMapping) -> 'RecordStore':
        """Validate and ingest flat rows.

        Args:
            rows: Flat key-value rows from the spreadsheet reader
            columns: Column mapping in use

        Returns:
            New RecordStore

        Raises:
            ConfigError: Empty dataset or missing required columns
        """
        rows = list(rows)
        source_columns = validate_dataset(rows, columns)

        records = [DemandRecord.from_row(row, columns) for row in rows]
        logger.debug(f"Ingested {len(records)} records with columns {source_columns}")

        return cls(columns, records, source_columns)

    @property
    def records(self) -> List[DemandRecord]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DemandRecord]:
        return iter(self._records)

    def for_dfu(self, dfu_code: str) -> List[DemandRecord]:
        return [record for record in self._records if record.dfu_code == dfu_code]

    def add(self, record: DemandRecord) -> None:
        self._records.append(record)

    def remove(self, record: DemandRecord) -> None:
        """Remove a record by identity (not equality)."""
        for index, existing in enumerate(self._records):
            if existing is record:
                del self._records[index]
                return
        raise ValueError(f"Record not in store: {record!r}")

    def replace_dfu(self, dfu_code: str, records: List[DemandRecord]) -> None:
        """Replace all rows of a DFU, keeping them where the DFU's first row was."""
        position = next(
            (index for index, record in enumerate(self._records) if record.dfu_code == dfu_code),
            len(self._records)
        )
        remaining = [record for record in self._records if record.dfu_code != dfu_code]
        position = min(position, len(remaining))
        self._records = remaining[:position] + list(records) + remaining[position:]

    def total_quantity(self, dfu_code: Optional[str] = None) -> float:
        records = self._records if dfu_code is None else self.for_dfu(dfu_code)
        return sum(record.quantity for record in records)

    def export_columns(self) -> List[str]:
        """Column order for export: input columns, then the history column."""
        ordered = list(self._source_columns) or self.columns.mapped_columns()
        if self.columns.history not in ordered:
            ordered.append(self.columns.history)
        return ordered

    def to_rows(self) -> List[Dict[str, object]]:
        """Export every record back to the flat row shape."""
        ordered = self.export_columns()
        rows = []
        for record in self._records:
            row = record.to_row(self.columns)
            exported = {column: row.get(column) for column in ordered}
            # Keys absent from the first input row go last
            for column, value in row.items():
                if column not in exported and column in record.extra:
                    exported[column] = value
            rows.append(exported)
        return rows
