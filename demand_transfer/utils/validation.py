from typing import TYPE_CHECKING, Dict, Iterable, List, Sequence

from demand_transfer.exceptions import ConfigError

if TYPE_CHECKING:
    from demand_transfer.models import ColumnMapping

def find_missing_columns(available: Iterable[str], columns: 'ColumnMapping') -> List[str]:
    """Return the required columns that are not in the dataset.

    Args:
        available: Column names present in the dataset
        columns: Column mapping in use

    Returns:
        Missing required column names, in mapping order
    """
    present = set(available)
    return [column for column in columns.required_columns() if column not in present]

def validate_dataset(rows: Sequence[Dict[str, object]], columns: 'ColumnMapping') -> List[str]:
    """Validate the shape of an incoming dataset.

    Args:
        rows: Flat key-value rows
        columns: Column mapping in use

    Returns:
        Column names of the dataset (keys of the first row)

    Raises:
        ConfigError: No data, or required columns are missing
    """
    if not rows:
        raise ConfigError("No data found in the file", code='EMPTY_DATASET')

    available = list(rows[0].keys())
    missing = find_missing_columns(available, columns)
    if missing:
        raise ConfigError(
            f"Missing required columns: {', '.join(missing)}",
            code='MISSING_COLUMNS',
            details={'missing_columns': missing, 'available_columns': available}
        )

    return available
