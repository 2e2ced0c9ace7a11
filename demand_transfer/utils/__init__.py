from .date_utils import capture_timestamp, format_timestamp
from .math_utils import to_quantity, normalize_identifier, format_quantity, quantities_equal
from .validation import find_missing_columns, validate_dataset

__all__ = [
    'capture_timestamp',
    'format_timestamp',
    'to_quantity',
    'normalize_identifier',
    'format_quantity',
    'quantities_equal',
    'find_missing_columns',
    'validate_dataset'
]
