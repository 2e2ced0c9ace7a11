import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from demand_transfer.config import config
from demand_transfer.exceptions import SpreadsheetError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = ('.xlsx', '.xls')
CSV_SUFFIXES = ('.csv',)


class SpreadsheetLoader:
    """Reads demand rows from workbooks and writes them back."""

    @staticmethod
    def choose_sheet(sheet_names: Sequence[str], preferred: Optional[Sequence[str]] = None) -> str:
        """Pick the first preferred sheet present, else the first sheet.

        Args:
            sheet_names: Sheets in the workbook
            preferred: Preferred sheet names in priority order

        Returns:
            Name of the sheet to read
        """
        if not sheet_names:
            raise SpreadsheetError("Workbook has no sheets", code='NO_SHEETS')

        if preferred is None:
            preferred = config.import_config['sheet_names']

        return next((name for name in preferred if name in sheet_names), sheet_names[0])

    @staticmethod
    def frame_to_rows(frame: pd.DataFrame) -> List[Dict[str, object]]:
        """Convert a DataFrame to flat rows, blank cells becoming None."""
        cleaned = frame.astype(object).where(pd.notna(frame), None)
        return cleaned.to_dict(orient='records')

    @staticmethod
    def read_rows(path: Union[str, Path], sheet_name: Optional[str] = None,
                  preferred: Optional[Sequence[str]] = None) -> List[Dict[str, object]]:
        """Load demand rows from an Excel workbook or CSV file.

        Args:
            path: File path
            sheet_name: Explicit sheet to read (Excel only)
            preferred: Preferred sheet names when no sheet is given

        Returns:
            List of flat key-value rows

        Raises:
            SpreadsheetError: Unsupported file type, missing file or unreadable workbook
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix not in EXCEL_SUFFIXES + CSV_SUFFIXES:
            raise SpreadsheetError(
                "Please select an Excel file (.xlsx or .xls)",
                code='UNSUPPORTED_FILE',
                details={'path': str(path)}
            )

        if not path.exists():
            raise SpreadsheetError(f"File not found: {path}", code='FILE_NOT_FOUND')

        try:
            if suffix in CSV_SUFFIXES:
                frame = pd.read_csv(path)
            else:
                with pd.ExcelFile(path) as workbook:
                    logger.debug(f"Available sheets: {workbook.sheet_names}")
                    if sheet_name is None:
                        sheet_name = SpreadsheetLoader.choose_sheet(workbook.sheet_names, preferred)
                    elif sheet_name not in workbook.sheet_names:
                        raise SpreadsheetError(
                            f"Sheet {sheet_name} not found in {path.name}",
                            code='SHEET_NOT_FOUND',
                            details={'sheets': list(workbook.sheet_names)}
                        )
                    logger.info(f"Using sheet: {sheet_name}")
                    frame = workbook.parse(sheet_name)
        except SpreadsheetError:
            raise
        except (OSError, ValueError) as e:
            raise SpreadsheetError(f"Error loading data: {e}", code='READ_FAILED')

        rows = SpreadsheetLoader.frame_to_rows(frame)
        logger.info(f"Loaded {len(rows)} records from {path.name}")
        return rows

    @staticmethod
    def write_rows(rows: Sequence[Dict[str, object]], path: Union[str, Path],
                   sheet_name: Optional[str] = None) -> Path:
        """Write rows to a single-sheet workbook (or CSV by extension).

        Args:
            rows: Flat key-value rows
            path: Output path
            sheet_name: Sheet name, defaults to [EXPORT] sheet_name

        Returns:
            Path written
        """
        path = Path(path)
        sheet_name = sheet_name or config.export_config['sheet_name']
        frame = pd.DataFrame(list(rows))

        try:
            if path.suffix.lower() in CSV_SUFFIXES:
                frame.to_csv(path, index=False)
            else:
                frame.to_excel(path, sheet_name=sheet_name, index=False)
        except (OSError, ValueError) as e:
            raise SpreadsheetError(f"Error exporting data: {e}", code='WRITE_FAILED')

        logger.info(f"Exported {len(frame)} records to {path}")
        return path
