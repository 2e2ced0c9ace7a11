"""
Tests for reading and writing demand spreadsheets.
"""
import os
import tempfile
import unittest

import pandas as pd

from demand_transfer.exceptions import SpreadsheetError
from demand_transfer.services.engine import DemandTransferEngine
from demand_transfer.spreadsheet import SpreadsheetLoader


def make_row(dfu, variant, qty, week, loc='L1', plant='P1'):
    return {
        'DFU': dfu,
        'Product Number': variant,
        'weekly fcst': qty,
        'Plant Location': plant,
        'Week Number': week,
        'Source Location': loc,
        'PartDescription': None,
    }


class TestSpreadsheetLoader(unittest.TestCase):
    """Test cases for the spreadsheet reader and writer."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.rows = [
            make_row('D1', 'A', 100, 1),
            make_row('D1', 'B', 50.5, 1),
            make_row('D2', 'C', 7, 2, plant='P2'),
        ]

    def tearDown(self):
        self.tmpdir.cleanup()

    def path(self, name):
        return os.path.join(self.tmpdir.name, name)

    def test_choose_sheet_prefers_configured_names(self):
        self.assertEqual(
            SpreadsheetLoader.choose_sheet(['Sheet1', 'Open Fcst', 'Notes'], ['Total Demand', 'Open Fcst', 'Sheet1']),
            'Open Fcst'
        )
        self.assertEqual(SpreadsheetLoader.choose_sheet(['Notes', 'Raw'], ['Total Demand']), 'Notes')

    def test_choose_sheet_empty_workbook(self):
        with self.assertRaises(SpreadsheetError):
            SpreadsheetLoader.choose_sheet([], ['Total Demand'])

    def test_excel_round_trip(self):
        """Rows written to a workbook read back with blanks as None."""
        path = SpreadsheetLoader.write_rows(self.rows, self.path('demand.xlsx'))

        with pd.ExcelFile(path) as workbook:
            self.assertEqual(workbook.sheet_names, ['Updated Demand'])

        rows = SpreadsheetLoader.read_rows(path)

        self.assertEqual(len(rows), 3)
        self.assertEqual(list(rows[0]), list(self.rows[0]))
        self.assertEqual(rows[1]['weekly fcst'], 50.5)
        self.assertIsNone(rows[0]['PartDescription'])

    def test_csv_round_trip(self):
        path = SpreadsheetLoader.write_rows(self.rows, self.path('demand.csv'))

        rows = SpreadsheetLoader.read_rows(path)

        self.assertEqual([row['Product Number'] for row in rows], ['A', 'B', 'C'])
        self.assertEqual(rows[2]['weekly fcst'], 7)

    def test_preferred_sheet_is_read(self):
        """Without an explicit sheet the first preferred sheet present is used."""
        path = self.path('workbook.xlsx')
        with pd.ExcelWriter(path) as writer:
            pd.DataFrame([{'note': 'ignore me'}]).to_excel(writer, sheet_name='Notes', index=False)
            pd.DataFrame(self.rows).to_excel(writer, sheet_name='Demand', index=False)

        rows = SpreadsheetLoader.read_rows(path)
        self.assertEqual(len(rows), 3)

        notes = SpreadsheetLoader.read_rows(path, sheet_name='Notes')
        self.assertEqual(notes, [{'note': 'ignore me'}])

    def test_unknown_sheet(self):
        path = SpreadsheetLoader.write_rows(self.rows, self.path('demand.xlsx'))

        with self.assertRaises(SpreadsheetError) as context:
            SpreadsheetLoader.read_rows(path, sheet_name='Missing')

        self.assertEqual(context.exception.code, 'SHEET_NOT_FOUND')

    def test_unsupported_extension(self):
        with self.assertRaises(SpreadsheetError) as context:
            SpreadsheetLoader.read_rows(self.path('demand.txt'))

        self.assertEqual(context.exception.code, 'UNSUPPORTED_FILE')
        self.assertIn('.xlsx', context.exception.message)

    def test_missing_file(self):
        with self.assertRaises(SpreadsheetError) as context:
            SpreadsheetLoader.read_rows(self.path('absent.xlsx'))

        self.assertEqual(context.exception.code, 'FILE_NOT_FOUND')

    def test_engine_export_round_trip(self):
        """An exported workbook loads back into an equivalent engine."""
        engine = DemandTransferEngine()
        engine.load_records(self.rows)
        engine.stage_bulk('D1', 'A')
        engine.execute('D1')

        path = SpreadsheetLoader.write_rows(engine.export_records(), self.path('Updated_Demand_Data.xlsx'))

        reloaded = DemandTransferEngine()
        reloaded.load_records(SpreadsheetLoader.read_rows(path))

        records = reloaded.store.for_dfu('D1')
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].variant, 'A')
        self.assertEqual(records[0].quantity, 150.5)
        self.assertTrue(records[0].history.startswith('PIPO [B → 50.5 @ '))
        self.assertEqual(reloaded.store.for_dfu('D2')[0].history, '')


if __name__ == '__main__':
    unittest.main()
