"""
Tests for utility helpers, models and exceptions.
"""
import logging
import math
import unittest
from datetime import datetime

from demand_transfer.config import config
from demand_transfer.core.transfer import ambiguous_calendar_weeks, history_entry
from demand_transfer.exceptions import ConfigError, DemandTransferError, ValidationError
from demand_transfer.logging_setup import APP_LOGGER_NAME, get_logger, logger
from demand_transfer.models import ColumnMapping, DemandRecord, PlanType, TransferPlan, WeekKey
from demand_transfer.services.engine import DemandTransferEngine
from demand_transfer.utils.date_utils import capture_timestamp, format_timestamp
from demand_transfer.utils.math_utils import format_quantity, normalize_identifier, to_quantity
from demand_transfer.utils.validation import find_missing_columns


class TestMathUtils(unittest.TestCase):
    """Test cases for quantity and identifier helpers."""

    def test_to_quantity(self):
        self.assertEqual(to_quantity(12), 12.0)
        self.assertEqual(to_quantity(' 1,250.5 '), 1250.5)
        self.assertEqual(to_quantity(None), 0.0)
        self.assertEqual(to_quantity(''), 0.0)
        self.assertEqual(to_quantity('n/a'), 0.0)
        self.assertEqual(to_quantity(math.nan), 0.0)
        self.assertEqual(to_quantity(True), 0.0)

    def test_normalize_identifier(self):
        self.assertEqual(normalize_identifier(7), '7')
        self.assertEqual(normalize_identifier(7.0), '7')
        self.assertEqual(normalize_identifier(' 7 '), '7')
        self.assertEqual(normalize_identifier(7.5), '7.5')
        self.assertEqual(normalize_identifier(math.nan), '')
        self.assertEqual(normalize_identifier(None), '')

    def test_format_quantity(self):
        self.assertEqual(format_quantity(150.0), '150')
        self.assertEqual(format_quantity(33.3), '33.3')
        self.assertEqual(format_quantity(0.1 + 0.2), '0.3')


class TestTimestamps(unittest.TestCase):

    def test_capture_truncates_microseconds(self):
        moment = capture_timestamp(datetime(2025, 1, 2, 3, 4, 5, 678))
        self.assertEqual(moment, datetime(2025, 1, 2, 3, 4, 5))

    def test_default_format(self):
        self.assertEqual(format_timestamp(datetime(2025, 1, 2, 13, 4, 5)), '02/01/2025, 13:04:05')


class TestModels(unittest.TestCase):
    """Test cases for model helpers."""

    def test_week_key_parse(self):
        self.assertEqual(WeekKey.parse('12-DC-North'), WeekKey('12', 'DC-North'))
        self.assertEqual(str(WeekKey('12', 'L1')), '12-L1')
        self.assertEqual(WeekKey.coerce((3.0, 'L1')), WeekKey('3', 'L1'))

    def test_record_from_row_keeps_extra_columns(self):
        record = DemandRecord.from_row(
            {'DFU': 1, 'Product Number': 2.0, 'weekly fcst': '5', 'Plant Location': 'P1',
             'Week Number': 3, 'Region': 'West'},
            ColumnMapping()
        )

        self.assertEqual((record.dfu_code, record.variant, record.quantity), ('1', '2', 5.0))
        self.assertEqual(record.extra, {'Region': 'West'})
        self.assertEqual(record.calendar_key(), ('3', ''))

    def test_append_history_tags_first_entry_only(self):
        record = DemandRecord('D1', 'A')
        record.append_history('[B → 1 @ t]')
        record.append_history('[C → 2 @ t]')

        self.assertEqual(record.history, 'PIPO [B → 1 @ t] [C → 2 @ t]')

    def test_split_conserves_quantity(self):
        record = DemandRecord('D1', 'A', 100, '1', 'L1', history='PIPO [B → 1 @ t]')

        part = record.split(40)

        self.assertEqual((record.quantity, part.quantity), (60, 40))
        self.assertEqual(part.history, '')
        self.assertEqual(part.week_key(), record.week_key())

    def test_plan_kind_priority(self):
        self.assertEqual(TransferPlan().kind, PlanType.NONE)
        self.assertEqual(TransferPlan(individual={'A': 'B'}, bulk_target='C').kind, PlanType.BULK)
        self.assertEqual(TransferPlan(individual={'A': 'B'}, granular={'C': {}}).kind, PlanType.INDIVIDUAL)

    def test_missing_columns(self):
        missing = find_missing_columns(['DFU', 'Week Number'], ColumnMapping())
        self.assertEqual(missing, ['Product Number', 'weekly fcst', 'Plant Location'])


class TestTransferHelpers(unittest.TestCase):

    def test_history_entry(self):
        self.assertEqual(history_entry('A', 40.0, 'ts'), '[A → 40 @ ts]')
        self.assertEqual(history_entry('A', 40.5, 'ts', week='3'), '[W3 A → 40.5 @ ts]')

    def test_ambiguous_calendar_weeks(self):
        rows = [
            DemandRecord('D1', 'A', 1, '1', 'L1', calendar_week='2025-01'),
            DemandRecord('D1', 'B', 1, '1', 'L1', calendar_week='2025-02'),
            DemandRecord('D1', 'A', 1, '2', 'L1', calendar_week='2025-03'),
        ]

        self.assertEqual(ambiguous_calendar_weeks(rows), {'1': {'2025-01', '2025-02'}})


class TestExceptions(unittest.TestCase):

    def test_str_and_dict(self):
        error = ConfigError("Missing required columns: weekly fcst", code='MISSING_COLUMNS',
                            details={'missing_columns': ['weekly fcst']})

        self.assertIsInstance(error, DemandTransferError)
        self.assertEqual(str(error), '[MISSING_COLUMNS] Missing required columns: weekly fcst')
        self.assertEqual(error.to_dict(), {
            'error': 'ConfigError',
            'message': 'Missing required columns: weekly fcst',
            'code': 'MISSING_COLUMNS',
            'details': {'missing_columns': ['weekly fcst']}
        })

    def test_default_message(self):
        self.assertEqual(str(ValidationError()), ValidationError().message)


class TestConfig(unittest.TestCase):
    """Test cases for the configuration manager."""

    def test_defaults(self):
        self.assertEqual(ColumnMapping.from_config(config), ColumnMapping())
        self.assertEqual(config.transfer_config['history_tag'], 'PIPO')
        self.assertEqual(config.export_config['file_name'], 'Updated_Demand_Data.xlsx')
        self.assertEqual(config.import_config['sheet_names'][0], 'Total Demand')

    def test_reading_never_writes_settings_file(self):
        """Configuration is read-only at runtime."""
        existed = config._config_path.exists()

        engine = DemandTransferEngine()
        engine.load_records([{'DFU': 'D1', 'Product Number': 'A', 'weekly fcst': 1,
                              'Plant Location': 'P1', 'Week Number': 1}])

        self.assertEqual(config._config_path.exists(), existed)
        self.assertFalse(hasattr(config, 'set'))


class TestLogging(unittest.TestCase):
    """Test cases for the logging manager."""

    def setUp(self):
        """Set up test fixtures."""
        self.root = logging.getLogger()
        self.root_level = self.root.level

    def tearDown(self):
        logger.reset_root_logger()
        self.root.setLevel(self.root_level)

    def test_package_logger_propagates(self):
        """Importing the package leaves log routing to the root logger."""
        package_logger = get_logger(APP_LOGGER_NAME)

        self.assertTrue(package_logger.propagate)
        self.assertEqual(package_logger.handlers, [])
        self.assertIs(get_logger(APP_LOGGER_NAME), package_logger)

    def test_configure_root_logger_replaces_own_handlers(self):
        """Configuring twice attaches one set of handlers and keeps foreign ones."""
        foreign = logging.NullHandler()
        self.root.addHandler(foreign)
        try:
            first = logger.configure_root_logger()
            second = logger.configure_root_logger()

            self.assertTrue(second)
            for handler in first:
                self.assertNotIn(handler, self.root.handlers)
            for handler in second:
                self.assertIn(handler, self.root.handlers)
            self.assertIn(foreign, self.root.handlers)

            logger.reset_root_logger()
            for handler in second:
                self.assertNotIn(handler, self.root.handlers)
            self.assertIn(foreign, self.root.handlers)
        finally:
            self.root.removeHandler(foreign)


if __name__ == '__main__':
    unittest.main()
