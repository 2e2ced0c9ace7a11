import os
import configparser
from pathlib import Path

DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'


class Config:
    """Configuration manager for the Demand Transfer tool."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(os.environ.get('DEMAND_TRANSFER_CONFIG', DEFAULT_CONFIG_PATH))
        self._config = configparser.ConfigParser(interpolation=None)

        # Defaults first, then whatever the settings file overrides
        self._load_defaults()
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def _load_defaults(self):
        """Populate the default configuration."""
        self._config['COLUMNS'] = {
            'dfu': 'DFU',
            'variant': 'Product Number',
            'quantity': 'weekly fcst',
            'description': 'PartDescription',
            'plant_location': 'Plant Location',
            'calendar_week': 'Calendar.week',
            'source_location': 'Source Location',
            'week_number': 'Week Number',
            'history': 'Transfer History'
        }

        self._config['IMPORT'] = {
            'sheet_names': 'Total Demand, Open Fcst, Demand, Sheet1'
        }

        self._config['EXPORT'] = {
            'sheet_name': 'Updated Demand',
            'file_name': 'Updated_Demand_Data.xlsx'
        }

        self._config['TRANSFER'] = {
            'history_tag': 'PIPO',
            'timestamp_format': '%d/%m/%Y, %H:%M:%S'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True',
            'file_output': 'False'
        }

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_list(self, section, key, default=None):
        """Get a comma separated configuration value as a list of strings."""
        value = self.get(section, key)
        if value is None:
            return default if default is not None else []
        return [item.strip() for item in value.split(',') if item.strip()]

    @property
    def column_config(self):
        """Get the logical field to column name binding."""
        return dict(self._config.items('COLUMNS')) if self._config.has_section('COLUMNS') else {}

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', False)
        }

    @property
    def import_config(self):
        """Get spreadsheet import configuration."""
        return {
            'sheet_names': self.get_list('IMPORT', 'sheet_names', ['Total Demand', 'Open Fcst', 'Demand', 'Sheet1'])
        }

    @property
    def export_config(self):
        """Get spreadsheet export configuration."""
        return {
            'sheet_name': self.get('EXPORT', 'sheet_name', 'Updated Demand'),
            'file_name': self.get('EXPORT', 'file_name', 'Updated_Demand_Data.xlsx')
        }

    @property
    def transfer_config(self):
        """Get transfer execution configuration."""
        return {
            'history_tag': self.get('TRANSFER', 'history_tag', 'PIPO'),
            'timestamp_format': self.get('TRANSFER', 'timestamp_format', '%d/%m/%Y, %H:%M:%S')
        }

# Global config instance
config = Config()
