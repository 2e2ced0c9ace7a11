from .config import config
from .logging_setup import logger, get_logger
from .exceptions import (
    DemandTransferError, ConfigError, ValidationError, NotFoundError,
    TransferError, SpreadsheetError
)
from .models import (
    ColumnMapping, DemandRecord, DFUView, CompletionRecord, TransferPlan,
    PlanType, DFUState, WeekKey
)
from .services.engine import DemandTransferEngine

__all__ = [
    'config',
    'logger',
    'get_logger',
    'DemandTransferError',
    'ConfigError',
    'ValidationError',
    'NotFoundError',
    'TransferError',
    'SpreadsheetError',
    'ColumnMapping',
    'DemandRecord',
    'DFUView',
    'CompletionRecord',
    'TransferPlan',
    'PlanType',
    'DFUState',
    'WeekKey',
    'DemandTransferEngine'
]
