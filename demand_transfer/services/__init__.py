from .record_store import RecordStore
from .planner import TransferPlanner
from .executor import TransferExecutor
from .engine import DemandTransferEngine

__all__ = [
    'RecordStore',
    'TransferPlanner',
    'TransferExecutor',
    'DemandTransferEngine'
]
