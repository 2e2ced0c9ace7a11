# demand_transfer/utils/date_utils.py
from datetime import datetime
from typing import Optional

DEFAULT_TIMESTAMP_FORMAT = '%d/%m/%Y, %H:%M:%S'

def capture_timestamp(now: Optional[datetime] = None) -> datetime:
    """Capture the timestamp shared by every entry of one execution.

    Args:
        now: Optional fixed time (tests pass one in)

    Returns:
        Timestamp truncated to whole seconds
    """
    moment = now or datetime.now()
    return moment.replace(microsecond=0)

def format_timestamp(moment: datetime, fmt: Optional[str] = None) -> str:
    """Format a timestamp the way it is written into transfer history.

    Args:
        moment: Timestamp to format
        fmt: strftime format, defaults to day/month/year with a 24h clock

    Returns:
        Formatted timestamp string
    """
    return moment.strftime(fmt or DEFAULT_TIMESTAMP_FORMAT)
