"""Business clock: resolves "today" and "now" in the configured time zone"""

import logging
from datetime import date, datetime

from dateutil import tz

from ..config import BUSINESS_TIMEZONE

logger = logging.getLogger(__name__)


class Clock:
    def __init__(self, timezone_name: str = BUSINESS_TIMEZONE):
        zone = tz.gettz(timezone_name)
        if zone is None:
            logger.warning(f"⚠️ Unknown time zone '{timezone_name}', falling back to UTC")
            zone = tz.UTC
        self.timezone_name = timezone_name
        self.zone = zone

    def now(self) -> datetime:
        return datetime.now(self.zone)

    def today(self) -> date:
        return self.now().date()

    def minutes_now(self) -> int:
        current = self.now()
        return current.hour * 60 + current.minute


business_clock = Clock()


def get_clock() -> Clock:
    """Dependency injection for the business clock"""
    return business_clock
