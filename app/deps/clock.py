import os
from datetime import datetime
from zoneinfo import ZoneInfo


def cafe_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("CAFE_TIMEZONE") or "Europe/Rome")


def get_now() -> datetime:
    # naive wall-clock time at the café; stamps and birthdays follow it
    return datetime.now(cafe_timezone()).replace(tzinfo=None)
