"""Helpers shared by the test modules."""

from datetime import datetime

from app.core.security import create_actor_token
from app.utils.local_time import business_tz

CUSTOMER_ID = 1
OTHER_CUSTOMER_ID = 2
STAFF_ID = 100
ADMIN_ID = 101


def local(year, month, day, hour=0, minute=0) -> datetime:
    """Office-local timestamp."""
    return datetime(year, month, day, hour, minute, tzinfo=business_tz())


def auth_headers(actor_id: int, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_actor_token(actor_id, role)}"}
