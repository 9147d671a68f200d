"""
Shared pydantic base and id/time helpers for wire models.
"""

import threading
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class MonotonicClock:
    """
    UTC clock that never returns the same instant twice in this process.
    Latest-wins and timeline ordering compare created_at first, so two
    writes in the same microsecond must still be ordered.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last = None

    def __call__(self) -> datetime:
        with self._lock:
            now = utcnow()
            if self._last is not None and now <= self._last:
                now = self._last + timedelta(microseconds=1)
            self._last = now
            return now


clock = MonotonicClock()


class ApiModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
