"""
Sliding-window rate limiting backed by a log table.

Each accepted action appends an ``(ip, timestamp)`` row. A check first sweeps
rows older than the window for every address, which keeps the log table
bounded, then counts what is left for the caller's address.
"""

import time
from typing import Callable, Optional, Type

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class RateLimiter:
    """Sweep-then-count limiter over one log model (``SubmissionLog`` etc.)."""

    def __init__(self, db: Session, log_model: Type, clock: Clock = now_ms):
        self.db = db
        self.log_model = log_model
        self.clock = clock

    def sweep(self, cutoff: int) -> int:
        """Delete log rows older than ``cutoff`` for all addresses."""
        result = self.db.execute(delete(self.log_model).where(self.log_model.timestamp < cutoff))
        self.db.commit()
        return result.rowcount

    def count(self, identifier: str, window_ms: int, now: Optional[int] = None) -> int:
        if now is None:
            now = self.clock()
        cutoff = now - window_ms
        stmt = (
            select(func.count())
            .select_from(self.log_model)
            .where(self.log_model.ip == identifier, self.log_model.timestamp > cutoff)
        )
        return self.db.execute(stmt).scalar_one()

    def check(self, identifier: str, window_ms: int, max_count: int) -> bool:
        """Return True when ``identifier`` has fewer than ``max_count`` events in the window."""
        now = self.clock()
        self.sweep(now - window_ms)
        return self.count(identifier, window_ms, now=now) < max_count

    def record(self, identifier: str) -> None:
        self.db.execute(insert(self.log_model).values(ip=identifier, timestamp=self.clock()))
        self.db.commit()
