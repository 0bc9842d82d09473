"""
Session statistics: message count and elapsed time.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from uai.session.models import Session


@dataclass(frozen=True)
class SessionStats:
    message_count: int = 0
    duration: str = "0m0s"


EMPTY_STATS = SessionStats()


def format_duration(seconds: float) -> str:
    """Format as whole minutes and whole seconds, truncating the remainder."""
    total = max(int(seconds), 0)
    minutes, secs = divmod(total, 60)
    return f"{minutes}m{secs}s"


def compute_stats(session: Optional[Session], now: Optional[datetime] = None) -> SessionStats:
    """
    Summarize a session record.

    Open sessions are measured against ``now``, so their duration is a live
    estimate. A missing session yields the zero value.
    """
    if session is None:
        return EMPTY_STATS

    end = session.end_time or now or datetime.now(timezone.utc)
    elapsed = (end - session.start_time).total_seconds()
    return SessionStats(
        message_count=len(session.messages),
        duration=format_duration(elapsed),
    )
