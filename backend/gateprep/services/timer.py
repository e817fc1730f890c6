"""
Server-authoritative session timer.

A session row carries:
- duration_sec: total time allowed (default from SESSION_DURATION_SEC)
- remaining_time: remaining seconds at the last snapshot (NULL = full duration)
- timer_started_at: when the timer last started or resumed
- timer_is_paused: whether the clock is stopped

Running:  remaining = remaining_time - seconds since timer_started_at
Paused:   remaining = remaining_time
Both are clamped to [0, duration_sec].
"""

import json
import math
from datetime import datetime, timezone
from typing import Optional

from gateprep.config import SESSION_DURATION_SEC


def utcnow() -> datetime:
    """Naive UTC now, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clamp_int(value, low: int, high: int) -> int:
    """Floor value to an int and clamp it into [low, high]; junk becomes low."""
    try:
        number = float(value or 0)
    except OverflowError:
        return high if value > 0 else low
    except (TypeError, ValueError):
        return low
    if not math.isfinite(number):
        return low
    return max(low, min(high, math.floor(number)))


def compute_remaining_seconds(session, now: Optional[datetime] = None) -> int:
    duration = clamp_int(session.duration_sec if session.duration_sec is not None
                         else SESSION_DURATION_SEC, 0, 10 ** 9)
    base = duration if session.remaining_time is None else session.remaining_time

    if session.timer_is_paused or not session.timer_started_at:
        return clamp_int(base, 0, duration)

    started_at = session.timer_started_at
    if started_at.tzinfo is not None:
        started_at = started_at.astimezone(timezone.utc).replace(tzinfo=None)

    elapsed = math.floor(((now or utcnow()) - started_at).total_seconds())
    return clamp_int(clamp_int(base, 0, duration) - elapsed, 0, duration)


def snapshot_timer(session, remaining_time=None, paused: Optional[bool] = None,
                   now: Optional[datetime] = None):
    """
    Freeze the clock into remaining_time and restart it from now.

    A client-reported remaining_time is accepted only if it does not give the
    learner more time than the server computes.
    """
    now = now or utcnow()
    server_remaining = compute_remaining_seconds(session, now=now)
    if remaining_time is not None:
        server_remaining = clamp_int(remaining_time, 0, server_remaining)

    session.remaining_time = server_remaining
    session.timer_started_at = now
    if paused is not None:
        session.timer_is_paused = bool(paused)
    return server_remaining


def safe_answers_payload(answers) -> dict:
    """Answers as a dict: mappings pass through, JSON object text is decoded, else {}."""
    if not answers:
        return {}
    if isinstance(answers, dict):
        return answers
    if isinstance(answers, str):
        try:
            loaded = json.loads(answers)
        except (ValueError, TypeError, RecursionError):
            return {}
        return loaded if isinstance(loaded, dict) else {}
    return {}
