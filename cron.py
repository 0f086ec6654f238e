"""Minute-resolution cron gate built on APScheduler's cron trigger."""
from __future__ import annotations

import datetime
import functools
import logging
from typing import Tuple

import pytz
from apscheduler.triggers.cron import CronTrigger

_LOGGER = logging.getLogger(__name__)

# Standard cron numbers Sunday as 0 (and 7); APScheduler numbers Monday as 0.
_DOW_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

# Descriptor shorthands and their five-field equivalents.
DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}


def _expand_dow_item(item: str) -> str:
    """Rewrite one numeric day-of-week item using day names."""

    base, _, step_text = item.partition("/")
    step = int(step_text) if step_text else 1
    if step <= 0:
        raise ValueError(f"invalid step in day-of-week field: {item!r}")

    if base == "*":
        if not step_text:
            return item
        start, end = 0, 6
    elif "-" in base:
        first, last = base.split("-", 1)
        if not (first.isdigit() and last.isdigit()):
            return item
        start, end = int(first), int(last)
    elif base.isdigit():
        start = int(base)
        end = 6 if step_text else start
    else:
        return item

    if not (0 <= start <= 7 and 0 <= end <= 7) or start > end:
        raise ValueError(f"day-of-week out of range: {item!r}")

    days = []
    for number in range(start, end + 1, step):
        name = _DOW_NAMES[number % 7]
        if name not in days:
            days.append(name)
    return ",".join(days)


def parse_cron(expr: str) -> dict[str, str]:
    """Split a five-field expression (or a descriptor) into CronTrigger keyword arguments."""

    fields = DESCRIPTORS.get(expr.strip().lower(), expr).split()
    if len(fields) != 5:
        raise ValueError(f"expected 5 fields, got {len(fields)}")
    minute, hour, day, month, day_of_week = fields
    day_of_week = ",".join(_expand_dow_item(item) for item in day_of_week.split(","))
    return {
        "minute": minute,
        "hour": hour,
        "day": day,
        "month": month,
        "day_of_week": day_of_week,
    }


@functools.lru_cache(maxsize=128)
def _triggers(expr: str) -> Tuple[CronTrigger, ...]:
    """Build the triggers for *expr*; empty when it is invalid.

    With both day fields restricted a minute matches when either day field
    does, so each day field gets a trigger of its own.
    """

    try:
        fields = parse_cron(expr)
        if fields["day"] != "*" and fields["day_of_week"] != "*":
            return (
                CronTrigger(timezone=pytz.utc, **dict(fields, day_of_week="*")),
                CronTrigger(timezone=pytz.utc, **dict(fields, day="*")),
            )
        return (CronTrigger(timezone=pytz.utc, **fields),)
    except ValueError as exc:
        _LOGGER.warning("Invalid cron expression %r: %s", expr, exc)
        return ()


def matches(expr: str, moment: datetime.datetime) -> bool:
    """Return True when *moment*'s wall-clock minute satisfies *expr*.

    Seconds are ignored.  An invalid expression never matches.
    """

    triggers = _triggers(expr.strip())
    if not triggers:
        return False

    minute = moment.replace(second=0, microsecond=0, tzinfo=None)
    minute = pytz.utc.localize(minute)
    return any(t.get_next_fire_time(None, minute) == minute for t in triggers)
