"""Helpers for skill swap agreements: duration parsing, timeline estimate, swop ids."""

import random
import re
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from swophere.constants.constants import (
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    DEFAULT_SKILL_DURATION_DAYS,
    DEFAULT_TIMELINE_DAYS,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_BASE36 = string.digits + string.ascii_lowercase


class DurationUnit(str, Enum):
    month = "month"
    week = "week"
    unitless = "unitless"
    unparsed = "unparsed"


@dataclass(frozen=True)
class ParsedDuration:
    """Result of reading a free-text duration such as "2 weeks"."""

    unit: DurationUnit
    amount: Optional[int] = None

    @property
    def days(self) -> Optional[int]:
        """Estimated days, or None when the duration contributes nothing."""
        if self.unit == DurationUnit.month:
            return self.amount * DAYS_PER_MONTH if self.amount is not None else None
        if self.unit == DurationUnit.week:
            return self.amount * DAYS_PER_WEEK if self.amount is not None else None
        if self.unit == DurationUnit.unitless:
            return self.amount or DEFAULT_SKILL_DURATION_DAYS
        return DEFAULT_SKILL_DURATION_DAYS


def _leading_int(text: str) -> Optional[int]:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def parse_duration(text: Optional[str]) -> ParsedDuration:
    """
    Classify a duration string.

    Only the first matching unit is considered ("month" wins over "week"),
    and only the leading integer is read, so "1 month 2 weeks" is one month.
    """
    text = text or ""
    amount = _leading_int(text)

    if "month" in text:
        return ParsedDuration(DurationUnit.month, amount)
    if "week" in text:
        return ParsedDuration(DurationUnit.week, amount)
    if amount is not None:
        return ParsedDuration(DurationUnit.unitless, amount)
    return ParsedDuration(DurationUnit.unparsed)


def _skill_duration(skill: Any) -> Optional[str]:
    if isinstance(skill, Mapping):
        return skill.get("duration")
    return getattr(skill, "duration", None)


def calculate_timeline_days(skills: Optional[Iterable[Any]]) -> int:
    """
    Estimate an agreement's timeline as the longest skill duration in days.

    Falls back to DEFAULT_TIMELINE_DAYS when there are no skills or no
    skill yields a positive estimate.
    """
    longest = 0
    for skill in skills or []:
        days = parse_duration(_skill_duration(skill)).days
        if days is not None:
            longest = max(longest, days)
    return longest if longest > 0 else DEFAULT_TIMELINE_DAYS


def generate_swop_id() -> str:
    """SKILL_SWOP_<epoch millis>_<9 random base36 chars>"""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"SKILL_SWOP_{int(time.time() * 1000)}_{suffix}"
