# liftlog/parsing.py
# -----------------------------------------------------------------------------
# Conversion of loosely typed workout fields into numbers. Runs once, at the
# API boundary; stored rows are already numeric.
# -----------------------------------------------------------------------------

from __future__ import annotations

import re
from typing import Any, Optional

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_NON_DIGIT_RE = re.compile(r"[^0-9]")


def parse_weight(val: Any) -> Optional[float]:
    """Parse a weight like '135', '135 lbs' or '62.5kg'.

    Missing or blank input is None (not logged). Anything else has its
    non-numeric characters stripped; a value with no digits left is 0.0.
    """
    if val is None:
        return None
    if isinstance(val, bool):
        raise ValueError("weight must be a number or a string")
    if isinstance(val, (int, float)):
        return float(val)
    s = str(val).strip()
    if not s:
        return None
    cleaned = _NON_NUMERIC_RE.sub("", s)
    try:
        return float(cleaned)
    except ValueError:
        pass
    # '1.2.3' style leftovers: keep the leading number
    m = re.match(r"\d*\.?\d+", cleaned)
    return float(m.group(0)) if m else 0.0


def parse_count(val: Any) -> Optional[int]:
    """Parse a sets/reps value: plain int, '1+1+1' sum notation, or '12 reps'."""
    if val is None:
        return None
    if isinstance(val, bool):
        raise ValueError("count must be a number or a string")
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return int(val)
    s = str(val).strip()
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        pass
    if "+" in s:
        try:
            return sum(int(p) for p in s.split("+"))
        except ValueError:
            pass
    digits = _NON_DIGIT_RE.sub("", s)
    return int(digits) if digits else None


def format_weight(w: float) -> str:
    """100.0 -> '100', 102.5 -> '102.5'."""
    return f"{w:g}"
