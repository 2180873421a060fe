import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from errors import Result
from validation import TRANSACTION_TYPES

DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y", "%b-%d-%Y", "%b %d %Y"]


@dataclass
class Range:
    """Open interval bound for a filter field: gt < value < lt."""
    gt: Any = None
    lt: Any = None

    def contains(self, value) -> bool:
        if value is None:
            return False
        if self.gt is not None and not value > self.gt:
            return False
        if self.lt is not None and not value < self.lt:
            return False
        return True


# ----------------------
# Parsing helpers
# ----------------------

def _naive_utc(value: datetime) -> datetime:
    # stored dates are naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_date(value) -> Optional[datetime]:
    """Try ISO-8601 and then the known formats. None when nothing matches."""
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    s = value.strip()
    try:
        return _naive_utc(datetime.fromisoformat(s))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def parse_amount(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def _is_given(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key)
    return value is not None and value != ""


# ----------------------
# Filter builder
# ----------------------

def create_transaction_filter(raw: Mapping[str, Any]) -> Result:
    """
    Turn loosely typed query parameters into a validated transaction filter.

    `raw` uses the wire names (userId, fromDate, toDate, amount, minAmount,
    maxAmount, name, note, type, category). On success `Result.data` holds
    `user_id` plus any of `date` (Range), `amount` (float or Range), `name`,
    `note`, `type` and `category`. The first invalid field fails the whole
    filter and `data` is None.

    An exact `amount` always wins: `minAmount`/`maxAmount` are ignored when
    it is present.
    """
    data = {}

    if not _is_given(raw, "userId"):
        return Result.failure("The filter object needs to have a userId property.")
    data["user_id"] = raw["userId"]

    # date
    for key, bound in (("fromDate", "gt"), ("toDate", "lt")):
        if _is_given(raw, key):
            parsed = parse_date(raw[key])
            if parsed is None:
                return Result.failure(f"The given {key} is invalid: {raw[key]}")
            date_range = data.setdefault("date", Range())
            setattr(date_range, bound, parsed)

    # amount
    if _is_given(raw, "amount"):
        parsed = parse_amount(raw["amount"])
        if parsed is None:
            return Result.failure(f"The given amount is not valid: {raw['amount']}")
        data["amount"] = parsed
    elif _is_given(raw, "minAmount") or _is_given(raw, "maxAmount"):
        amount_range = Range()
        for key, bound in (("minAmount", "gt"), ("maxAmount", "lt")):
            if _is_given(raw, key):
                parsed = parse_amount(raw[key])
                if parsed is None:
                    return Result.failure(f"The given {key} is not valid: {raw[key]}")
                setattr(amount_range, bound, parsed)
        data["amount"] = amount_range

    for key in ("name", "note"):
        if _is_given(raw, key):
            if not isinstance(raw[key], str):
                return Result.failure(f"The given {key} is not valid: {raw[key]}")
            data[key] = raw[key]

    if _is_given(raw, "type"):
        if raw["type"] not in TRANSACTION_TYPES:
            return Result.failure(f"The given type is not valid: {raw['type']}")
        data["type"] = raw["type"]

    if _is_given(raw, "category"):
        if not isinstance(raw["category"], str):
            return Result.failure(f"The given category is not valid: {raw['category']}")
        data["category"] = raw["category"]

    return Result.success(data)
