import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Union

# Set up logging
logger = logging.getLogger(__name__)

MONTHS = {
    "01": "Jan", "02": "Feb", "03": "Mar", "04": "Apr", "05": "May", "06": "Jun",
    "07": "Jul", "08": "Aug", "09": "Sep", "10": "Oct", "11": "Nov", "12": "Dec",
}

STRIKE_KEYS = ("strikePrice", "strike_price", "strike")
EXPIRY_KEYS = ("expiryDate", "expiry")
LAST_PRICE_KEYS = ("lastPrice", "last_traded_price", "last_price", "ltp")
SIDE_KEYS = {
    "CE": ("CE", "call"),
    "PE": ("PE", "put"),
}

Number = Union[int, float]


def format_expiry(expiry: Any) -> Optional[str]:
    """
    Convert a YYYYMMDD expiry into the DD-Mon-YYYY form used by chain rows.

    Args:
        expiry: Expiry token such as '20250227'

    Returns:
        Optional[str]: '27-Feb-2025', or None when the token is not a valid
        8 digit date (meaning: do not filter by expiry)
    """
    if expiry is None:
        return None
    token = str(expiry).strip()
    if len(token) != 8 or not token.isdigit():
        return None
    year, month, day = token[:4], token[4:6], token[6:]
    if month not in MONTHS:
        return None
    return f"{day}-{MONTHS[month]}-{year}"


def _first_present(data: Any, keys: Sequence[str]) -> Any:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _first_truthy(data: Any, keys: Sequence[str]) -> Any:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def to_number(value: Any) -> Optional[float]:
    """Coerce a payload value to a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def chain_rows(snapshot: Any) -> List[Dict[str, Any]]:
    """Rows of a chain snapshot, preferring the filtered view over all records."""
    if not isinstance(snapshot, dict):
        return []
    for container in ("filtered", "records"):
        section = snapshot.get(container)
        rows = section.get("data") if isinstance(section, dict) else None
        if rows and isinstance(rows, list):
            return rows
    return []


def row_strike(row: Any) -> Optional[float]:
    return to_number(_first_present(row, STRIKE_KEYS))


def row_expiry(row: Any) -> Optional[Any]:
    expiry = _first_truthy(row, EXPIRY_KEYS)
    if expiry:
        return expiry
    if not isinstance(row, dict):
        return None
    for side in ("CE", "PE"):
        expiry = _first_truthy(row.get(side), ("expiryDate",))
        if expiry:
            return expiry
    return None


def option_side(row: Any, option_type: str) -> Optional[Dict[str, Any]]:
    keys = SIDE_KEYS.get(str(option_type).upper())
    if not keys:
        return None
    side = _first_truthy(row, keys)
    return side if isinstance(side, dict) else None


def last_price(side: Optional[Dict[str, Any]]) -> Number:
    """Last traded price of one side of a row, 0 when missing or not numeric."""
    value = _first_present(side, LAST_PRICE_KEYS)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value if math.isfinite(value) else 0
    number = to_number(value)
    return number if number is not None else 0


def _find_row(
    rows: List[Dict[str, Any]],
    strike: float,
    expiry: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    wanted_expiry = str(expiry).strip() if expiry else None
    for row in rows:
        if wanted_expiry:
            expiry_value = row_expiry(row)
            if expiry_value and str(expiry_value).strip() != wanted_expiry:
                continue
        if row_strike(row) == strike:
            return row
    return None


def resolve_premium(
    snapshot: Any,
    strike: Any,
    option_type: str,
    expiry: Optional[str] = None,
) -> Number:
    """
    Find the last traded premium for a strike and option type.

    Rows matching the requested expiry are searched first; if none of them
    carries the strike, the first row with that strike in any expiry is used.

    Args:
        snapshot: Option chain document
        strike: Strike price, as a number or numeric string
        option_type: 'CE' for calls or 'PE' for puts
        expiry: Expiry in DD-Mon-YYYY form, or None for any expiry

    Returns:
        The premium, or 0 when nothing matches
    """
    wanted_strike = to_number(strike)
    if wanted_strike is None:
        return 0

    rows = chain_rows(snapshot)
    row = _find_row(rows, wanted_strike, expiry)
    if row is None and expiry:
        row = _find_row(rows, wanted_strike)
    if row is None:
        logger.debug(f"No row for strike {strike} ({option_type}), expiry {expiry or 'any'}")
        return 0

    return last_price(option_side(row, option_type))
