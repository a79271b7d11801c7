import logging
from typing import Any, Optional

import pandas as pd

from live_premiums.utils.premiums import chain_rows, last_price, option_side, row_expiry, row_strike

# Set up logging
logger = logging.getLogger(__name__)

COLUMNS = ["strike_price", "expiry_date", "ce_last_price", "pe_last_price"]


def build_chain_table(snapshot: Any, expiry: Optional[str] = None) -> pd.DataFrame:
    """
    Flatten a chain snapshot into one row per strike and expiry.

    Args:
        snapshot: Option chain document
        expiry: Expiry in DD-Mon-YYYY form; rows of other expiries are dropped

    Returns:
        DataFrame with strike_price, expiry_date, ce_last_price and
        pe_last_price columns, sorted by strike
    """
    records = []
    for row in chain_rows(snapshot):
        strike = row_strike(row)
        if strike is None:
            continue
        expiry_value = row_expiry(row)
        records.append({
            "strike_price": strike,
            "expiry_date": str(expiry_value).strip() if expiry_value else None,
            "ce_last_price": last_price(option_side(row, "CE")),
            "pe_last_price": last_price(option_side(row, "PE")),
        })

    table = pd.DataFrame(records, columns=COLUMNS)
    if expiry:
        table = table[table["expiry_date"] == str(expiry).strip()]

    table = table.sort_values("strike_price", kind="stable").reset_index(drop=True)
    logger.debug(f"Built chain table with {len(table)} rows for expiry {expiry or 'any'}")
    return table
