from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class LivePremiums(BaseModel):
    sellCallPremium: float
    sellPutPremium: float
    hedgeCallPremium: float
    hedgePutPremium: float
    expiry: str


class PremiumPair(BaseModel):
    callPremium: float
    putPremium: float


class ChainTableRow(BaseModel):
    strike_price: float
    expiry_date: Optional[str] = None
    ce_last_price: float
    pe_last_price: float


class ChainStatus(BaseModel):
    has_snapshot: bool
    is_fresh: bool
    ttl_seconds: float
    fetched_at: Optional[datetime] = None
    age_seconds: Optional[float] = None
    row_count: int = 0


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
