from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class PolymarketMarket(BaseModel):
    id: str
    condition_id: str
    question: str
    slug: str = ""
    end_date: datetime | None = None
    volume: float = 0.0
    volume_24h: float = 0.0
    liquidity: float = 0.0
    active: bool = True
    closed: bool = False
    last_trade_price: float = 0.0
    tags: list[str] = Field(default_factory=list)


class PolymarketTrade(BaseModel):
    proxy_wallet: str
    side: Literal["BUY", "SELL"]
    condition_id: str
    size: float
    price: float
    timestamp: int
    asset: str = ""
    title: str | None = None
    slug: str | None = None
    outcome: str | None = None
    outcome_index: int | None = None
    transaction_hash: str | None = None


class PolymarketPosition(BaseModel):
    proxy_wallet: str
    condition_id: str
    size: float = 0.0
    avg_price: float = 0.0
    current_price: float = 0.0
    title: str | None = None
    outcome: str | None = None
