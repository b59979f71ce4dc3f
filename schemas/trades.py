from typing import List, Optional
from pydantic import BaseModel, Field

from schemas.strategies import ChecklistItemState


class TradeCreateRequest(BaseModel):
    strategy_id: str
    ticker: str
    checklist: List[ChecklistItemState] = Field(default_factory=list)
    # Client-generated id; resubmitting it does not open a second trade.
    trade_id: Optional[str] = None


class TradeUpdateRequest(BaseModel):
    entry_price: Optional[float] = None
    shares_quantity: Optional[float] = None
    current_price: Optional[float] = None


class TradeCloseRequest(BaseModel):
    current_price: float
    entry_price: Optional[float] = None
    shares_quantity: Optional[float] = None
