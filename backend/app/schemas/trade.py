import datetime as dt

from pydantic import BaseModel, Field

from app.models.shift_trade import ShiftTradeStatus, SwapInterestStatus
from app.services.trade_machine import TradeAction


class ShiftTradeCreate(BaseModel):
    shift_id: str = Field(min_length=1, max_length=36)
    reason: str | None = Field(default=None, max_length=2000)


class ShiftTradeUpdate(BaseModel):
    action: TradeAction
    response_note: str | None = Field(default=None, max_length=1000)


class SwapInterestCreate(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class TradeAssign(BaseModel):
    interest_id: str = Field(min_length=1, max_length=36)


class TradeShiftOut(BaseModel):
    id: str
    title: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    location: str | None = None
    department: str | None = None
    is_cancelled: bool

    model_config = {"from_attributes": True}


class ShiftTradeOut(BaseModel):
    id: str
    requester_id: str
    shift_id: str
    reason: str | None = None
    status: ShiftTradeStatus
    target_user_id: str | None = None
    response_note: str | None = None
    approved_by_id: str | None = None
    approved_at: dt.datetime | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    shift: TradeShiftOut | None = None

    model_config = {"from_attributes": True}


class SwapInterestOut(BaseModel):
    id: str
    trade_request_id: str
    instructor_id: str
    status: SwapInterestStatus
    notes: str | None = None
    created_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class SwapInterestListOut(BaseModel):
    interests: list[SwapInterestOut]
    my_interest: SwapInterestOut | None = None
    count: int


class TradeAssignmentOut(BaseModel):
    trade: ShiftTradeOut
    assigned: SwapInterestOut
    declined_count: int
