from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_coordinator, get_current_user
from app.models.shift_trade import ShiftTradeRequest, ShiftTradeStatus
from app.models.user import User
from app.schemas.trade import (
    ShiftTradeCreate,
    ShiftTradeOut,
    ShiftTradeUpdate,
    SwapInterestCreate,
    SwapInterestListOut,
    SwapInterestOut,
    TradeAssign,
    TradeAssignmentOut,
    TradeShiftOut,
)
from app.services.coverage import CoverageCoordinator, TradeView

router = APIRouter()


def _trade_out(view: TradeView) -> ShiftTradeOut:
    shift = TradeShiftOut.model_validate(view.shift) if view.shift is not None else None
    return ShiftTradeOut.model_validate(view.trade).model_copy(update={"shift": shift})


def _view(coordinator: CoverageCoordinator, trade: ShiftTradeRequest) -> TradeView:
    return TradeView(trade=trade, shift=coordinator.store.shifts.get(trade.shift_id))


@router.get("/trades", response_model=list[ShiftTradeOut])
def list_trades(
    trade_status: ShiftTradeStatus | None = Query(default=None, alias="status"),
    mine: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> list[ShiftTradeOut]:
    views = coordinator.list_trade_requests(current_user, status=trade_status, mine=mine)
    return [_trade_out(item) for item in views]


@router.post("/trades", response_model=ShiftTradeOut, status_code=status.HTTP_201_CREATED)
def create_trade(
    payload: ShiftTradeCreate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftTradeOut:
    trade = coordinator.create_trade_request(current_user, payload.shift_id, reason=payload.reason)
    return _trade_out(_view(coordinator, trade))


@router.put("/trades/{trade_id}", response_model=ShiftTradeOut)
def update_trade(
    trade_id: str,
    payload: ShiftTradeUpdate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> ShiftTradeOut:
    trade = coordinator.review_trade_request(
        current_user,
        trade_id,
        payload.action,
        response_note=payload.response_note,
    )
    return _trade_out(_view(coordinator, trade))


@router.get("/trades/{trade_id}/interest", response_model=SwapInterestListOut)
def list_trade_interest(
    trade_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> SwapInterestListOut:
    board = coordinator.list_trade_interests(current_user, trade_id)
    return SwapInterestListOut(
        interests=[SwapInterestOut.model_validate(item) for item in board.interests],
        my_interest=SwapInterestOut.model_validate(board.my_interest) if board.my_interest is not None else None,
        count=len(board.interests),
    )


@router.post("/trades/{trade_id}/interest", response_model=SwapInterestOut, status_code=status.HTTP_201_CREATED)
def create_trade_interest(
    trade_id: str,
    payload: SwapInterestCreate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> SwapInterestOut:
    interest = coordinator.express_trade_interest(current_user, trade_id, notes=payload.notes)
    return SwapInterestOut.model_validate(interest)


@router.delete("/trades/{trade_id}/interest", status_code=status.HTTP_204_NO_CONTENT)
def delete_trade_interest(
    trade_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> Response:
    coordinator.withdraw_trade_interest(current_user, trade_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/trades/{trade_id}/assign", response_model=TradeAssignmentOut)
def assign_trade(
    trade_id: str,
    payload: TradeAssign,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> TradeAssignmentOut:
    assignment = coordinator.assign_trade_volunteer(current_user, trade_id, payload.interest_id)
    return TradeAssignmentOut(
        trade=_trade_out(_view(coordinator, assignment.trade)),
        assigned=SwapInterestOut.model_validate(assignment.interest),
        declined_count=len(assignment.declined_instructor_ids),
    )
