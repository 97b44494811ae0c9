from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_coordinator, get_current_user
from app.models.substitute_request import SubstituteRequestStatus
from app.models.user import User
from app.schemas.substitute_request import (
    LabDayOut,
    SubstituteRequestCreate,
    SubstituteRequestOut,
    SubstituteRequestUpdate,
)
from app.services.coverage import CoverageCoordinator, SubstituteRequestView

router = APIRouter()


def _request_out(view: SubstituteRequestView) -> SubstituteRequestOut:
    lab_day = LabDayOut.model_validate(view.lab_day) if view.lab_day is not None else None
    return SubstituteRequestOut.model_validate(view.request).model_copy(update={"lab_day": lab_day})


@router.get("/substitute-requests", response_model=list[SubstituteRequestOut])
def list_substitute_requests(
    request_status: SubstituteRequestStatus | None = Query(default=None, alias="status"),
    pending_only: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> list[SubstituteRequestOut]:
    views = coordinator.list_substitute_requests(current_user, status=request_status, pending_only=pending_only)
    return [_request_out(item) for item in views]


@router.post("/substitute-requests", response_model=SubstituteRequestOut, status_code=status.HTTP_201_CREATED)
def create_substitute_request(
    payload: SubstituteRequestCreate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> SubstituteRequestOut:
    request = coordinator.create_substitute_request(
        current_user,
        lab_day_id=payload.lab_day_id,
        reason=payload.reason,
        reason_details=payload.reason_details,
    )
    lab_day = coordinator.directory.get_lab_day(request.lab_day_id)
    return _request_out(SubstituteRequestView(request=request, lab_day=lab_day))


@router.put("/substitute-requests/{request_id}", response_model=SubstituteRequestOut)
def update_substitute_request(
    request_id: str,
    payload: SubstituteRequestUpdate,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> SubstituteRequestOut:
    request = coordinator.review_substitute_request(
        current_user,
        request_id,
        payload.action,
        review_notes=payload.review_notes,
        covered_by=payload.covered_by,
    )
    lab_day = coordinator.directory.get_lab_day(request.lab_day_id)
    return _request_out(SubstituteRequestView(request=request, lab_day=lab_day))


@router.delete("/substitute-requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_substitute_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    coordinator: CoverageCoordinator = Depends(get_coordinator),
) -> Response:
    coordinator.delete_substitute_request(current_user, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
