import datetime as dt

from pydantic import BaseModel, Field

from app.models.substitute_request import SubstituteReason, SubstituteRequestStatus
from app.services.substitute_machine import SubstituteAction


class SubstituteRequestCreate(BaseModel):
    lab_day_id: str = Field(min_length=1, max_length=36)
    reason: SubstituteReason
    reason_details: str | None = Field(default=None, max_length=2000)


class SubstituteRequestUpdate(BaseModel):
    action: SubstituteAction
    review_notes: str | None = Field(default=None, max_length=1000)
    covered_by: str | None = Field(default=None, min_length=1, max_length=36)


class LabDayOut(BaseModel):
    id: str
    date: dt.date
    title: str | None = None
    cohort_label: str | None = None

    model_config = {"from_attributes": True}


class SubstituteRequestOut(BaseModel):
    id: str
    requester_id: str
    lab_day_id: str
    reason: SubstituteReason
    reason_details: str | None = None
    status: SubstituteRequestStatus
    reviewed_by_id: str | None = None
    reviewed_at: dt.datetime | None = None
    review_notes: str | None = None
    covered_by_id: str | None = None
    covered_at: dt.datetime | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    lab_day: LabDayOut | None = None

    model_config = {"from_attributes": True}
