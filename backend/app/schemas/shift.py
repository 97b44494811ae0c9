import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.shift_signup import SignupStatus
from app.services.shift_calendar import MAX_SHIFTS_PER_REQUEST, RepeatCadence
from app.services.signup_machine import SignupReviewAction


class ShiftCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    date: dt.date | None = None
    dates: list[dt.date] | None = Field(default=None, max_length=MAX_SHIFTS_PER_REQUEST)
    repeat: RepeatCadence | None = None
    repeat_until: dt.date | None = None
    start_time: dt.time
    end_time: dt.time
    location: str | None = Field(default=None, max_length=200)
    department: str | None = Field(default=None, max_length=100)
    min_instructors: int = Field(default=1, ge=1, le=100)
    max_instructors: int | None = Field(default=None, ge=1, le=100)

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Title cannot be empty")
        return trimmed

    @model_validator(mode="after")
    def validate_shift(self) -> "ShiftCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.date is None and not self.dates:
            raise ValueError("Either date or dates is required")
        if self.repeat is not None and not self.dates and self.repeat_until is None:
            raise ValueError("repeat_until is required when repeat is set")
        if self.max_instructors is not None and self.min_instructors > self.max_instructors:
            raise ValueError("min_instructors cannot exceed max_instructors")
        return self


class ShiftUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    location: str | None = Field(default=None, max_length=200)
    department: str | None = Field(default=None, max_length=100)
    min_instructors: int | None = Field(default=None, ge=1, le=100)
    max_instructors: int | None = Field(default=None, ge=1, le=100)

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Title cannot be empty")
        return trimmed

    @model_validator(mode="after")
    def validate_window(self) -> "ShiftUpdate":
        if self.start_time is not None and self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ShiftSignupCreate(BaseModel):
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    notes: str | None = Field(default=None, max_length=1000)


class ShiftSignupReview(BaseModel):
    action: SignupReviewAction
    reason: str | None = Field(default=None, max_length=1000)


class ShiftSignupOut(BaseModel):
    id: str
    shift_id: str
    instructor_id: str
    signup_start_time: dt.time | None = None
    signup_end_time: dt.time | None = None
    is_partial: bool
    status: SignupStatus
    confirmed_by_id: str | None = None
    confirmed_at: dt.datetime | None = None
    declined_reason: str | None = None
    notes: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class OpenShiftOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    location: str | None = None
    department: str | None = None
    created_by_id: str | None = None
    min_instructors: int
    max_instructors: int | None = None
    is_cancelled: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    confirmed_count: int = 0
    signup_count: int = 0
    remaining_slots: int | None = None
    is_filled: bool = False
    is_understaffed: bool = False
    user_signup: ShiftSignupOut | None = None

    model_config = {"from_attributes": True}


class OpenShiftDetailOut(OpenShiftOut):
    signups: list[ShiftSignupOut] = Field(default_factory=list)


class ShiftBatchOut(BaseModel):
    count: int
    shifts: list[OpenShiftOut]


class ShiftCancellationOut(BaseModel):
    shift: OpenShiftOut
    affected_instructor_ids: list[str]


class PendingSignupOut(ShiftSignupOut):
    shift: OpenShiftOut
