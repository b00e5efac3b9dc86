from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional, List
from datetime import datetime, timezone

# --- CLUB SCHEMAS ---

# What WE send back for a club (timestamps stay internal)
class ClubOut(BaseModel):
    id: int
    name: str
    description: str

    class Config:
        # read straight from ORM objects and projected rows
        from_attributes = True


# --- EVENT SCHEMAS ---

class EventOut(BaseModel):
    id: int
    title: str
    description: str
    event_date: datetime

    @field_validator("event_date")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # stored naive, always UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


# --- VALIDATION ---

class FieldError(BaseModel):
    field: str
    message: str
    # unexpected failure inside a validator, answered with 500 instead of 400
    internal: bool = False


class ValidationResult(BaseModel):
    """Either the normalized value or the first field error, never both."""
    value: Optional[Any] = None
    error: Optional[FieldError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "ValidationResult":
        return cls(value=value)

    @classmethod
    def failure(cls, field: str, message: str, internal: bool = False) -> "ValidationResult":
        return cls(error=FieldError(field=field, message=message, internal=internal))


# --- ENVELOPES ---

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    field: Optional[str] = None
    validationError: Optional[str] = None
    errorDetails: Optional[str] = None
    stack: Optional[str] = None


class ClubListResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: List[ClubOut] = []


class ClubResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[ClubOut] = None


class EventListResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: List[EventOut] = []
    # only present when the caller asked for a page
    pagination: Optional[Pagination] = None
    # only present on the upcoming listing
    days: Optional[int] = None


class EventResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[EventOut] = None


class InfoResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: dict = Field(default_factory=dict)
