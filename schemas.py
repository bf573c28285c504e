"""Request bodies accepted by the JSON API.

Field names are camelCase on the wire (``startDate``, ``newPassword``) and
snake_case in Python.
"""
from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from errors import ValidationFailed

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Role = Literal["student", "teacher", "admin"]
SelfServiceRole = Literal["student", "teacher"]

M = TypeVar("M", bound=BaseModel)


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class SignupRequest(APIModel):
    name: NonEmpty
    email: EmailStr
    password: str = Field(min_length=3)
    role: SelfServiceRole = "student"


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(APIModel):
    name: Optional[NonEmpty] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = Field(default=None, min_length=1)
    new_password: Optional[str] = Field(default=None, min_length=6)


class RoleChange(APIModel):
    role: Role


class CourseCreate(APIModel):
    title: NonEmpty
    description: NonEmpty
    start_date: dt.date
    end_date: dt.date
    is_active: bool = True

    @model_validator(mode="after")
    def _check_dates(self) -> "CourseCreate":
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class CoursePatch(APIModel):
    title: Optional[NonEmpty] = None
    description: Optional[NonEmpty] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_active: Optional[bool] = None


class AssignmentCreate(APIModel):
    title: NonEmpty
    description: str = ""
    due_date: Optional[dt.datetime] = None
    points: int = Field(default=0, ge=0)

    @field_validator("due_date")
    @classmethod
    def _due_date_as_utc(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        # stored naive; an offset is folded into UTC first
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value


class MaterialCreate(APIModel):
    title: NonEmpty
    kind: Literal["document", "video", "link"] = Field(alias="type")
    content: str = ""


class SubmissionCreate(APIModel):
    content: NonEmpty


class GradeRequest(APIModel):
    grade: float = Field(ge=0)
    feedback: Optional[str] = None


def field_errors(exc: ValidationError) -> List[Dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


def parse(schema: Type[M], payload: Any) -> M:
    """Validate *payload* against *schema*, raising ``ValidationFailed``."""
    try:
        return schema.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        raise ValidationFailed(errors=field_errors(exc)) from exc
