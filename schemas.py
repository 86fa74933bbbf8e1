# backend/schemas.py
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\d{10}$")
MARKS_RE = re.compile(r"^\d{1,3}(\.\d{1,2})?$")


def _min_length(value: str, n: int, message: str) -> str:
    if len(value) < n:
        raise ValueError(message)
    return value


def _check_marks(value: str, label: str) -> str:
    if not MARKS_RE.match(value):
        raise ValueError(f"{label} marks must be a valid percentage (e.g., 85 or 85.5)")
    if float(value) > 100:
        raise ValueError(f"{label} marks cannot exceed 100%")
    return value


# --------- Auth ---------
class SignupInput(BaseModel):
    fullname: str
    email: str
    password: str
    phone: str
    state: str
    username: str
    school10: str
    marks10: str
    school12: Optional[str] = ""
    stream12: Optional[str] = ""
    marks12: Optional[str] = ""

    @field_validator("fullname")
    @classmethod
    def check_fullname(cls, v):
        return _min_length(v, 3, "Full name must be at least 3 characters")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        if not v.endswith(".edu"):
            raise ValueError("Email must be a school email ending with .edu")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        # bcrypt only hashes the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password cannot be longer than 72 bytes")
        return _min_length(v, 8, "Password must be at least 8 characters")

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if not PHONE_RE.match(v):
            raise ValueError("Phone number must be exactly 10 digits")
        return v

    @field_validator("state")
    @classmethod
    def check_state(cls, v):
        return _min_length(v, 3, "State is required")

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return _min_length(v, 3, "Username must be at least 3 characters")

    @field_validator("school10")
    @classmethod
    def check_school10(cls, v):
        return _min_length(v, 3, "10th school name must be at least 3 characters")

    @field_validator("marks10")
    @classmethod
    def check_marks10(cls, v):
        return _check_marks(v, "10th")

    @field_validator("marks12")
    @classmethod
    def check_marks12(cls, v):
        return _check_marks(v, "12th") if v else v


class SigninInput(BaseModel):
    username: str
    password: str


# --------- Progress ---------
class AnswerInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    xp: Optional[int] = Field(None, ge=0)
    is_correct: Optional[StrictBool] = Field(..., alias="isCorrect")
    brains: Optional[int] = None
    question_id: Optional[str] = Field(None, alias="questionId")
    user_answer: Optional[str] = Field(None, alias="userAnswer")
    question_number: int = Field(0, ge=0, alias="questionNumber")


class LessonInput(BaseModel):
    xp: int = Field(..., ge=0)


# --------- Profile ---------
class AvatarInput(BaseModel):
    avatar: str = Field(..., max_length=2048)


# --------- Chat ---------
class ChatInput(BaseModel):
    message: Optional[str] = None
    intent: Optional[str] = ""
