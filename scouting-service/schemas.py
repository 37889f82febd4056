# schemas.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


# Request bodies. Presence rules live in the auth service and the repository,
# so every field is optional here and only types are checked.
class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PlayerCreate(BaseModel):
    full_name: Optional[str] = None
    birthdate: Optional[str] = None
    position: Optional[str] = None


# Range of the INTEGER score column
SCORE_MIN = -2**31
SCORE_MAX = 2**31 - 1


class EvaluationCreate(BaseModel):
    evaluator_name: Optional[str] = None
    date: Optional[str] = None
    notes: Optional[str] = None
    score: Optional[int] = None

    @field_validator("score", mode="before")
    @classmethod
    def blank_score_is_null(cls, value):
        if isinstance(value, bool):
            raise ValueError("score must be an integer")
        # HTML number inputs submit "" when left empty
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                return int(value)
            except ValueError:
                raise ValueError("score must be an integer")
        return value

    @field_validator("score")
    @classmethod
    def score_in_range(cls, value):
        if value is not None and not SCORE_MIN <= value <= SCORE_MAX:
            raise ValueError("score is out of range")
        return value


# Responses
class UserOut(BaseModel):
    id: int
    email: str

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    ok: bool = True
    user: UserOut


class OkResponse(BaseModel):
    ok: bool = True


class PlayerOut(BaseModel):
    id: int
    full_name: str
    birthdate: Optional[str] = None
    position: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EvaluationOut(BaseModel):
    id: int
    player_id: int
    evaluator_name: Optional[str] = None
    date: str
    notes: Optional[str] = None
    score: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    players_count: int
    evals_count: int
    avg_score: Optional[float] = None
