"""
Pydantic models for API request validation.

Enum-valued fields are plain strings here; the services check them against
the model enums so the error messages match the rest of the API.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Auth
# ============================================================================

class TeamRegisterRequest(BaseModel):
    """All fields optional so missing ones are reported together by the service."""

    team_name: Optional[str] = None
    discipline: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TeamProfileUpdate(BaseModel):
    team_name: Optional[str] = None


# ============================================================================
# Players & coaches
# ============================================================================

class PlayerCreate(BaseModel):
    full_name: str
    date_of_birth: date
    group: Optional[str] = None
    subgroup_id: Optional[int] = None
    email: Optional[str] = ""
    phone: Optional[str] = ""
    contact_number: Optional[str] = ""
    positions: List[str] = Field(default_factory=list)
    jersey_number: Optional[int] = Field(default=None, ge=0)
    height_cm: Optional[float] = Field(default=None, ge=0)
    weight_kg: Optional[float] = Field(default=None, ge=0)
    monthly_fee: Optional[float] = Field(default=None, ge=0)
    inscription_fee: Optional[float] = Field(default=None, ge=0)
    session_id: Optional[int] = None


class PublicPlayerCreate(PlayerCreate):
    """Self-registration: the team is named explicitly since there is no token."""

    team_id: int


class PlayerUpdate(BaseModel):
    full_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    group: Optional[str] = None
    subgroup_id: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_number: Optional[str] = None
    positions: Optional[List[str]] = None
    jersey_number: Optional[int] = Field(default=None, ge=0)
    height_cm: Optional[float] = Field(default=None, ge=0)
    weight_kg: Optional[float] = Field(default=None, ge=0)
    monthly_fee: Optional[float] = Field(default=None, ge=0)
    inscription_fee: Optional[float] = Field(default=None, ge=0)


class CoachCreate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    specialization: Optional[str] = None
    years_of_experience: Optional[int] = Field(default=None, ge=0)
    agreed_salary: Optional[float] = Field(default=None, ge=0)
    contact_number: Optional[str] = ""


class CoachUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    specialization: Optional[str] = None
    years_of_experience: Optional[int] = Field(default=None, ge=0)
    agreed_salary: Optional[float] = Field(default=None, ge=0)
    contact_number: Optional[str] = None


# ============================================================================
# Sessions & subgroups
# ============================================================================

class SessionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = ""
    start_date: date
    end_date: date
    session_type: str = Field(default="yearly", alias="type")


class SessionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    type: Optional[str] = None


class SubgroupCreate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = ""
    max_players: Optional[int] = 0


class SubgroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    max_players: Optional[int] = None
    is_active: Optional[bool] = None


# ============================================================================
# Training & attendance
# ============================================================================

class TrainingSessionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = ""
    notes: Optional[str] = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    day_of_week: Optional[str] = None
    on_date: Optional[date] = Field(default=None, alias="date")  # Derives day_of_week when that is omitted
    location: Optional[str] = ""
    group: Optional[str] = None
    subgroup_id: Optional[int] = None
    session_id: Optional[int] = None
    player_ids: List[int] = Field(default_factory=list)
    is_weekly: bool = False


class TrainingSessionUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    day_of_week: Optional[str] = None
    location: Optional[str] = None
    group: Optional[str] = None
    subgroup_id: Optional[int] = None
    player_ids: Optional[List[int]] = None
    is_weekly: Optional[bool] = None


class TrainingAttendanceUpdate(BaseModel):
    player_id: int
    status: str


class AttendanceMark(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = ""
    coach_id: Optional[int] = None


class BulkAttendanceItem(BaseModel):
    player_id: int
    status: Optional[str] = None
    notes: Optional[str] = ""


class BulkAttendanceRequest(BaseModel):
    attendance_data: List[BulkAttendanceItem]
    coach_id: Optional[int] = None


# ============================================================================
# Events
# ============================================================================

class EventCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = ""
    event_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = ""
    notes: Optional[str] = ""


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None


# ============================================================================
# Payments
# ============================================================================

class MarkPaidRequest(BaseModel):
    subject_id: Optional[int] = None
    subject_type: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    notes: Optional[str] = ""


class PaymentStatusRequest(BaseModel):
    subject_id: Optional[int] = None
    subject_type: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    status: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = ""
