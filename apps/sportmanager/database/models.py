"""
SQLAlchemy ORM models for the SportManager system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Table,
    UniqueConstraint,
    CheckConstraint,
    Index,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sportmanager.database.db import Base


class Discipline(str, enum.Enum):
    """Sport practiced by a team."""

    FOOTBALL = "Football"
    NATATION = "Natation"
    HANDBALL = "Handball"


class PlayerGroup(str, enum.Enum):
    """Age category of a player (also the category of a subgroup)."""

    POUSSIN = "Poussin"
    ECOLE = "Ecole"
    MINIMUM = "Minimum"
    CADET = "Cadet"
    JUNIOR = "Junior"
    SENIOR = "Senior"


class TrainingGroup(str, enum.Enum):
    """Groups a training session can target."""

    MINIMUM = "Minimum"
    CADET = "Cadet"
    JUNIOR = "Junior"
    SENIOR = "Senior"


class SessionType(str, enum.Enum):
    """Season length."""

    YEARLY = "yearly"
    MONTHLY = "monthly"


class DayOfWeek(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class EventType(str, enum.Enum):
    MATCH = "Match"
    TOURNAMENT = "Tournament"
    TRAINING_CAMP = "Training Camp"
    MEETING = "Meeting"
    OTHER = "Other"


class SubjectType(str, enum.Enum):
    """Who a payment is for."""

    PLAYER = "player"
    COACH = "coach"


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    PENDING = "pending"
    DELAYED = "delayed"
    UNPAID = "unpaid"


class UserRole(str, enum.Enum):
    """Roles carried in auth tokens."""

    TEAM_ADMIN = "team_admin"
    COACH = "coach"
    PLAYER = "player"
    ADMIN = "admin"


def _enum(enum_cls, name):
    # Persist the enum values (e.g. "Training Camp"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


# Many-to-many association tables
session_players = Table(
    "session_players",
    Base.metadata,
    Column("session_id", Integer, ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
    Column("player_id", Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
)

session_coaches = Table(
    "session_coaches",
    Base.metadata,
    Column("session_id", Integer, ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
    Column("coach_id", Integer, ForeignKey("coaches.id", ondelete="CASCADE"), primary_key=True),
)

subgroup_players = Table(
    "subgroup_players",
    Base.metadata,
    Column("subgroup_id", Integer, ForeignKey("subgroups.id", ondelete="CASCADE"), primary_key=True),
    Column("player_id", Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
)

subgroup_coaches = Table(
    "subgroup_coaches",
    Base.metadata,
    Column("subgroup_id", Integer, ForeignKey("subgroups.id", ondelete="CASCADE"), primary_key=True),
    Column("coach_id", Integer, ForeignKey("coaches.id", ondelete="CASCADE"), primary_key=True),
)

training_session_players = Table(
    "training_session_players",
    Base.metadata,
    Column(
        "training_session_id",
        Integer,
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("player_id", Integer, ForeignKey("players.id", ondelete="CASCADE"), primary_key=True),
)


class Team(Base):
    """A club account; the team admin logs in with the team's email and password."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_name = Column(String(100), nullable=False)
    discipline = Column(_enum(Discipline, "discipline"), nullable=False)
    email = Column(String(255), nullable=False, unique=True)  # Stored lowercased
    password_hash = Column(String, nullable=False)
    phone = Column(String(50), nullable=False)
    logo = Column(String, nullable=True)  # /uploads/<file> path
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    players = relationship("Player", back_populates="team", cascade="all, delete-orphan")
    coaches = relationship("Coach", back_populates="team", cascade="all, delete-orphan")
    sessions = relationship("Session", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_teams_email", "email"),)


class Admin(Base):
    """Platform administrator."""

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team")


class Player(Base):
    """Roster member. Billing state is derived from the fee and payment dates, never stored."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(150), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    group = Column(_enum(PlayerGroup, "player_group"), nullable=False, default=PlayerGroup.MINIMUM)
    subgroup_id = Column(Integer, ForeignKey("subgroups.id", ondelete="SET NULL"), nullable=True)
    email = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    contact_number = Column(String(50), nullable=False, default="")
    positions = Column(JSON, nullable=False, default=list)
    jersey_number = Column(Integer, nullable=False, default=0)
    height_cm = Column(Float, nullable=False, default=0)
    weight_kg = Column(Float, nullable=False, default=0)
    inscription_fee = Column(Float, nullable=False, default=0)
    inscription_paid_at = Column(DateTime(timezone=True), nullable=True)
    monthly_fee = Column(Float, nullable=False, default=0)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    photo = Column(String, nullable=False, default="")
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team", back_populates="players")
    session = relationship("Session", foreign_keys=[session_id])
    subgroup = relationship("Subgroup", foreign_keys=[subgroup_id])

    __table_args__ = (
        CheckConstraint("jersey_number >= 0", name="ck_players_jersey_number"),
        CheckConstraint("height_cm >= 0", name="ck_players_height"),
        CheckConstraint("weight_kg >= 0", name="ck_players_weight"),
        CheckConstraint("inscription_fee >= 0", name="ck_players_inscription_fee"),
        CheckConstraint("monthly_fee >= 0", name="ck_players_monthly_fee"),
        Index("idx_players_team_id", "team_id"),
        Index("idx_players_email", "email"),
    )


class Coach(Base):
    """Coach employed by a team."""

    __tablename__ = "coaches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    specialization = Column(String(100), nullable=False)
    years_of_experience = Column(Integer, nullable=False, default=0)
    agreed_salary = Column(Float, nullable=False, default=0)
    contact_number = Column(String(50), nullable=False, default="")
    photo = Column(String, nullable=False, default="")
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team", back_populates="coaches")
    session = relationship("Session", foreign_keys=[session_id])

    __table_args__ = (
        UniqueConstraint("email", "team_id", name="uq_coaches_email_team"),
        CheckConstraint("years_of_experience >= 0", name="ck_coaches_experience"),
        CheckConstraint("agreed_salary >= 0", name="ck_coaches_salary"),
        Index("idx_coaches_team_id", "team_id"),
    )


class Session(Base):
    """A season: date range, roster of players and coaches. Payment schedules span its months."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=False, default="")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    type = Column(_enum(SessionType, "session_type"), nullable=False, default=SessionType.YEARLY)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team", back_populates="sessions")
    players = relationship("Player", secondary=session_players, order_by="Player.id")
    coaches = relationship("Coach", secondary=session_coaches, order_by="Coach.id")

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_sessions_date_range"),
        Index("idx_sessions_team_id", "team_id"),
    )


class Subgroup(Base):
    """Subdivision of a category within a session, with its own coaches and players."""

    __tablename__ = "subgroups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    category = Column(_enum(PlayerGroup, "player_group"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False, default="")
    max_players = Column(Integer, nullable=False, default=0)  # 0 means unlimited
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    coaches = relationship("Coach", secondary=subgroup_coaches, order_by="Coach.id")
    players = relationship("Player", secondary=subgroup_players, order_by="Player.id")

    __table_args__ = (
        UniqueConstraint("name", "category", "session_id", "team_id", name="uq_subgroups_name"),
        Index("idx_subgroups_team_id", "team_id"),
    )


class TrainingSession(Base):
    """A (possibly weekly) practice slot inside a session."""

    __tablename__ = "training_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
    start_time = Column(String(10), nullable=False)  # "HH:MM"
    end_time = Column(String(10), nullable=False)
    day_of_week = Column(_enum(DayOfWeek, "day_of_week"), nullable=False)
    location = Column(String(255), nullable=False, default="")
    group = Column(_enum(TrainingGroup, "training_group"), nullable=False, default=TrainingGroup.MINIMUM)
    subgroup_id = Column(Integer, ForeignKey("subgroups.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    is_weekly = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    session = relationship("Session")
    players = relationship("Player", secondary=training_session_players, order_by="Player.id")

    __table_args__ = (
        Index("idx_training_sessions_session_id", "session_id"),
        Index("idx_training_sessions_subgroup_id", "subgroup_id"),
        Index("idx_training_sessions_is_weekly", "is_weekly"),
    )


class Attendance(Base):
    """One attendance mark per player per training session."""

    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    training_session_id = Column(
        Integer, ForeignKey("training_sessions.id", ondelete="CASCADE"), nullable=False
    )
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        _enum(AttendanceStatus, "attendance_status"),
        nullable=False,
        default=AttendanceStatus.PRESENT,
    )
    marked_by = Column(Integer, ForeignKey("coaches.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=False, default="")
    marked_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    player = relationship("Player")
    coach = relationship("Coach")

    __table_args__ = (
        UniqueConstraint("training_session_id", "player_id", name="uq_attendance_session_player"),
        Index("idx_attendance_training_session_id", "training_session_id"),
        Index("idx_attendance_player_id", "player_id"),
    )


class Payment(Base):
    """
    Monthly payment record for a player (fee) or coach (salary).

    subject_id points at players.id or coaches.id depending on subject_type,
    so it carries no foreign key.
    """

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    subject_type = Column(_enum(SubjectType, "subject_type"), nullable=False)
    subject_id = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False, default=0)
    inscription_included = Column(Boolean, nullable=False, default=False)
    inscription_amount = Column(Float, nullable=False, default=0)
    status = Column(_enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.PENDING)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "session_id", "subject_type", "subject_id", "year", "month",
            name="uq_payments_composite_key",
        ),
        CheckConstraint("year >= 2000 AND year <= 2100", name="ck_payments_year"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_payments_month"),
        CheckConstraint("amount >= 0", name="ck_payments_amount"),
        CheckConstraint("inscription_amount >= 0", name="ck_payments_inscription_amount"),
        Index("idx_payments_team_id", "team_id"),
        Index("idx_payments_subject", "subject_type", "subject_id"),
    )


class Event(Base):
    """Match, tournament or other dated team event."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    event_type = Column(_enum(EventType, "event_type"), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False, default="")
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_events_team_id", "team_id"),
        Index("idx_events_start_date", "start_date"),
    )
