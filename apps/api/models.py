from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, String, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.sql import func
from core.database import Base
import uuid


class Action(Base):
    """A single relationship-improvement suggestion in the catalog."""
    __tablename__ = "action"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    benefit = Column(Text, nullable=True)
    category = Column(Text, nullable=False)
    theme = Column(Text, nullable=True)

    # --- ELIGIBILITY ---
    # ISO country code; NULL means available everywhere.
    country = Column(String(8), nullable=True)
    # Explicit availability window. Either bound may be NULL (open-ended).
    seasonal_start_date = Column(Date, nullable=True)
    seasonal_end_date = Column(Date, nullable=True)
    # Explicit household relevance, e.g. ["kids", "kids_daily_presence"].
    # NULL = not yet tagged (keyword inference applies until backfilled).
    household_tags = Column(JSON(none_as_null=True), nullable=True)

    # --- PROGRESSION ---
    # Weekly planning actions accrue health on the weekly track.
    planning_required = Column(Boolean, default=False, nullable=False)
    # Explicit activity badge tag, e.g. "outdoor_actions".
    activity_type = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_action_category", "category"),
    )


class UserProfile(Base):
    """Household context the engine reads; owned by the account service."""
    __tablename__ = "user_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    has_kids = Column(Boolean, nullable=True)
    kids_live_with_you = Column(Boolean, nullable=True)
    country = Column(String(8), nullable=True)
    subscription_tier = Column(Text, default="free", nullable=False)
    # Onboarding survey baseline (0-100); NULL falls back to the configured default.
    baseline_health = Column(Float, nullable=True)


class CategorySurvey(Base):
    """Per-user, per-category onboarding survey signals."""
    __tablename__ = "category_survey"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    category = Column(Text, nullable=False)
    self_rating = Column(Integer, nullable=True)  # 1-5
    wants_improvement = Column(Boolean, nullable=True)
    legacy_score = Column(Float, nullable=True)  # 0-100, fallback signal only

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_category_survey_user_category"),
        CheckConstraint("self_rating IS NULL OR (self_rating BETWEEN 1 AND 5)", name="ck_category_survey_self_rating"),
    )


class UserCategoryPreference(Base):
    """Explicit "show me more like this" weight per category."""
    __tablename__ = "user_category_preference"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    category = Column(Text, nullable=False)
    preference_weight = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_user_category_preference"),
    )


class UserHiddenAction(Base):
    __tablename__ = "user_hidden_action"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    action_id = Column(String(64), ForeignKey("action.id"), nullable=False)
    hidden_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "action_id", name="uq_user_hidden_action"),
    )


class DailyAssignment(Base):
    """
    One action bound to one user on one date.

    The (user_id, date) uniqueness constraint is the only guard against a
    second automatic selection; writers rely on ON CONFLICT DO NOTHING.
    Calendar export and the email renderer read this table directly.
    """
    __tablename__ = "user_daily_action"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    action_id = Column(String(64), ForeignKey("action.id"), nullable=False)
    assignment_date = Column("date", Date, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    favorited = Column(Boolean, default=False, nullable=False)
    dnc = Column(Boolean, default=False, nullable=False)  # "did not complete"
    # 'auto' | 'fallback' | 'replacement' | 'program'
    source = Column(Text, default="auto", nullable=False)
    program_enrollment_id = Column(Uuid(as_uuid=True), ForeignKey("user_program.id"), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_daily_action_user_date"),
        Index("ix_user_daily_action_date", "date"),
    )


class HealthDecayEntry(Base):
    """Decay applied for a missed day; removed when that day is caught up."""
    __tablename__ = "health_decay_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    missed_date = Column(Date, nullable=False)
    decay_applied = Column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "missed_date", name="uq_health_decay_log_user_date"),
    )


class Badge(Base):
    __tablename__ = "badge"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    requirement_type = Column(Text, nullable=False)
    requirement_value = Column(Integer, nullable=True)
    category = Column(Text, nullable=True)


class UserBadge(Base):
    """Earned badge. Never updated or revoked once inserted."""
    __tablename__ = "user_badge"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    badge_id = Column(String(64), ForeignKey("badge.id"), nullable=False)
    earned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),
    )


class Program(Base):
    """A multi-day program (e.g. a 7-day challenge) with a fixed action per day."""
    __tablename__ = "program"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    duration_days = Column(Integer, nullable=False, default=7)


class ProgramAction(Base):
    __tablename__ = "program_action"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    program_id = Column(String(64), ForeignKey("program.id"), nullable=False)
    day_number = Column(Integer, nullable=False)  # 1-based
    action_id = Column(String(64), ForeignKey("action.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("program_id", "day_number", name="uq_program_action_day"),
    )


class ProgramEnrollment(Base):
    __tablename__ = "user_program"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False)
    program_id = Column(String(64), ForeignKey("program.id"), nullable=False)
    joined_date = Column(Date, nullable=False)
    completed_days = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_user_program_user_id", "user_id"),
        UniqueConstraint("user_id", "program_id", name="uq_user_program_user_program"),
    )
