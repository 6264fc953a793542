"""ORM models for habits, rewards and leaderboards.

Tables are created at startup with Base.metadata.create_all. Identifier
columns use BIGINT on PostgreSQL and INTEGER on SQLite so autoincrement
works on both.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitquest.db.base import Base

BigId = BigInteger().with_variant(Integer, "sqlite")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """User aggregate. `id` is the `sub` claim of the auth service token."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False, default="", server_default="")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    total_xp_earned: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_completed_habits: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_habits_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    challenges_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_active: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    habits: Mapped[list[Habit]] = relationship(
        "Habit", back_populates="user", cascade="all, delete-orphan", passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# Habits
# ---------------------------------------------------------------------------


class Habit(Base):
    """A positive (build) or negative (break) habit."""

    __tablename__ = "habits"
    __table_args__ = (Index("ix_habits_user", "user_id"),)

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_negative: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="easy")
    abstain_difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="other")
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    abstain_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    max_abstain_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped[User] = relationship("User", back_populates="habits")
    entries: Mapped[list[HabitEntry]] = relationship(
        "HabitEntry",
        back_populates="habit",
        order_by="HabitEntry.occurred_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class HabitEntry(Base):
    """One daily mark. At most one per habit per calendar day."""

    __tablename__ = "habit_entries"
    __table_args__ = (
        UniqueConstraint("habit_id", "day_key", name="uq_habit_entry_day"),
        Index("ix_habit_entries_day", "day_key"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    habit_id: Mapped[int] = mapped_column(BigId, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False)

    habit: Mapped[Habit] = relationship("Habit", back_populates="entries")


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class XPLedger(Base):
    """Append-only log of XP grants."""

    __tablename__ = "xp_ledger"
    __table_args__ = (Index("ix_xp_ledger_user_time", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserAchievement(Base):
    """An unlocked achievement. Definitions live in code."""

    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_user_achievement"),)

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A time-boxed goal users join and then complete for a fixed reward."""

    __tablename__ = "challenges"
    __table_args__ = (Index("ix_challenges_window", "starts_at", "ends_at"),)

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="daily")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    coins_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_by: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ChallengeParticipant(Base):
    """One user's membership in a challenge: 'active' until completed."""

    __tablename__ = "challenge_participants"
    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_participant"),
        Index("ix_challenge_participants_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    challenge_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------


class Leaderboard(Base):
    """One ranked board. Category and period key are empty strings when unused."""

    __tablename__ = "leaderboards"
    __table_args__ = (
        UniqueConstraint("board_type", "category", "period_key", name="uq_leaderboard_scope"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    board_type: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="", server_default="")
    period_key: Mapped[str] = mapped_column(String(16), nullable=False, default="", server_default="")
    scoring_rules: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    total_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    avg_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    highest_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    entries: Mapped[list[LeaderboardEntry]] = relationship(
        "LeaderboardEntry",
        back_populates="leaderboard",
        order_by="LeaderboardEntry.rank",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )


class LeaderboardEntry(Base):
    """A user's ranked row on one board."""

    __tablename__ = "leaderboard_entries"
    __table_args__ = (
        UniqueConstraint("leaderboard_id", "user_id", name="uq_leaderboard_entry_user"),
        Index("ix_leaderboard_entries_rank", "leaderboard_id", "rank"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    leaderboard_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("leaderboards.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    habits_completed: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    challenges_completed: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_streak: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    xp_earned: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    days_active: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rank_change: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    leaderboard: Mapped[Leaderboard] = relationship("Leaderboard", back_populates="entries")
