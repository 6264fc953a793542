"""Leaderboard ranking: deterministic, no DB access.

Entries are ranked by score DESC. Ties keep their previous relative order
(Python's sort is stable and entries are always held in rank order), and a
brand-new entry starts behind everyone already on the board.

Each update:
1. Upsert the user's entry and merge the new metrics
2. Recompute the entry's score from the board's scoring rules
3. Snapshot every entry's current rank as previous_rank
4. Stable-sort by score, reassign ranks 1..N, set rank_change
5. Recompute board metadata (participants, average and highest score)
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any

from habitquest.errors import InvalidMetrics, NotFound
from habitquest.rounding import round_half_up

NEIGHBOURS = 2


class BoardType(str, Enum):
    GLOBAL = "global"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CATEGORY = "category"
    STREAK = "streak"
    GROUP = "group"


@dataclass(frozen=True)
class ScoringRules:
    habit_completion: float = 10
    challenge_completion: float = 50
    streak_factor: float = 2
    xp_factor: float = 0.5
    active_day: float = 5

    @classmethod
    def for_board(cls, board_type: BoardType) -> ScoringRules:
        if board_type is BoardType.STREAK:
            return STREAK_SCORING_RULES
        return cls()


STREAK_SCORING_RULES = ScoringRules(
    habit_completion=0,
    challenge_completion=0,
    streak_factor=10,
    xp_factor=0,
    active_day=0,
)


@dataclass(frozen=True)
class LeaderboardMetrics:
    habits_completed: float = 0
    challenges_completed: float = 0
    max_streak: float = 0
    xp_earned: float = 0
    days_active: float = 0

    def invalid_fields(self) -> dict[str, float]:
        """Fields that are negative or not finite."""
        return {
            name: value
            for name, value in asdict(self).items()
            if not math.isfinite(value) or value < 0
        }


@dataclass(frozen=True)
class MetricsUpdate:
    """Partial metrics: None leaves the stored value untouched."""

    habits_completed: float | None = None
    challenges_completed: float | None = None
    max_streak: float | None = None
    xp_earned: float | None = None
    days_active: float | None = None

    @classmethod
    def from_metrics(cls, metrics: LeaderboardMetrics) -> MetricsUpdate:
        return cls(**asdict(metrics))

    def merge_into(self, current: LeaderboardMetrics) -> LeaderboardMetrics:
        given = {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
        return replace(current, **given)


@dataclass(frozen=True)
class LeaderboardEntryState:
    user_id: int
    metrics: LeaderboardMetrics = field(default_factory=LeaderboardMetrics)
    score: int = 0
    rank: int = 0
    previous_rank: int = 0
    rank_change: int = 0
    display_name: str = ""
    level: int = 1


@dataclass(frozen=True)
class LeaderboardState:
    board_type: BoardType
    category: str = ""
    period_key: str = ""
    scoring_rules: ScoringRules = field(default_factory=ScoringRules)
    entries: tuple[LeaderboardEntryState, ...] = ()
    total_participants: int = 0
    avg_score: int = 0
    highest_score: int = 0

    def find(self, user_id: int) -> LeaderboardEntryState | None:
        for entry in self.entries:
            if entry.user_id == user_id:
                return entry
        return None


@dataclass(frozen=True)
class EntryUpdate:
    board: LeaderboardState
    entry: LeaderboardEntryState
    is_new_entry: bool


@dataclass(frozen=True)
class PositionView:
    entry: dict[str, Any]
    users_above: list[dict[str, Any]]
    users_below: list[dict[str, Any]]


def calculate_score(metrics: LeaderboardMetrics, rules: ScoringRules) -> int:
    """Weighted sum of the metrics, rounded to the nearest integer."""
    score = (
        metrics.habits_completed * rules.habit_completion
        + metrics.challenges_completed * rules.challenge_completion
        + metrics.max_streak * rules.streak_factor
        + metrics.xp_earned * rules.xp_factor
        + metrics.days_active * rules.active_day
    )
    return round_half_up(score)


def rerank(
    entries: list[LeaderboardEntryState],
    unranked: frozenset[int] = frozenset(),
) -> list[LeaderboardEntryState]:
    """Stable-sort by score DESC and assign dense ranks 1..N.

    `entries` must already be in previous-rank order; their current rank is
    recorded as previous_rank before reassignment. Users in `unranked` were
    never placed, so they get previous_rank 0.
    """
    ordered = sorted(entries, key=lambda e: -e.score)
    ranked = []
    for idx, entry in enumerate(ordered):
        rank = idx + 1
        previous = 0 if entry.user_id in unranked else entry.rank
        ranked.append(replace(
            entry,
            rank=rank,
            previous_rank=previous,
            rank_change=previous - rank if previous else 0,
        ))
    return ranked


def board_metadata(entries: list[LeaderboardEntryState]) -> dict[str, int]:
    if not entries:
        return {"total_participants": 0, "avg_score": 0, "highest_score": 0}
    total = sum(e.score for e in entries)
    return {
        "total_participants": len(entries),
        "avg_score": round_half_up(total / len(entries)),
        "highest_score": max(e.score for e in entries),
    }


def update_entry(
    board: LeaderboardState,
    user_id: int,
    metrics: LeaderboardMetrics | MetricsUpdate,
    *,
    display_name: str | None = None,
    level: int | None = None,
) -> EntryUpdate | InvalidMetrics:
    """Upsert a user's metrics, rescore and rerank the whole board."""
    if isinstance(metrics, LeaderboardMetrics):
        metrics = MetricsUpdate.from_metrics(metrics)

    entries = sorted(board.entries, key=lambda e: e.rank)
    index = next((i for i, e in enumerate(entries) if e.user_id == user_id), None)
    is_new = index is None
    if is_new:
        # Provisional rank behind everyone already on the board.
        entries.append(LeaderboardEntryState(user_id=user_id, rank=len(entries) + 1))
        index = len(entries) - 1

    current = entries[index]
    merged = metrics.merge_into(current.metrics)
    bad = merged.invalid_fields()
    if bad:
        return InvalidMetrics(user_id=user_id, fields=bad)

    entries[index] = replace(
        current,
        metrics=merged,
        score=calculate_score(merged, board.scoring_rules),
        display_name=display_name if display_name is not None else current.display_name,
        level=level if level is not None else current.level,
    )
    ranked = rerank(entries, unranked=frozenset({user_id}) if is_new else frozenset())

    new_board = replace(board, entries=tuple(ranked), **board_metadata(ranked))
    entry = next(e for e in ranked if e.user_id == user_id)
    return EntryUpdate(board=new_board, entry=entry, is_new_entry=is_new)


def public_view(entry: LeaderboardEntryState, include_metrics: bool = False) -> dict[str, Any]:
    view: dict[str, Any] = {
        "rank": entry.rank,
        "user_id": entry.user_id,
        "display_name": entry.display_name,
        "level": entry.level,
        "score": entry.score,
        "rank_change": entry.rank_change,
    }
    if include_metrics:
        view["metrics"] = asdict(entry.metrics)
    return view


def get_top_users(
    board: LeaderboardState,
    limit: int = 10,
    include_metrics: bool = False,
) -> list[dict[str, Any]]:
    """First `limit` entries by rank."""
    ordered = sorted(board.entries, key=lambda e: e.rank)
    return [public_view(e, include_metrics) for e in ordered[: max(limit, 0)]]


def get_user_position(board: LeaderboardState, user_id: int) -> PositionView | NotFound:
    """The user's own entry plus up to two neighbours on each side."""
    ordered = sorted(board.entries, key=lambda e: e.rank)
    index = next((i for i, e in enumerate(ordered) if e.user_id == user_id), None)
    if index is None:
        return NotFound(user_id=user_id)

    above = ordered[max(index - NEIGHBOURS, 0):index]
    below = ordered[index + 1:index + 1 + NEIGHBOURS]
    return PositionView(
        entry=public_view(ordered[index], include_metrics=True),
        users_above=[public_view(e) for e in above],
        users_below=[public_view(e) for e in below],
    )
