"""Level progression tests: thresholds, carry-over, cascades."""

import pytest
from pydantic import ValidationError

from habitquest.config import Settings
from habitquest.gamification.leveling import (
    DEFAULT_CURVE,
    LevelCurve,
    UserProgress,
    apply_experience,
    level_info,
    mirror_streak,
)


class TestThreshold:
    def test_canonical_curve(self):
        assert DEFAULT_CURVE.threshold(1) == 150
        assert DEFAULT_CURVE.threshold(2) == 250
        assert DEFAULT_CURVE.threshold(10) == 1050

    def test_simple_curve_from_settings(self):
        curve = LevelCurve.from_settings(Settings(level_threshold_offset=0))
        assert curve.threshold(3) == 300

    @pytest.mark.parametrize("base", [0, -100])
    def test_settings_reject_non_positive_base(self, base):
        with pytest.raises(ValidationError):
            Settings(level_threshold_base=base, level_threshold_offset=0)

    def test_settings_reject_negative_offset(self):
        with pytest.raises(ValidationError):
            Settings(level_threshold_offset=-1)

    @pytest.mark.parametrize(("base", "offset"), [(0, 0), (0, 50), (100, -1)])
    def test_curve_rejects_degenerate_thresholds(self, base, offset):
        with pytest.raises(ValueError, match="base > 0"):
            LevelCurve(base=base, offset=offset)


class TestApplyExperience:
    def test_below_threshold_no_level_up(self):
        update = apply_experience(UserProgress(), 149)
        assert update.progress.level == 1
        assert update.progress.xp == 149
        assert update.leveled_up is False
        assert update.levels_gained == 0

    def test_exact_threshold_levels_up(self):
        update = apply_experience(UserProgress(), 150)
        assert update.new_level == 2
        assert update.progress.xp == 0
        assert update.leveled_up is True

    def test_remainder_carries(self):
        update = apply_experience(UserProgress(xp=140), 23)
        assert update.new_level == 2
        assert update.progress.xp == 13

    def test_cascade_multiple_levels(self):
        """150 + 250 + 350 = 750 xp takes level 1 to level 4."""
        update = apply_experience(UserProgress(), 760)
        assert update.new_level == 4
        assert update.progress.xp == 10
        assert update.levels_gained == 3
        assert update.previous_level == 1

    def test_totals_and_coins(self):
        update = apply_experience(UserProgress(total_xp_earned=500, coins=7), 20, coins_gained=5)
        assert update.progress.total_xp_earned == 520
        assert update.progress.coins == 12

    def test_zero_grant_is_noop(self):
        progress = UserProgress(level=3, xp=10)
        assert apply_experience(progress, 0).progress == progress

    def test_negative_grant_rejected(self):
        with pytest.raises(ValueError):
            apply_experience(UserProgress(), -1)

    def test_input_untouched(self):
        progress = UserProgress()
        apply_experience(progress, 1000)
        assert progress.level == 1
        assert progress.xp == 0

    @pytest.mark.parametrize("grant", [0, 1, 149, 150, 151, 399, 400, 5000, 123456])
    def test_xp_stays_below_threshold(self, grant):
        update = apply_experience(UserProgress(), grant)
        assert 0 <= update.progress.xp < DEFAULT_CURVE.threshold(update.new_level)


class TestMirrorStreak:
    def test_raises_to_higher_habit_streak(self):
        progress = mirror_streak(UserProgress(streak=2, longest_streak=4), 5)
        assert progress.streak == 5
        assert progress.longest_streak == 5

    def test_keeps_higher_user_streak(self):
        progress = mirror_streak(UserProgress(streak=6, longest_streak=6), 1)
        assert progress.streak == 6


def test_level_info():
    info = level_info(UserProgress(level=2, xp=50))
    assert info == {
        "level": 2,
        "xp_into_level": 50,
        "xp_for_level": 250,
        "xp_to_next_level": 200,
        "next_level": 3,
    }
