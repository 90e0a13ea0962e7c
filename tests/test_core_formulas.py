"""
Formula-focused unit tests for the training intelligence engine.

Each class covers one formula or decision table; expected values are
hand-computed in the comments so the tests double as worked examples.
Components run against in-memory repositories and an explicit EngineConfig
so that no user override in ~/.training-intel can leak into the results.
"""

from datetime import date, datetime, timedelta

import pytest

from training_intel.core.achievements import (
    AchievementEngine,
    calculate_level,
    level_title,
    next_streak,
    requirement_met,
    xp_for_next_level,
    xp_progress,
)
from training_intel.core.config import EngineConfig, ForecastConfig, LevelConfig, OverloadConfig, RecoveryConfig
from training_intel.core.forecast import StrengthTrendForecaster, compute_prediction, is_stale, sort_predictions
from training_intel.core.metrics import (
    aggregate_sessions,
    brzycki_1rm,
    increment_for_magnitude,
    linear_fit,
    round_to_increment,
    volume_change_percent,
)
from training_intel.core.models import (
    AchievementDefinition,
    AchievementRequirement,
    MuscleRecoveryState,
    PRPrediction,
    ProgressionSuggestion,
    SetRecord,
    UnlockedAchievement,
    UserStats,
    Workout,
    WorkoutExercise,
    WorkoutSummary,
)
from training_intel.core.overload import (
    OverloadOutcome,
    OverloadRule,
    ProgressiveOverloadAnalyzer,
    analyze_sessions,
    evaluate_rules,
    sort_suggestions,
)
from training_intel.core.recovery import (
    MuscleRecoveryTracker,
    classify_recovery,
    get_suggested_muscles,
    muscle_status,
    recovery_hours_for,
)

NOW = datetime(2026, 3, 1, 12, 0)
CONFIG = EngineConfig()

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


class MemoryStore:
    """In-memory implementation of every collaborator protocol."""

    def __init__(self, workouts: list[Workout] | None = None):
        self.workouts = sorted(workouts or [], key=lambda w: w.date)
        self.recovery: dict[str, MuscleRecoveryState] = {}
        self.predictions: dict[str, PRPrediction] = {}
        self.stats: UserStats | None = None
        self.unlocked: list[UnlockedAchievement] = []
        self.records = []
        self.upserts = 0

    def load_workouts(self, user_id):
        return list(self.workouts)

    def sets_for_exercise(self, user_id, exercise_id, since=None):
        return [
            s
            for w in self.workouts
            if since is None or w.date >= since
            for ex in w.exercises
            if ex.exercise_id == exercise_id
            for s in ex.completed_sets()
        ]

    def exercises_trained_since(self, user_id, since):
        seen = {}
        for w in self.workouts:
            if w.date >= since:
                for ex in w.exercises:
                    if ex.completed_sets():
                        seen.setdefault(ex.exercise_id, None)
        return list(seen)

    def load_recovery(self, user_id):
        return dict(self.recovery)

    def upsert_recovery(self, user_id, state):
        self.recovery[state.muscle_group] = state

    def get_prediction(self, user_id, exercise_id):
        return self.predictions.get(exercise_id)

    def upsert_prediction(self, user_id, prediction):
        self.upserts += 1
        self.predictions[prediction.exercise_id] = prediction

    def load_stats(self, user_id):
        return self.stats

    def save_stats(self, user_id, stats):
        self.stats = stats

    def load_unlocked(self, user_id):
        return list(self.unlocked)

    def add_unlocked(self, user_id, achievement_id, unlocked_at):
        if any(u.achievement_id == achievement_id for u in self.unlocked):
            return False
        self.unlocked.append(UnlockedAchievement(achievement_id, user_id, unlocked_at))
        return True

    def best_record(self, user_id, exercise_id):
        matching = [r for r in self.records if r.exercise_id == exercise_id]
        return max(matching, key=lambda r: r.value) if matching else None

    def add_record(self, user_id, record):
        self.records.append(record)


def _sets(exercise_id: str, day: str, weight: float, reps_list: list[int]) -> list[SetRecord]:
    return [SetRecord(exercise_id, day, weight, reps) for reps in reps_list]


def _workout(
    day: str,
    exercise_id: str,
    weight: float,
    reps_list: list[int],
    muscle_group: str = "chest",
    workout_id: str | None = None,
) -> Workout:
    return Workout(
        workout_id=workout_id or f"w-{day}-{exercise_id}",
        date=day,
        exercises=[WorkoutExercise(exercise_id, muscle_group, _sets(exercise_id, day, weight, reps_list))],
    )


def _day(offset: int) -> str:
    """ISO date ``offset`` days before NOW."""
    return (NOW.date() - timedelta(days=offset)).isoformat()


def _definition(aid: str, type_: str, threshold: float, xp: int, secret: bool = False) -> AchievementDefinition:
    return AchievementDefinition(
        achievement_id=aid,
        name=aid.replace("_", " ").title(),
        requirement=AchievementRequirement(type=type_, threshold=threshold),
        xp_reward=xp,
        is_secret=secret,
    )


# ===========================================================================
# metrics.py  Brzycki, rounding, volume change
# ===========================================================================


class TestBrzycki:
    """1RM = w × 36 / (37 − min(reps, 36))"""

    def test_single_rep_is_identity(self):
        assert brzycki_1rm(100, 1) == pytest.approx(100.0)

    def test_ten_reps(self):
        # 100 × 36 / 27 = 133.33
        assert brzycki_1rm(100, 10) == pytest.approx(133.333, rel=1e-4)

    def test_reps_clamped_to_36(self):
        # Denominator stays at 1 beyond 36 reps
        assert brzycki_1rm(50, 40) == pytest.approx(brzycki_1rm(50, 36))
        assert brzycki_1rm(50, 36) == pytest.approx(1800.0)


class TestRounding:
    """Weight suggestions snap to 2.5 / 5 kg steps."""

    def test_round_to_increment_down(self):
        # 123 / 2.5 = 49.2 → 49 × 2.5
        assert round_to_increment(123.0, 2.5) == pytest.approx(122.5)

    def test_round_to_increment_half_goes_up(self):
        # 123.75 / 2.5 = 49.5 → 50 × 2.5
        assert round_to_increment(123.75, 2.5) == pytest.approx(125.0)

    def test_increment_for_magnitude_boundary(self):
        assert increment_for_magnitude(20.0) == 2.5
        assert increment_for_magnitude(20.5) == 5.0

    def test_volume_change_from_zero_previous(self):
        assert volume_change_percent(500.0, 0.0) == 100.0
        assert volume_change_percent(0.0, 0.0) == 0.0

    def test_volume_change_percent(self):
        assert volume_change_percent(1050.0, 1000.0) == pytest.approx(5.0)


class TestAggregateSessions:
    def test_skips_unweighted_and_incomplete_sets(self):
        sets = _sets("bench", "2026-02-01", 60, [10, 8]) + [
            SetRecord("bench", "2026-02-01", 0, 20),
            SetRecord("bench", "2026-02-01", 60, 5, completed=False),
        ]
        (session,) = aggregate_sessions(sets)
        assert session.set_count == 2
        assert session.avg_reps == pytest.approx(9.0)
        assert session.total_volume == pytest.approx(1080.0)

    def test_sorted_by_date(self):
        sets = _sets("bench", "2026-02-03", 60, [8]) + _sets("bench", "2026-02-01", 55, [8])
        assert [s.date for s in aggregate_sessions(sets)] == ["2026-02-01", "2026-02-03"]


# ===========================================================================
# metrics.py  linear_fit
# ===========================================================================


class TestLinearFit:
    """OLS of y on index 0..n−1; R² guarded to 0 for a flat series."""

    def test_perfect_line(self):
        fit = linear_fit([100, 105, 110, 115, 120])
        assert fit.slope == pytest.approx(5.0)
        assert fit.intercept == pytest.approx(100.0)
        assert fit.r_squared == pytest.approx(1.0)
        # one step past the last index
        assert fit.predict(5) == pytest.approx(125.0)

    def test_flat_series_r_squared_zero(self):
        fit = linear_fit([80.0, 80.0, 80.0])
        assert fit.slope == pytest.approx(0.0)
        assert fit.r_squared == 0.0

    def test_deterministic(self):
        values = [101.3, 99.8, 104.2, 103.0, 107.9]
        assert linear_fit(values) == linear_fit(list(values))

    def test_noisy_r_squared_in_unit_interval(self):
        fit = linear_fit([100, 108, 101, 110, 104])
        assert 0.0 <= fit.r_squared <= 1.0


# ===========================================================================
# recovery.py
# ===========================================================================


class TestRecoveryHours:
    """base + 24 (≥20 sets), +12 (≥15), base (≥10), base − 12 otherwise."""

    @pytest.mark.parametrize(
        "group, sets, expected",
        [
            ("back", 22, 96),
            ("legs", 15, 84),
            ("chest", 10, 48),
            ("core", 3, 12),
            ("shoulders", 19, 60),
        ],
    )
    def test_volume_adjustment(self, group, sets, expected):
        assert recovery_hours_for(group, sets, CONFIG.recovery) == expected

    def test_unknown_group_uses_default(self):
        assert recovery_hours_for("forearms", 12, CONFIG.recovery) == 48


class TestMuscleStatus:
    def _state(self, group: str, hours_ago: float, recovery_hours: float) -> MuscleRecoveryState:
        return MuscleRecoveryState(
            muscle_group=group,
            last_trained_at=NOW - timedelta(hours=hours_ago),
            total_sets=10,
            total_volume=5000.0,
            recovery_hours=recovery_hours,
        )

    def test_back_22_sets_73_hours_ago(self):
        # 96 h window; 73 / 96 = 76.04 % → recovering, not ready
        status = muscle_status(self._state("back", 73, 96), "back", NOW, CONFIG.recovery)
        assert status.recovery_percent == 76
        assert status.status == "recovering"
        assert status.ready_to_train is False
        assert status.hours_remaining == 23

    def test_cold_start_is_recovered(self):
        status = muscle_status(None, "legs", NOW, CONFIG.recovery)
        assert status.recovery_percent == 100
        assert status.status == "recovered"
        assert status.ready_to_train is True
        assert status.hours_remaining == 0

    def test_percent_clamped_at_100(self):
        status = muscle_status(self._state("chest", 500, 48), "chest", NOW, CONFIG.recovery)
        assert status.recovery_percent == 100
        assert status.hours_remaining == 0

    def test_future_timestamp_clamped_at_zero(self):
        status = muscle_status(self._state("chest", -5, 48), "chest", NOW, CONFIG.recovery)
        assert status.recovery_percent == 0
        assert status.status == "fatigued"

    def test_ready_threshold_is_80(self):
        # 38.4 / 48 = 80 %
        status = muscle_status(self._state("chest", 38.4, 48), "chest", NOW, CONFIG.recovery)
        assert status.recovery_percent == 80
        assert status.ready_to_train is True

    def test_just_under_80_not_ready(self):
        # 38.3 / 48 = 79.79 %; reported as 80 but still not ready
        status = muscle_status(self._state("chest", 38.3, 48), "chest", NOW, CONFIG.recovery)
        assert status.recovery_percent == 80
        assert status.ready_to_train is False

    def test_just_under_100_still_recovering(self):
        # 47.8 / 48 = 99.58 %; reported as 100 but not yet recovered
        status = muscle_status(self._state("chest", 47.8, 48), "chest", NOW, CONFIG.recovery)
        assert status.recovery_percent == 100
        assert status.status == "recovering"
        assert status.ready_to_train is True

    @pytest.mark.parametrize(
        "percent, expected",
        [(100, "recovered"), (99, "recovering"), (50, "recovering"), (49, "fatigued"), (0, "fatigued")],
    )
    def test_status_partition(self, percent, expected):
        assert classify_recovery(percent, CONFIG.recovery) == expected


class TestSuggestedMuscles:
    def test_fully_recovered_first_then_descending(self):
        statuses = [
            muscle_status(
                MuscleRecoveryState(g, NOW - timedelta(hours=h), 10, 0.0, 48),
                g, NOW, CONFIG.recovery,
            )
            for g, h in [("chest", 40), ("back", 60), ("legs", 45), ("core", 10)]
        ]
        # chest 83 %, back 100 %, legs 94 %, core 21 % (not ready)
        assert get_suggested_muscles(statuses) == ["back", "legs", "chest"]


class TestRecoveryTracker:
    def test_update_counts_all_completed_sets(self):
        store = MemoryStore()
        workout = Workout(
            workout_id="w1",
            date="2026-03-01",
            exercises=[
                WorkoutExercise("bench", "chest", _sets("bench", "2026-03-01", 80, [8, 8, 8])
                                + [SetRecord("bench", "2026-03-01", 80, 4, completed=False)]),
                WorkoutExercise("plank", "core", _sets("plank", "2026-03-01", 0, [1, 1])),
                WorkoutExercise("curl", "biceps", [SetRecord("curl", "2026-03-01", 15, 10, completed=False)]),
            ],
        )
        tracker = MuscleRecoveryTracker(store, CONFIG)
        updated = tracker.update("u1", workout, NOW)

        assert sorted(s.muscle_group for s in updated) == ["chest", "core"]
        assert store.recovery["chest"].total_sets == 3
        assert store.recovery["chest"].total_volume == pytest.approx(1920.0)
        assert store.recovery["chest"].recovery_hours == 36  # 48 − 12, light session
        assert store.recovery["core"].total_sets == 2
        assert "biceps" not in store.recovery

    def test_update_replaces_prior_totals(self):
        store = MemoryStore()
        tracker = MuscleRecoveryTracker(store, CONFIG)
        tracker.update("u1", _workout("2026-02-27", "bench", 80, [8] * 12), NOW - timedelta(days=2))
        tracker.update("u1", _workout("2026-03-01", "bench", 80, [8] * 2), NOW)
        assert store.recovery["chest"].total_sets == 2
        assert store.recovery["chest"].last_trained_at == NOW

    def test_summary_reports_all_tracked_groups(self):
        store = MemoryStore()
        tracker = MuscleRecoveryTracker(store, CONFIG)
        tracker.update("u1", _workout("2026-03-01", "bench", 80, [8] * 3), NOW)

        summary = tracker.summary("u1", NOW + timedelta(hours=18))
        assert [m.muscle_group for m in summary.muscles] == list(CONFIG.recovery.tracked_groups)
        chest = next(m for m in summary.muscles if m.muscle_group == "chest")
        assert chest.recovery_percent == 50
        assert summary.ready_count == 6
        assert "chest" not in summary.suggested_muscles
        # (6 × 100 + 50) / 7 = 92.86
        assert summary.overall_recovery == 93


# ===========================================================================
# overload.py
# ===========================================================================


class TestOverloadRules:
    def _analyze(self, sessions: list[tuple[str, float, list[int]]]):
        sets = [s for day, w, reps in sessions for s in _sets("bench", day, w, reps)]
        return analyze_sessions(aggregate_sessions(sets), CONFIG.overload)

    def test_increase_high_confidence(self):
        # avg reps 11, 12, 13 → 12; volume 880 → 990 → 1105 improving; 85 > 20 → +5
        suggestion = self._analyze([
            ("2026-02-20", 80, [11]),
            ("2026-02-23", 82.5, [12]),
            ("2026-02-26", 85, [13]),
        ])
        assert suggestion.suggested_weight == pytest.approx(90.0)
        assert suggestion.confidence == "high"
        assert suggestion.trend == "improving"
        assert suggestion.current_weight == 85
        assert suggestion.last_performed == "2026-02-26"
        assert "12 reps" in suggestion.reason

    def test_increase_medium_confidence_small_increment(self):
        # avg reps 10, light dumbbell → +2.5
        suggestion = self._analyze([("2026-02-20", 20, [10, 10]), ("2026-02-23", 20, [10, 10])])
        assert suggestion.suggested_weight == pytest.approx(22.5)
        assert suggestion.confidence == "medium"

    def test_deload_when_declining_with_low_reps(self):
        # 1500 → 1200 = −20 %; avg reps (5 + 4) / 2 = 4.5; max(95, 90) = 95
        suggestion = self._analyze([("2026-02-20", 100, [5, 5, 5]), ("2026-02-23", 100, [4, 4, 4])])
        assert suggestion.suggested_weight == pytest.approx(95.0)
        assert suggestion.confidence == "medium"
        assert suggestion.trend == "declining"
        assert "deload" in suggestion.reason.lower()

    def test_deload_uses_fraction_for_heavy_loads(self):
        # max(200 − 5, 180) = 195 → stays 195
        suggestion = self._analyze([("2026-02-20", 200, [5, 5]), ("2026-02-23", 200, [3, 3])])
        assert suggestion.suggested_weight == pytest.approx(195.0)

    def test_plateau_holds_weight(self):
        suggestion = self._analyze([("2026-02-20", 60, [8, 8, 8]), ("2026-02-23", 60, [8, 8, 8])])
        assert suggestion.suggested_weight == 60
        assert suggestion.trend == "plateau"
        assert suggestion.confidence == "medium"

    def test_improving_with_moderate_reps_yields_nothing(self):
        # 480 → 520 (+8.3 %) improving, avg reps 8: no rule fires
        assert self._analyze([("2026-02-20", 60, [8]), ("2026-02-23", 65, [8])]) is None

    def test_single_session_yields_nothing(self):
        assert self._analyze([("2026-02-20", 60, [12, 12])]) is None

    def test_only_last_five_sessions_and_three_for_reps(self):
        # Old high-rep sessions fall outside the rep average window
        sessions = [(f"2026-02-{d:02d}", 50, [15]) for d in (1, 2, 3)]
        sessions += [(f"2026-02-{d:02d}", 50, [5]) for d in (4, 5, 6)]
        suggestion = self._analyze(sessions)
        # last 3 avg reps = 5, plateau → hold
        assert suggestion.suggested_weight == 50
        assert suggestion.trend == "plateau"

    def test_first_matching_rule_wins(self):
        from training_intel.core.overload import OverloadContext

        calls = []
        rules = [
            OverloadRule("first", lambda c: True, lambda c: calls.append("first") or OverloadOutcome(1.0, "low", "a")),
            OverloadRule("second", lambda c: True, lambda c: calls.append("second") or OverloadOutcome(2.0, "low", "b")),
        ]
        (latest,) = aggregate_sessions(_sets("bench", "2026-02-20", 60, [8]))
        ctx = OverloadContext(latest=latest, trend="plateau", avg_reps_recent=8, config=OverloadConfig())
        assert evaluate_rules(ctx, rules).suggested_weight == 1.0
        assert calls == ["first"]

    def test_sort_increases_first_then_confidence(self):
        def s(ex, cur, sug, conf):
            return ProgressionSuggestion(ex, cur, sug, conf, "", "plateau", "2026-02-20")

        ordered = sort_suggestions([
            s("hold", 60, 60, "medium"),
            s("up_med", 60, 65, "medium"),
            s("down", 100, 95, "medium"),
            s("up_high", 80, 85, "high"),
        ])
        assert [x.exercise_id for x in ordered][:2] == ["up_high", "up_med"]


class TestOverloadAnalyzer:
    def test_get_all_suggestions_lookback(self):
        workouts = [
            _workout(_day(10), "bench", 60, [8, 8, 8]),
            _workout(_day(5), "bench", 60, [8, 8, 8]),
            _workout(_day(50), "squat", 100, [12, 12], "legs"),
            _workout(_day(45), "squat", 100, [12, 12], "legs"),
        ]
        analyzer = ProgressiveOverloadAnalyzer(MemoryStore(workouts), CONFIG)
        suggestions = analyzer.get_all_suggestions("u1", NOW.date())
        assert [s.exercise_id for s in suggestions] == ["bench"]

    def test_exercise_without_sets_is_absent(self):
        workouts = [
            _workout(_day(3), "bench", 60, [8, 8]),
            Workout("w-empty", _day(2), [WorkoutExercise("fly", "chest", [])]),
        ]
        analyzer = ProgressiveOverloadAnalyzer(MemoryStore(workouts), CONFIG)
        assert analyzer.suggest("u1", "fly") is None
        assert all(s.exercise_id != "fly" for s in analyzer.get_all_suggestions("u1", NOW.date()))

    def test_bodyweight_only_exercise_gets_no_suggestion(self):
        workouts = [_workout(_day(d), "pull_up", 0, [10, 10], "back") for d in (3, 6, 9)]
        analyzer = ProgressiveOverloadAnalyzer(MemoryStore(workouts), CONFIG)
        assert analyzer.get_all_suggestions("u1", NOW.date()) == []


# ===========================================================================
# forecast.py
# ===========================================================================


class TestComputePrediction:
    def _linear_sets(self, weights: list[float]) -> list[SetRecord]:
        # single reps so e1RM equals the weight
        return [SetRecord("bench", _day(20 - 3 * i), w, 1) for i, w in enumerate(weights)]

    def test_constant_step_is_ready_for_pr(self):
        prediction = compute_prediction("bench", self._linear_sets([100, 105, 110, 115, 120]), NOW, CONFIG.forecast)
        assert prediction.confidence == 1.0
        assert prediction.trend == "improving"
        assert prediction.ready_for_pr is True
        assert prediction.current_max == pytest.approx(120.0)
        assert prediction.predicted_max == pytest.approx(125.0)
        # 120 × 1.025 = 123 → 122.5
        assert prediction.suggested_weight == pytest.approx(122.5)
        assert prediction.data_points == 5
        assert prediction.expires_at == NOW + timedelta(hours=24)

    def test_flat_series_not_ready(self):
        prediction = compute_prediction("bench", self._linear_sets([100, 100, 100, 100]), NOW, CONFIG.forecast)
        assert prediction.confidence == 0.0
        assert prediction.trend == "plateau"
        assert prediction.ready_for_pr is False

    def test_declining_series(self):
        prediction = compute_prediction("bench", self._linear_sets([120, 115, 110, 105]), NOW, CONFIG.forecast)
        assert prediction.trend == "declining"
        assert prediction.ready_for_pr is False

    def test_too_few_sets(self):
        assert compute_prediction("bench", self._linear_sets([100, 105, 110]), NOW, CONFIG.forecast) is None

    def test_too_few_sessions(self):
        sets = _sets("bench", _day(3), 100, [5, 5]) + _sets("bench", _day(1), 100, [5, 5])
        assert compute_prediction("bench", sets, NOW, CONFIG.forecast) is None

    def test_session_max_uses_best_set(self):
        sets = (
            _sets("bench", _day(9), 100, [1, 5])
            + _sets("bench", _day(6), 100, [1])
            + _sets("bench", _day(3), 100, [1])
        )
        prediction = compute_prediction("bench", sets, NOW, CONFIG.forecast)
        # first session best is 100 × 36 / 32 = 112.5
        assert prediction.trend == "declining"
        assert prediction.current_max == pytest.approx(100.0)

    def test_confidence_in_unit_interval(self):
        sets = self._linear_sets([100, 110, 98, 112, 101, 109])
        prediction = compute_prediction("bench", sets, NOW, CONFIG.forecast)
        assert 0.0 <= prediction.confidence <= 1.0


class TestForecastCache:
    def _store(self) -> MemoryStore:
        workouts = [_workout(_day(d), "bench", w, [1]) for d, w in [(12, 100), (9, 105), (6, 110), (3, 115)]]
        return MemoryStore(workouts)

    def test_fresh_entry_reused(self):
        store = self._store()
        forecaster = StrengthTrendForecaster(store, store, store, CONFIG)
        first = forecaster.predict("u1", "bench", NOW)
        store.workouts.append(_workout(_day(1), "bench", 200, [1]))
        second = forecaster.predict("u1", "bench", NOW + timedelta(hours=23))
        assert second.current_max == first.current_max
        assert store.upserts == 1

    def test_stale_entry_recomputed(self):
        store = self._store()
        forecaster = StrengthTrendForecaster(store, store, store, CONFIG)
        forecaster.predict("u1", "bench", NOW)
        store.workouts.append(_workout(_day(1), "bench", 120, [1]))
        refreshed = forecaster.predict("u1", "bench", NOW + timedelta(hours=24))
        assert refreshed.current_max == pytest.approx(120.0)
        assert store.upserts == 2

    def test_is_stale_at_expiry(self):
        store = self._store()
        prediction = StrengthTrendForecaster(store, store, None, CONFIG).predict("u1", "bench", NOW)
        assert not is_stale(prediction, NOW + timedelta(hours=23, minutes=59))
        assert is_stale(prediction, prediction.expires_at)

    def test_computed_after_now_is_stale(self):
        store = self._store()
        prediction = StrengthTrendForecaster(store, store, None, CONFIG).predict("u1", "bench", NOW)
        assert is_stale(prediction, NOW - timedelta(minutes=1))

    def test_earlier_now_recomputes(self):
        store = self._store()
        forecaster = StrengthTrendForecaster(store, store, store, CONFIG)
        forecaster.predict("u1", "bench", NOW)
        earlier = forecaster.predict("u1", "bench", NOW - timedelta(hours=1))
        assert earlier.computed_at == NOW - timedelta(hours=1)
        assert store.upserts == 2

    def test_current_pr_attached(self):
        from training_intel.core.models import PersonalRecord

        store = self._store()
        store.records.append(PersonalRecord("bench", 130.0, 110, 6, _day(30)))
        prediction = StrengthTrendForecaster(store, store, store, CONFIG).predict("u1", "bench", NOW)
        assert prediction.current_pr == 130.0

    def test_old_sets_outside_lookback_ignored(self):
        workouts = [_workout(_day(d), "bench", 100, [1, 1]) for d in (90, 80, 70)]
        store = MemoryStore(workouts)
        forecaster = StrengthTrendForecaster(store, store, None, CONFIG)
        assert forecaster.predict("u1", "bench", NOW) is None
        assert forecaster.predict_all("u1", NOW) == []

    def test_exercise_without_completed_sets_is_absent(self):
        store = self._store()
        missed = _workout(_day(2), "fly", 20, [10, 10], workout_id="w-fly")
        for s in missed.exercises[0].sets:
            s.completed = False
        store.workouts.append(missed)
        forecaster = StrengthTrendForecaster(store, store, None, CONFIG)
        assert [p.exercise_id for p in forecaster.predict_all("u1", NOW)] == ["bench"]
        assert forecaster.predict("u1", "fly", NOW) is None

    def test_sort_ready_first_then_confidence(self):
        def p(ex, ready, conf):
            return PRPrediction(ex, 100, 101, 102.5, conf, "improving", ready, 4, NOW, NOW)

        ordered = sort_predictions([p("a", False, 0.9), p("b", True, 0.6), p("c", True, 0.8)])
        assert [x.exercise_id for x in ordered] == ["c", "b", "a"]


# ===========================================================================
# achievements.py  levels, streaks, unlocks
# ===========================================================================


class TestLevels:
    """level = floor(sqrt(xp / 100)) + 1; xpForNextLevel(L) = L² × 100"""

    @pytest.mark.parametrize("xp, level", [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (2500, 6)])
    def test_calculate_level(self, xp, level):
        assert calculate_level(xp) == level

    def test_level_monotonic(self):
        levels = [calculate_level(xp) for xp in range(0, 20000, 7)]
        assert levels == sorted(levels)

    def test_xp_for_next_level_strictly_increasing(self):
        thresholds = [xp_for_next_level(level) for level in range(1, 100)]
        assert all(a < b for a, b in zip(thresholds, thresholds[1:]))
        assert xp_for_next_level(3) == 900

    def test_xp_progress(self):
        # level 2 spans 100..400; 250 is halfway
        assert xp_progress(250, 2) == pytest.approx(50.0)
        assert xp_progress(0, 1) == pytest.approx(0.0)
        assert xp_progress(5000, 2) == 100.0

    @pytest.mark.parametrize(
        "level, title",
        [(1, "Beginner"), (10, "Beginner"), (11, "Intermediate"), (26, "Advanced"), (75, "Elite"), (76, "Legend")],
    )
    def test_title_bands(self, level, title):
        assert level_title(level) == title

    def test_default_config_not_shared_between_calls(self):
        assert level_title(1) == "Beginner"
        assert level_title(1, LevelConfig(titles=[(5, "Rookie")])) == "Rookie"
        assert level_title(1) == "Beginner"


class TestStreak:
    def test_first_workout(self):
        assert next_streak(0, None, date(2026, 3, 1)) == 1

    def test_same_day_unchanged(self):
        assert next_streak(4, "2026-03-01", date(2026, 3, 1)) == 4

    def test_next_day_increments(self):
        assert next_streak(4, "2026-02-28", date(2026, 3, 1)) == 5

    def test_gap_resets(self):
        assert next_streak(4, "2026-02-27", date(2026, 3, 1)) == 1

    def test_backdated_unchanged(self):
        assert next_streak(4, "2026-03-05", date(2026, 3, 1)) == 4


class TestRequirements:
    def test_streak_uses_current_or_longest(self):
        req = AchievementRequirement("streak", 7)
        assert requirement_met(req, UserStats(current_streak=1, longest_streak=7))
        assert requirement_met(req, UserStats(current_streak=7, longest_streak=7))
        assert not requirement_met(req, UserStats(current_streak=2, longest_streak=6))

    def test_unknown_type_never_unlocks(self):
        assert not requirement_met(AchievementRequirement("bench_1000", 0), UserStats(total_workouts=99))


class TestAchievementEngine:
    def _engine(self, catalog: list[AchievementDefinition]) -> tuple[AchievementEngine, MemoryStore]:
        store = MemoryStore()
        return AchievementEngine(store, store, catalog, CONFIG), store

    def test_first_workout_creates_stats(self):
        engine, store = self._engine([])
        stats = engine.record_workout("u1", WorkoutSummary(sets=12, reps=96, weight=5760.0, prs=1, duration=50), date(2026, 3, 1))
        assert stats.total_workouts == 1
        assert stats.current_streak == 1
        assert stats.longest_streak == 1
        assert stats.total_weight == pytest.approx(5760.0)
        assert stats.last_workout_date == "2026-03-01"

    def test_totals_accumulate_and_streak_follows_days(self):
        engine, store = self._engine([])
        summary = WorkoutSummary(sets=3, reps=30, weight=900.0)
        engine.record_workout("u1", summary, date(2026, 3, 1))
        engine.record_workout("u1", summary, date(2026, 3, 2))
        engine.record_workout("u1", summary, date(2026, 3, 2))
        stats = engine.record_workout("u1", summary, date(2026, 3, 5))
        assert stats.total_workouts == 4
        assert stats.total_reps == 120
        assert stats.current_streak == 1
        assert stats.longest_streak == 2

    def test_unlocks_accumulate_xp(self):
        engine, store = self._engine([
            _definition("first", "workout_count", 1, 50),
            _definition("heavy", "total_weight", 1000, 100),
            _definition("far", "workout_count", 100, 1000),
        ])
        engine.record_workout("u1", WorkoutSummary(sets=5, reps=50, weight=2500.0), date(2026, 3, 1))
        names = engine.check_and_unlock_achievements("u1", NOW)
        assert names == ["First", "Heavy"]
        assert store.stats.total_xp == 150
        assert store.stats.current_level == 2

    def test_unlock_is_one_time(self):
        engine, store = self._engine([_definition("first", "workout_count", 1, 50)])
        engine.record_workout("u1", WorkoutSummary(sets=1, reps=1, weight=0.0), date(2026, 3, 1))
        assert engine.check_and_unlock_achievements("u1", NOW) == ["First"]
        assert engine.check_and_unlock_achievements("u1", NOW) == []
        assert store.stats.total_xp == 50

    def test_no_stats_row_unlocks_nothing(self):
        engine, store = self._engine([_definition("first", "workout_count", 1, 50)])
        assert engine.check_and_unlock_achievements("u1", NOW) == []

    def test_locked_secret_hidden(self):
        engine, store = self._engine([
            _definition("public", "workout_count", 5, 10),
            _definition("hidden", "workout_count", 1, 10, secret=True),
        ])
        assert [s.definition.achievement_id for s in engine.list_achievements("u1")] == ["public"]
        engine.record_workout("u1", WorkoutSummary(sets=1, reps=1, weight=0.0), date(2026, 3, 1))
        engine.check_and_unlock_achievements("u1", NOW)
        ids = [s.definition.achievement_id for s in engine.list_achievements("u1")]
        assert ids == ["public", "hidden"]

    def test_profile(self):
        engine, store = self._engine([
            _definition("first", "workout_count", 1, 250),
            _definition("far", "workout_count", 100, 1000),
        ])
        engine.record_workout("u1", WorkoutSummary(sets=1, reps=1, weight=0.0), date(2026, 3, 1))
        engine.check_and_unlock_achievements("u1", NOW)
        profile = engine.profile("u1")
        assert profile.level == 2
        assert profile.level_title == "Beginner"
        assert profile.xp_for_next_level == 400
        assert profile.xp_progress == pytest.approx(50.0)
        assert profile.achievements_unlocked == 1
        assert profile.achievements_percent == 50
        assert profile.recent_achievements[0].definition.achievement_id == "first"

    def test_bundled_catalog_loads(self):
        from training_intel.core.achievements import load_achievement_catalog

        catalog = load_achievement_catalog()
        ids = {d.achievement_id for d in catalog}
        assert "first_blood" in ids
        assert all(d.xp_reward > 0 for d in catalog)


class TestConfigOverride:
    def test_yaml_sections_override_defaults(self):
        from training_intel.core.config import config_from_dict

        cfg = config_from_dict({
            "recovery": {"base_hours": {"chest": 60}, "volume_adjustments": [[0, 0], [20, 30]]},
            "forecast": {"ttl_hours": 6},
            "unknown": {"x": 1},
        })
        assert cfg.recovery.base_hours["chest"] == 60
        assert cfg.recovery.base_hours["back"] == 72
        assert cfg.recovery.volume_adjustments[0] == (20, 30.0)
        assert cfg.forecast.ttl_hours == 6
        assert cfg.overload == OverloadConfig()

    def test_defaults_match_bundled_yaml(self):
        from training_intel.core.config import config_from_dict
        from training_intel.core.engine.config_loader import get_bundled_yaml_path, _load_yaml_file

        bundled = config_from_dict(_load_yaml_file(get_bundled_yaml_path()))
        assert bundled.recovery == RecoveryConfig()
        assert bundled.overload == OverloadConfig()
        assert bundled.forecast == ForecastConfig()
