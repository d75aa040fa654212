from pathlib import Path
import sys
from typing import Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from planner_core import PlanDay, PlanWeek, Settings, TrainingLogEntry, generate_plan
from progress_core import (
    aggregate_progress,
    completion_percent,
    find_next_planned,
    long_run_series_frame,
    week_log_summary,
    weekly_series_frame,
)


SETTINGS = Settings(plan_start_date="2024-01-01", base_weekly_km=10.0, peak_weekly_cap_km=55.0)
PLAN = generate_plan(SETTINGS)


def build_logs(**distances: float) -> Dict[str, TrainingLogEntry]:
    # 키워드는 d20240102 형식
    logs = {}
    for key, km in distances.items():
        raw = key[1:]
        day = f"{raw[:4]}-{raw[4:6]}-{raw[6:]}"
        logs[day] = TrainingLogEntry(date=day, distance_km=km, time_seconds=1800)
    return logs


def build_week(days_types, start_day: int = 1) -> PlanWeek:
    days = tuple(
        PlanDay(
            date=f"2024-01-{start_day + idx:02d}",
            day_index=idx,
            type=workout_type,
            planned_km=0.0 if workout_type == "rest" else 5.0,
            pace_hint="",
        )
        for idx, workout_type in enumerate(days_types)
    )
    return PlanWeek(
        week_number=1,
        start_date=days[0].date,
        end_date=days[-1].date,
        target_weekly_km=sum(day.planned_km for day in days),
        days=days,
    )


def test_empty_log_reports_zero_actual_and_completion() -> None:
    progress = aggregate_progress(PLAN, {}, "2024-01-07")

    assert progress.actual_to_date_km == 0
    assert progress.completion_pct == 0
    assert progress.planned_to_date_km == pytest.approx(15.6)


def test_planned_to_date_counts_days_up_to_today() -> None:
    progress = aggregate_progress(PLAN, {}, "2024-01-04")
    assert progress.planned_to_date_km == pytest.approx(2.5 + 3.1)


def test_completion_before_plan_start_is_zero() -> None:
    logs = build_logs(d20231230=8.0)
    progress = aggregate_progress(PLAN, logs, "2023-12-31")

    assert progress.planned_to_date_km == 0
    assert progress.actual_to_date_km == pytest.approx(8.0)
    assert progress.completion_pct == 0


def test_completion_percent_rounds_and_caps() -> None:
    logs = build_logs(d20240102=2.5, d20240104=3.1)
    progress = aggregate_progress(PLAN, logs, "2024-01-07")

    assert progress.actual_to_date_km == pytest.approx(5.6)
    assert progress.completion_pct == 36
    assert completion_percent(30.0, 10.0) == 100
    assert completion_percent(1.0, 8.0) == 13
    assert completion_percent(5.0, 0.0) == 0


def test_future_logs_count_toward_actual_to_date() -> None:
    logs = build_logs(d20240102=2.5, d20240301=10.0)
    progress = aggregate_progress(PLAN, logs, "2024-01-07")

    assert progress.actual_to_date_km == pytest.approx(12.5)


def test_non_finite_distances_are_ignored() -> None:
    logs = build_logs(d20240102=float("nan"), d20240104=3.0, d20240107=float("inf"))
    progress = aggregate_progress(PLAN, logs, "2024-01-07")

    assert progress.actual_to_date_km == pytest.approx(3.0)
    assert progress.weekly_series[0].actual == pytest.approx(3.0)
    assert progress.long_run_series[0].actual == 0.0
    assert 0 <= progress.completion_pct <= 100


def test_weekly_series_covers_every_week() -> None:
    logs = build_logs(d20240102=2.5, d20240104=3.1, d20240109=4.0)
    series = aggregate_progress(PLAN, logs, "2024-01-10").weekly_series

    assert len(series) == 24
    assert series[0].label == "W1"
    assert series[0].planned == pytest.approx(15.6)
    assert series[0].actual == pytest.approx(5.6)
    assert series[1].actual == pytest.approx(4.0)
    assert series[23].planned == pytest.approx(50.2)
    assert all(point.actual == 0 for point in series[2:])


def test_long_run_series_pairs_planned_and_logged_long_day() -> None:
    logs = build_logs(d20240107=7.0, d20240106=5.0)
    series = aggregate_progress(PLAN, logs, "2024-01-07").long_run_series

    assert series[0].week == 1
    assert series[0].planned == 6.0
    assert series[0].actual == 7.0
    assert series[23].planned == 42.2
    assert series[23].actual == 0.0


def test_next_planned_skips_rest_day_today() -> None:
    nxt = aggregate_progress(PLAN, {}, "2024-01-01").next_planned

    assert nxt is not None
    assert nxt.date == "2024-01-02"
    assert nxt.type == "easy"


def test_next_planned_skips_leading_rest_days() -> None:
    week = build_week(["rest", "rest", "rest", "tempo", "rest", "easy", "long"])
    nxt = find_next_planned([week], "2024-01-01")

    assert nxt is not None
    assert nxt.date == "2024-01-04"
    assert nxt.type == "tempo"


def test_next_planned_includes_today_when_it_is_a_workout() -> None:
    nxt = find_next_planned(PLAN, "2024-01-02")
    assert nxt is not None
    assert nxt.date == "2024-01-02"


def test_next_planned_in_race_week_passes_degraded_tempo_slot() -> None:
    nxt = find_next_planned(PLAN, "2024-06-13")

    assert nxt is not None
    assert nxt.date == "2024-06-15"
    assert nxt.type == "easy"


def test_next_planned_falls_back_to_rest_day() -> None:
    week = build_week(["rest"] * 7)
    nxt = find_next_planned([week], "2024-01-03")

    assert nxt is not None
    assert nxt.date == "2024-01-03"
    assert nxt.type == "rest"


def test_next_planned_is_none_after_plan_ends() -> None:
    assert find_next_planned(PLAN, "2024-06-17") is None


def test_week_log_summary_reports_weekly_completion() -> None:
    logs = build_logs(d20240102=2.5, d20240104=3.0, d20240103=1.0, d20240109=9.0)
    summary = week_log_summary(PLAN[0], logs)

    assert summary.week == 1
    assert summary.planned_km == pytest.approx(15.6)
    assert summary.actual_km == pytest.approx(6.5)
    assert summary.completion_pct == 42


def test_week_log_summary_caps_completion_and_ignores_non_finite() -> None:
    logs = build_logs(d20240102=20.0, d20240104=float("nan"))
    summary = week_log_summary(PLAN[0], logs)

    assert summary.actual_km == pytest.approx(20.0)
    assert summary.completion_pct == 100
    assert week_log_summary(PLAN[0], {}).completion_pct == 0


def test_weekly_series_frame_is_long_format() -> None:
    progress = aggregate_progress(PLAN, build_logs(d20240102=2.5), "2024-01-07")
    frame = weekly_series_frame(progress.weekly_series)

    assert list(frame.columns) == ["주차", "라벨", "유형", "거리"]
    assert len(frame) == 48
    assert set(frame["유형"]) == {"계획 km", "실제 km"}
    first_actual = frame[(frame["유형"] == "실제 km") & (frame["주차"] == 1)]["거리"].iloc[0]
    assert first_actual == pytest.approx(2.5)


def test_long_run_series_frame_has_planned_and_actual_rows() -> None:
    progress = aggregate_progress(PLAN, {}, "2024-01-07")
    frame = long_run_series_frame(progress.long_run_series)

    assert len(frame) == 48
    assert frame["거리"].dtype == float
    planned = frame[frame["유형"] == "계획 롱런"]["거리"].tolist()
    assert planned[0] == pytest.approx(6.0)
    assert planned[-1] == pytest.approx(42.2)
