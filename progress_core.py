"""
progress_core
-------------
계획 vs 실제 기록 집계. Reads a generated plan and the log map, never mutates
either, and returns the figures the status and progress views display.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from planner_core import IsoDate, PlanDay, PlanWeek, TrainingLogEntry, all_days, round1, round_half_up


@dataclass(frozen=True)
class WeeklyPoint:
    week: int
    label: str
    planned: float
    actual: float


@dataclass(frozen=True)
class LongRunPoint:
    week: int
    planned: float
    actual: float


@dataclass(frozen=True)
class ProgressSummary:
    planned_to_date_km: float
    actual_to_date_km: float
    completion_pct: int
    weekly_series: List[WeeklyPoint]
    long_run_series: List[LongRunPoint]
    next_planned: Optional[PlanDay]


@dataclass(frozen=True)
class WeekLogSummary:
    week: int
    planned_km: float
    actual_km: float
    completion_pct: int


def _finite_sum(values: Iterable[float]) -> float:
    return sum(value for value in values if math.isfinite(value))


def _logged_km(logs_by_date: Mapping[IsoDate, TrainingLogEntry], day: IsoDate) -> float:
    entry = logs_by_date.get(day)
    return entry.distance_km if entry is not None else 0.0


def completion_percent(actual_km: float, planned_km: float) -> int:
    if planned_km <= 0:
        return 0
    pct = round_half_up(actual_km / planned_km * 100)
    return int(min(100, max(0, pct)))


def find_next_planned(plan: List[PlanWeek], today: IsoDate) -> Optional[PlanDay]:
    upcoming = [day for day in all_days(plan) if day.date >= today]
    # 휴식일이 아닌 첫 훈련을 우선, 없으면 오늘 이후 첫 날
    return next((day for day in upcoming if day.type != "rest"), upcoming[0] if upcoming else None)


def weekly_series(plan: List[PlanWeek], logs_by_date: Mapping[IsoDate, TrainingLogEntry]) -> List[WeeklyPoint]:
    points: List[WeeklyPoint] = []
    for week in plan:
        planned = round1(sum(day.planned_km for day in week.days))
        actual = round1(_finite_sum(_logged_km(logs_by_date, day.date) for day in week.days))
        points.append(WeeklyPoint(week=week.week_number, label=f"W{week.week_number}", planned=planned, actual=actual))
    return points


def long_run_series(plan: List[PlanWeek], logs_by_date: Mapping[IsoDate, TrainingLogEntry]) -> List[LongRunPoint]:
    points: List[LongRunPoint] = []
    for week in plan:
        long_day = week.long_day
        planned = long_day.planned_km if long_day else 0.0
        actual = _logged_km(logs_by_date, long_day.date) if long_day else 0.0
        if not math.isfinite(actual):
            actual = 0.0
        points.append(LongRunPoint(week=week.week_number, planned=planned, actual=actual))
    return points


def aggregate_progress(
    plan: List[PlanWeek],
    logs_by_date: Mapping[IsoDate, TrainingLogEntry],
    today: IsoDate,
) -> ProgressSummary:
    """
    Merge the plan with the training log as of ``today``.

    ``planned_to_date_km`` only counts plan days up to and including today,
    whereas ``actual_to_date_km`` sums every logged entry, future-dated ones
    included. Callers that want a date-filtered actual must filter the log map
    before calling.
    """
    planned_to_date = _finite_sum(day.planned_km for day in all_days(plan) if day.date <= today)
    actual_to_date = _finite_sum(entry.distance_km for entry in logs_by_date.values())
    return ProgressSummary(
        planned_to_date_km=planned_to_date,
        actual_to_date_km=actual_to_date,
        completion_pct=completion_percent(actual_to_date, planned_to_date),
        weekly_series=weekly_series(plan, logs_by_date),
        long_run_series=long_run_series(plan, logs_by_date),
        next_planned=find_next_planned(plan, today),
    )


def week_log_summary(week: PlanWeek, logs_by_date: Mapping[IsoDate, TrainingLogEntry]) -> WeekLogSummary:
    planned = sum(day.planned_km for day in week.days)
    actual = _finite_sum(_logged_km(logs_by_date, day.date) for day in week.days)
    return WeekLogSummary(
        week=week.week_number,
        planned_km=round1(planned),
        actual_km=round1(actual),
        completion_pct=completion_percent(actual, planned),
    )


# -----------------------------
# 차트용 DataFrame
# -----------------------------


def weekly_series_frame(points: List[WeeklyPoint]) -> pd.DataFrame:
    """Long-format frame (주차, 유형, 거리) for the planned vs actual chart."""
    rows: List[Dict[str, object]] = [
        {"주차": point.week, "라벨": point.label, "유형": "계획 km", "거리": point.planned} for point in points
    ]
    rows += [{"주차": point.week, "라벨": point.label, "유형": "실제 km", "거리": point.actual} for point in points]
    frame = pd.DataFrame(rows, columns=["주차", "라벨", "유형", "거리"])
    frame["거리"] = frame["거리"].astype(float)
    return frame


def long_run_series_frame(points: List[LongRunPoint]) -> pd.DataFrame:
    rows: List[Dict[str, object]] = [
        {"주차": point.week, "유형": "계획 롱런", "거리": point.planned} for point in points
    ]
    rows += [{"주차": point.week, "유형": "실제 롱런", "거리": point.actual} for point in points]
    frame = pd.DataFrame(rows, columns=["주차", "유형", "거리"])
    frame["거리"] = frame["거리"].astype(float)
    return frame


__all__ = [
    "LongRunPoint",
    "ProgressSummary",
    "WeekLogSummary",
    "WeeklyPoint",
    "aggregate_progress",
    "completion_percent",
    "find_next_planned",
    "long_run_series",
    "long_run_series_frame",
    "week_log_summary",
    "weekly_series",
    "weekly_series_frame",
]
