#!/usr/bin/env python3
"""
planner_core
------------
24주 초보 완주형 마라톤 플랜 엔진.

주요 특징:
- 주간 거리 8.5% 복리 증가, 4주마다 컷백(주간 ×0.8, 롱런 ×0.85)
- 22~23주 테이퍼, 24주 레이스(42.195km)
- 고정 7일 템플릿: 휴식/이지/휴식/템포/휴식/이지/롱런
- 페이스 설정이 없으면 RPE 기반 안내

All functions are pure: the same Settings always produce the same plan.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple


IsoDate = str  # yyyy-mm-dd

PLAN_WEEKS = 24
MARATHON_KM = 42.195
WEEKLY_GROWTH = 1.085
CUTBACK_EVERY = 4
CUTBACK_WEEKLY_FACTOR = 0.8
CUTBACK_LONG_FACTOR = 0.85
TAPER_START_WEEK = 22

WEEKDAY_KR = ["월", "화", "수", "목", "금", "토", "일"]

# (day_index, workout type, WeekDistribution 필드)
WEEK_TEMPLATE: Tuple[Tuple[int, str, Optional[str]], ...] = (
    (0, "rest", None),
    (1, "easy", "easy1"),
    (2, "rest", None),
    (3, "tempo", "tempo"),
    (4, "rest", None),
    (5, "easy", "easy2"),
    (6, "long", "long"),
)

# 테이퍼/레이스 주는 공식 대신 표로 고정: week -> (easy1, tempo, easy2)
TAPER_TABLE = {
    22: (6.0, 6.0, 5.0),
    23: (5.0, 5.0, 4.0),
    24: (5.0, 0.0, 3.0),
}
TAPER_LONG_RUNS = {22: 24.0, 23: 16.0, 24: MARATHON_KM}


# -----------------------------
# 데이터 모델
# -----------------------------


@dataclass(frozen=True)
class Settings:
    plan_start_date: IsoDate
    base_weekly_km: float
    peak_weekly_cap_km: float
    easy_pace_min_per_km: Optional[float] = None
    tempo_pace_min_per_km: Optional[float] = None


@dataclass(frozen=True)
class PlanDay:
    date: IsoDate
    day_index: int
    type: str
    planned_km: float
    pace_hint: str


@dataclass(frozen=True)
class PlanWeek:
    week_number: int
    start_date: IsoDate
    end_date: IsoDate
    target_weekly_km: float
    days: Tuple[PlanDay, ...]

    @property
    def long_day(self) -> Optional[PlanDay]:
        return next((day for day in self.days if day.type == "long"), None)


@dataclass(frozen=True)
class TrainingLogEntry:
    date: IsoDate
    distance_km: float
    time_seconds: int
    note: Optional[str] = None

    def pace_sec_per_km(self) -> Optional[float]:
        if self.distance_km <= 0 or self.time_seconds <= 0:
            return None
        return self.time_seconds / self.distance_km


@dataclass(frozen=True)
class WeekDistribution:
    easy1: float
    tempo: float
    easy2: float
    long: float


# -----------------------------
# 날짜 / 숫자 보조 함수
# -----------------------------


def to_iso_date(value: date) -> IsoDate:
    return value.isoformat()


def from_iso_date(value: IsoDate) -> date:
    """Parse a yyyy-mm-dd string into a calendar date (no timezone handling)."""
    return date.fromisoformat(value)


def add_iso_days(value: IsoDate, days: int) -> IsoDate:
    return to_iso_date(from_iso_date(value) + timedelta(days=days))


def week_start(value: IsoDate) -> IsoDate:
    """Monday of the calendar week containing ``value``."""
    current = from_iso_date(value)
    return to_iso_date(current - timedelta(days=current.weekday()))


def format_short_date(value: IsoDate) -> str:
    # 예: 2024-01-01 -> "1/1 (월)"
    current = from_iso_date(value)
    return f"{current.month}/{current.day} ({WEEKDAY_KR[current.weekday()]})"


def week_number_for(plan_start_date: IsoDate, today: IsoDate) -> Optional[int]:
    diff_days = (from_iso_date(today) - from_iso_date(plan_start_date)).days
    week = diff_days // 7 + 1
    if 1 <= week <= PLAN_WEEKS:
        return week
    return None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round1(value: float) -> float:
    """
    Round to one decimal place, halves away from zero.

    Works on the shortest decimal representation of the float so that
    ``round1(3.15) == 3.2`` even though ``3.15 * 10`` is 31.4999... in binary.
    """
    if not math.isfinite(value):
        return value
    quantized = Decimal(repr(float(value))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(quantized)


def round_half_up(value: float) -> int:
    return int(Decimal(repr(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def seconds_to_pace(sec: float) -> str:
    total = max(round_half_up(sec), 0)
    return f"{total // 60}:{total % 60:02d}"


def pace_band(min_per_km: float, delta_sec: int) -> str:
    base = round_half_up(min_per_km * 60)
    return f"{seconds_to_pace(base - delta_sec)}–{seconds_to_pace(base + delta_sec)}/km"


# -----------------------------
# 주간 거리 / 롱런 진행
# -----------------------------


def is_cutback_week(week: int) -> bool:
    return week % CUTBACK_EVERY == 0


def weekly_target_km(week: int, base_weekly_km: float, cap: float) -> float:
    # 22~24주는 테이퍼/레이스 표에서 처리
    if week >= TAPER_START_WEEK:
        return 0.0
    km = base_weekly_km * WEEKLY_GROWTH ** (week - 1)
    if is_cutback_week(week):
        km *= CUTBACK_WEEKLY_FACTOR
    km = clamp(km, base_weekly_km, cap)
    return round1(km)


def long_run_target_km(week: int) -> float:
    if week in TAPER_LONG_RUNS:
        return TAPER_LONG_RUNS[week]
    km = clamp(6.0 + 1.25 * (week - 1), 6.0, 32.0)
    if is_cutback_week(week):
        km *= CUTBACK_LONG_FACTOR
    return round1(km)


# -----------------------------
# 주간 분배
# -----------------------------


def distribute_week(week: int, target_km: float) -> WeekDistribution:
    """
    Split a week's volume over the easy/tempo/easy/long slots.

    Weeks 22-24 come from TAPER_TABLE. Otherwise the target is raised to at
    least ``long + 8`` km, tempo takes 22%, the first easy run 18% and the
    second easy run the remainder with a 4 km floor.
    """
    long = long_run_target_km(week)
    if week in TAPER_TABLE:
        easy1, tempo, easy2 = TAPER_TABLE[week]
        return WeekDistribution(easy1=easy1, tempo=tempo, easy2=easy2, long=long)

    adjusted_target = max(target_km, long + 8.0)
    tempo = round1(adjusted_target * 0.22)
    easy1 = round1(adjusted_target * 0.18)
    easy2 = round1(max(4.0, adjusted_target - long - tempo - easy1))
    return WeekDistribution(easy1=easy1, tempo=tempo, easy2=easy2, long=long)


# -----------------------------
# 페이스 안내
# -----------------------------


def _has_pace(value: Optional[float]) -> bool:
    return value is not None and value > 0


def pace_hint(workout_type: str, settings: Settings) -> str:
    if workout_type == "rest":
        return "완전 휴식 또는 가벼운 스트레칭"
    if workout_type == "easy":
        if _has_pace(settings.easy_pace_min_per_km):
            return f"이지 {pace_band(settings.easy_pace_min_per_km, 30)}"
        return "RPE 3–4 (편하게 대화 가능)"
    if workout_type == "tempo":
        if _has_pace(settings.tempo_pace_min_per_km):
            return f"템포 {pace_band(settings.tempo_pace_min_per_km, 20)}"
        return "RPE 6–7 (숨차지만 유지 가능)"
    # long
    if _has_pace(settings.easy_pace_min_per_km):
        return f"이지 {pace_band(settings.easy_pace_min_per_km, 40)} (느리게)"
    return "RPE 3–4 (지속 가능한 페이스)"


# -----------------------------
# Plan generator
# -----------------------------


def build_week(settings: Settings, week: int) -> PlanWeek:
    start = add_iso_days(settings.plan_start_date, (week - 1) * 7)
    end = add_iso_days(start, 6)
    target = weekly_target_km(week, settings.base_weekly_km, settings.peak_weekly_cap_km)
    dist = distribute_week(week, target)

    days: List[PlanDay] = []
    for day_index, slot_type, field in WEEK_TEMPLATE:
        km = getattr(dist, field) if field else 0.0
        # tempo 0km(레이스 주)는 휴식으로 표시
        workout_type = "rest" if slot_type == "tempo" and km <= 0 else slot_type
        days.append(
            PlanDay(
                date=add_iso_days(start, day_index),
                day_index=day_index,
                type=workout_type,
                planned_km=round1(km),
                pace_hint=pace_hint(workout_type, settings),
            )
        )

    return PlanWeek(
        week_number=week,
        start_date=start,
        end_date=end,
        target_weekly_km=round1(sum(day.planned_km for day in days)),
        days=tuple(days),
    )


def generate_plan(settings: Settings) -> List[PlanWeek]:
    return [build_week(settings, week) for week in range(1, PLAN_WEEKS + 1)]


def all_days(plan: List[PlanWeek]) -> List[PlanDay]:
    return [day for week in plan for day in week.days]


def find_week(plan: List[PlanWeek], week_number: int) -> PlanWeek:
    """Return the requested week, falling back to the first one."""
    return next((week for week in plan if week.week_number == week_number), plan[0])


__all__ = [
    "IsoDate",
    "MARATHON_KM",
    "PLAN_WEEKS",
    "PlanDay",
    "PlanWeek",
    "Settings",
    "TrainingLogEntry",
    "WEEK_TEMPLATE",
    "WeekDistribution",
    "add_iso_days",
    "all_days",
    "clamp",
    "distribute_week",
    "find_week",
    "format_short_date",
    "from_iso_date",
    "generate_plan",
    "long_run_target_km",
    "pace_hint",
    "round1",
    "round_half_up",
    "seconds_to_pace",
    "to_iso_date",
    "week_number_for",
    "week_start",
    "weekly_target_km",
]
