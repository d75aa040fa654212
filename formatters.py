"""
formatters
----------
화면 표시용 문자열 변환: km, h:mm:ss, 페이스, 훈련 종류와 요일 이름.
"""

from __future__ import annotations

from typing import Dict

from planner_core import WEEKDAY_KR, TrainingLogEntry, round1, seconds_to_pace

WORKOUT_LABELS: Dict[str, str] = {
    "rest": "휴식",
    "easy": "이지",
    "tempo": "템포",
    "long": "롱런",
}


def format_km(km: float) -> str:
    if km == 0:
        return "-"
    return f"{round1(km):g} km"


def seconds_to_hms(total_seconds: float) -> str:
    total = max(int(round(total_seconds)), 0)
    hours = total // 3600
    minutes = (total % 3600) // 60
    seconds = total % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def log_entry_pace(entry: TrainingLogEntry) -> str:
    pace = entry.pace_sec_per_km()
    if pace is None:
        return "-"
    return f"{seconds_to_pace(pace)}/km"


def workout_label(workout_type: str) -> str:
    return WORKOUT_LABELS.get(workout_type, WORKOUT_LABELS["rest"])


def day_name(day_index: int) -> str:
    if 0 <= day_index < len(WEEKDAY_KR):
        return WEEKDAY_KR[day_index]
    return ""
