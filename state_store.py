"""
state_store
-----------
저장 상태(settings + 훈련 기록) 관리.

- ``{"version": 1, "settings": ..., "logsByDate": ...}`` 문서 검증 및 기본값 대체
- 사용자별 JSON 파일 저장소 (last-writer-wins, 저장 시 전체 덮어쓰기)
- 기록 저장/삭제, 설정 변경을 새 상태로 반환하는 순수 함수
- 자유 입력(거리, 시간) 파싱: 실패 시 None
"""

from __future__ import annotations

import json
import math
import os
import re
import tempfile
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger

from planner_core import IsoDate, Settings, TrainingLogEntry, from_iso_date, round1, to_iso_date

STATE_VERSION = 1
DEFAULT_BASE_WEEKLY_KM = 10.0
DEFAULT_PEAK_WEEKLY_CAP_KM = 55.0

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]+$")


@dataclass(frozen=True)
class AppState:
    settings: Settings
    logs_by_date: Dict[IsoDate, TrainingLogEntry] = field(default_factory=dict)
    version: int = STATE_VERSION


# -----------------------------
# 기본값
# -----------------------------


def default_settings(today: Optional[date] = None) -> Settings:
    return Settings(
        plan_start_date=to_iso_date(today or date.today()),
        base_weekly_km=DEFAULT_BASE_WEEKLY_KM,
        peak_weekly_cap_km=DEFAULT_PEAK_WEEKLY_CAP_KM,
    )


def default_state(today: Optional[date] = None) -> AppState:
    return AppState(settings=default_settings(today), logs_by_date={})


# -----------------------------
# 직렬화 / 검증
# -----------------------------


def _require_number(raw: Mapping[str, Any], key: str) -> float:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number")
    return float(value)


def _optional_pace(raw: Mapping[str, Any], key: str) -> Optional[float]:
    if raw.get(key) is None:
        return None
    value = _require_number(raw, key)
    return value if value > 0 else None


def _require_iso_date(value: Any, key: str) -> IsoDate:
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a yyyy-mm-dd string")
    try:
        parsed = from_iso_date(value)
    except ValueError as err:
        raise ValueError(f"{key} must be a yyyy-mm-dd string") from err
    if to_iso_date(parsed) != value:
        raise ValueError(f"{key} must be a yyyy-mm-dd string")
    return value


def settings_from_dict(raw: Any) -> Settings:
    if not isinstance(raw, Mapping):
        raise ValueError("settings must be an object")
    return Settings(
        plan_start_date=_require_iso_date(raw.get("planStartDate"), "planStartDate"),
        base_weekly_km=_require_number(raw, "baseWeeklyKm"),
        peak_weekly_cap_km=_require_number(raw, "peakWeeklyCapKm"),
        easy_pace_min_per_km=_optional_pace(raw, "easyPaceMinPerKm"),
        tempo_pace_min_per_km=_optional_pace(raw, "tempoPaceMinPerKm"),
    )


def settings_to_dict(settings: Settings) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "planStartDate": settings.plan_start_date,
        "baseWeeklyKm": settings.base_weekly_km,
        "peakWeeklyCapKm": settings.peak_weekly_cap_km,
    }
    if settings.easy_pace_min_per_km is not None:
        payload["easyPaceMinPerKm"] = settings.easy_pace_min_per_km
    if settings.tempo_pace_min_per_km is not None:
        payload["tempoPaceMinPerKm"] = settings.tempo_pace_min_per_km
    return payload


def log_entry_from_dict(raw: Any) -> TrainingLogEntry:
    if not isinstance(raw, Mapping):
        raise ValueError("log entry must be an object")
    note = raw.get("note")
    distance_km = _require_number(raw, "distanceKm")
    time_seconds = int(_require_number(raw, "timeSeconds"))
    if distance_km <= 0 or time_seconds <= 0:
        raise ValueError("distanceKm and timeSeconds must be positive")
    return TrainingLogEntry(
        date=_require_iso_date(raw.get("date"), "date"),
        distance_km=distance_km,
        time_seconds=time_seconds,
        note=note if isinstance(note, str) and note else None,
    )


def log_entry_to_dict(entry: TrainingLogEntry) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "date": entry.date,
        "distanceKm": entry.distance_km,
        "timeSeconds": entry.time_seconds,
    }
    if entry.note:
        payload["note"] = entry.note
    return payload


def state_from_dict(raw: Any, *, today: Optional[date] = None) -> AppState:
    """
    Build an AppState from a decoded state document.

    A wrong version, a missing or malformed ``settings`` or a non-object
    ``logsByDate`` yields the default state. Individual log entries that fail
    validation are dropped with a warning; the rest of the log survives.
    """
    if not isinstance(raw, Mapping) or raw.get("version") != STATE_VERSION:
        logger.warning("State document missing or wrong version, using defaults")
        return default_state(today)
    logs_raw = raw.get("logsByDate")
    if not isinstance(logs_raw, Mapping):
        logger.warning("State document has no logsByDate object, using defaults")
        return default_state(today)
    try:
        settings = settings_from_dict(raw.get("settings"))
    except ValueError as err:
        logger.warning(f"Invalid settings in state document ({err}), using defaults")
        return default_state(today)

    logs: Dict[IsoDate, TrainingLogEntry] = {}
    for key, entry_raw in logs_raw.items():
        try:
            entry = log_entry_from_dict(entry_raw)
        except ValueError as err:
            logger.warning(f"Dropping malformed log entry {key!r}: {err}")
            continue
        logs[entry.date] = entry
    return AppState(settings=settings, logs_by_date=logs)


def state_to_dict(state: AppState) -> Dict[str, Any]:
    return {
        "version": state.version,
        "settings": settings_to_dict(state.settings),
        "logsByDate": {day: log_entry_to_dict(entry) for day, entry in sorted(state.logs_by_date.items())},
    }


# -----------------------------
# 상태 변경 (새 AppState 반환)
# -----------------------------


def save_log(state: AppState, day: IsoDate, km: float, seconds: int, note: str = "") -> AppState:
    """Insert or overwrite the entry for ``day``."""
    cleaned_note = note.strip() if note else ""
    entry = TrainingLogEntry(
        date=day,
        distance_km=round1(km),
        time_seconds=int(seconds),
        note=cleaned_note or None,
    )
    logs = dict(state.logs_by_date)
    logs[day] = entry
    return replace(state, logs_by_date=logs)


def delete_log(state: AppState, day: IsoDate) -> AppState:
    if day not in state.logs_by_date:
        return state
    logs = {key: value for key, value in state.logs_by_date.items() if key != day}
    return replace(state, logs_by_date=logs)


def update_settings(state: AppState, **changes: Any) -> AppState:
    return replace(state, settings=replace(state.settings, **changes))


# -----------------------------
# 입력 파싱
# -----------------------------


def parse_time_parts(hh: str, mm: str, ss: str) -> Optional[int]:
    # 빈 칸은 0으로 취급
    values = []
    for raw in (hh, mm, ss):
        text = (raw or "").strip() or "0"
        try:
            value = float(text)
        except ValueError:
            return None
        if not math.isfinite(value) or value < 0:
            return None
        values.append(value)
    hours, minutes, seconds = values
    return int(round(hours * 3600 + minutes * 60 + seconds))


def parse_distance_km(raw: str) -> Optional[float]:
    try:
        value = float((raw or "").strip())
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_log_input(
    day: IsoDate,
    km_text: str,
    hh: str,
    mm: str,
    ss: str,
    note: str = "",
) -> Optional[TrainingLogEntry]:
    """
    Validate free-form log input. Returns None when the distance or the time is
    unparseable or not positive, so the caller can refuse the save.
    """
    km = parse_distance_km(km_text)
    seconds = parse_time_parts(hh, mm, ss)
    if km is None or seconds is None or seconds <= 0:
        logger.info(f"Rejected log input for {day}: km={km_text!r} time={hh}:{mm}:{ss}")
        return None
    cleaned_note = note.strip() if note else ""
    return TrainingLogEntry(date=day, distance_km=round1(km), time_seconds=seconds, note=cleaned_note or None)


def apply_log_entry(state: AppState, entry: TrainingLogEntry) -> AppState:
    return save_log(state, entry.date, entry.distance_km, entry.time_seconds, entry.note or "")


@dataclass(frozen=True)
class LogFormDefaults:
    day: IsoDate
    km_text: str
    hh: str
    mm: str
    ss: str
    note: str


def log_form_defaults(
    state: AppState,
    day: IsoDate,
    planned_km: Optional[float] = None,
) -> LogFormDefaults:
    """
    Initial values for the log form on ``day``.

    An existing entry wins. Otherwise the planned distance is suggested
    (blank for rest days or when no plan day was picked).
    """
    existing = state.logs_by_date.get(day)
    if existing is not None:
        total = existing.time_seconds
        return LogFormDefaults(
            day=day,
            km_text=f"{existing.distance_km:g}",
            hh=str(total // 3600),
            mm=str((total % 3600) // 60),
            ss=str(total % 60),
            note=existing.note or "",
        )
    km_text = f"{planned_km:g}" if planned_km else ""
    return LogFormDefaults(day=day, km_text=km_text, hh="0", mm="0", ss="0", note="")


# -----------------------------
# JSON 파일 저장소
# -----------------------------


class JsonStateStore:
    """One JSON document per user under ``root``. Saves fully overwrite."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, user_id: str) -> Path:
        if not user_id or not _USER_ID_PATTERN.match(user_id) or user_id in {".", ".."}:
            raise ValueError(f"Invalid user id: {user_id!r}")
        return self.root / f"{user_id}.json"

    def load(self, user_id: str, *, today: Optional[date] = None) -> AppState:
        path = self.path_for(user_id)
        if not path.exists():
            logger.info(f"No stored state for {user_id}, starting from defaults")
            return default_state(today)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as err:
            logger.warning(f"Could not read state for {user_id} ({err}), using defaults")
            return default_state(today)
        return state_from_dict(raw, today=today)

    def save(self, user_id: str, state: AppState) -> None:
        path = self.path_for(user_id)
        payload = json.dumps(state_to_dict(state), ensure_ascii=False, indent=2)
        tmp_name: Optional[str] = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{user_id}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError as err:
            logger.error(f"Error saving state for {user_id}: {err}")
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Saved state for {user_id} ({len(state.logs_by_date)} log entries)")

    def clear(self, user_id: str, *, today: Optional[date] = None) -> AppState:
        state = default_state(today)
        self.save(user_id, state)
        return state


__all__ = [
    "AppState",
    "JsonStateStore",
    "LogFormDefaults",
    "STATE_VERSION",
    "apply_log_entry",
    "default_settings",
    "default_state",
    "delete_log",
    "log_entry_from_dict",
    "log_entry_to_dict",
    "log_form_defaults",
    "parse_distance_km",
    "parse_log_input",
    "parse_time_parts",
    "save_log",
    "settings_from_dict",
    "settings_to_dict",
    "state_from_dict",
    "state_to_dict",
    "update_settings",
]
