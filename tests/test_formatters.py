from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from formatters import day_name, format_km, log_entry_pace, seconds_to_hms, workout_label
from planner_core import TrainingLogEntry, seconds_to_pace


def test_format_km_hides_zero_and_rounds() -> None:
    assert format_km(0) == "-"
    assert format_km(15.6) == "15.6 km"
    assert format_km(6.0) == "6 km"
    assert format_km(42.195) == "42.2 km"


def test_seconds_to_hms_switches_format_above_an_hour() -> None:
    assert seconds_to_hms(605) == "10:05"
    assert seconds_to_hms(3725) == "1:02:05"
    assert seconds_to_hms(-5) == "0:00"


def test_seconds_to_pace() -> None:
    assert seconds_to_pace(330) == "5:30"
    assert seconds_to_pace(299.6) == "5:00"
    assert seconds_to_pace(-10) == "0:00"


def test_log_entry_pace() -> None:
    entry = TrainingLogEntry(date="2024-01-02", distance_km=10.0, time_seconds=3000)
    assert log_entry_pace(entry) == "5:00/km"
    assert log_entry_pace(TrainingLogEntry(date="2024-01-02", distance_km=0.0, time_seconds=3000)) == "-"


def test_workout_labels_and_day_names() -> None:
    assert workout_label("long") == "롱런"
    assert workout_label("tempo") == "템포"
    assert workout_label("unknown") == "휴식"
    assert day_name(0) == "월"
    assert day_name(6) == "일"
    assert day_name(9) == ""
