import os
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from formatters import day_name, format_km, log_entry_pace, seconds_to_hms, workout_label
from planner_core import (
    PlanDay,
    PlanWeek,
    all_days,
    find_week,
    format_short_date,
    from_iso_date,
    generate_plan,
    to_iso_date,
    week_number_for,
)
from progress_core import (
    ProgressSummary,
    aggregate_progress,
    long_run_series_frame,
    week_log_summary,
    weekly_series_frame,
)
from state_store import (
    AppState,
    JsonStateStore,
    apply_log_entry,
    delete_log,
    log_form_defaults,
    parse_log_input,
    update_settings,
)

DATA_DIR = Path(os.environ.get("MARATHON_PLANNER_DATA_DIR", Path.home() / ".marathon_planner"))


@st.cache_resource
def get_store() -> JsonStateStore:
    return JsonStateStore(DATA_DIR)


def _load_state(user_id: str) -> AppState:
    if st.session_state.get("state_user") != user_id:
        st.session_state.state = get_store().load(user_id)
        st.session_state.state_user = user_id
    return st.session_state.state


def _commit(user_id: str, state: AppState) -> bool:
    try:
        get_store().save(user_id, state)
    except OSError as err:
        st.error(f"저장에 실패했습니다: {err}")
        return False
    st.session_state.state = state
    return True


def _request_log(day: PlanDay, message: str) -> None:
    # 기록 탭이 이 날짜/거리로 입력 폼을 채운다
    st.session_state["pending_log_date"] = day.date
    st.session_state["pending_log_km"] = day.planned_km
    st.session_state["flash"] = message
    st.rerun()


def render_plan(plan: List[PlanWeek], state: AppState, today_iso: str, user_id: str) -> None:
    current = week_number_for(state.settings.plan_start_date, today_iso) or 1
    options = [f"{week.week_number}주차 ({week.start_date} ~ {week.end_date})" for week in plan]
    selected_label = st.selectbox("주차 선택", options, index=current - 1)
    week = find_week(plan, options.index(selected_label) + 1)

    summary = week_log_summary(week, state.logs_by_date)
    col1, col2, col3 = st.columns(3)
    col1.metric("목표 주간 거리", format_km(week.target_weekly_km))
    col2.metric("실제 주간 거리", format_km(summary.actual_km))
    col3.metric("주간 달성률", f"{summary.completion_pct}%")

    rows = []
    for day in week.days:
        entry = state.logs_by_date.get(day.date)
        label = format_short_date(day.date)
        if day.date == today_iso:
            label += " ⭐ 오늘"
        rows.append(
            {
                "날짜": label,
                "요일": day_name(day.day_index),
                "세션": workout_label(day.type),
                "계획(km)": format_km(day.planned_km),
                "페이스": day.pace_hint,
                "실제(km)": format_km(entry.distance_km) if entry else "-",
                "시간": seconds_to_hms(entry.time_seconds) if entry else "-",
                "실제 페이스": log_entry_pace(entry) if entry else "-",
                "메모": (entry.note or "") if entry else "",
            }
        )
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    col_day, col_go = st.columns([3, 1])
    day_labels = [f"{format_short_date(day.date)} · {workout_label(day.type)}" for day in week.days]
    picked = col_day.selectbox("기록할 날짜", day_labels, key=f"plan_log_day_{week.week_number}")
    if col_go.button("기록하기", key=f"plan_log_go_{week.week_number}"):
        day = week.days[day_labels.index(picked)]
        _request_log(day, f"{day.date} 기록을 '기록' 탭에서 입력하세요.")

    logged = [day.date for day in week.days if day.date in state.logs_by_date]
    if logged:
        to_delete = st.selectbox("기록 삭제", ["-"] + logged)
        if to_delete != "-" and st.button("선택한 기록 삭제"):
            if _commit(user_id, delete_log(state, to_delete)):
                st.rerun()


def render_log(plan: List[PlanWeek], state: AppState, user_id: str, default_day: date) -> None:
    st.subheader("일일 훈련 기록")
    pending_day: Optional[str] = st.session_state.get("pending_log_date")
    start_day = from_iso_date(pending_day) if pending_day else default_day
    log_day = to_iso_date(st.date_input("날짜", value=start_day))

    planned_by_date: Dict[str, float] = {day.date: day.planned_km for day in all_days(plan)}
    if log_day == pending_day:
        planned_km = st.session_state.get("pending_log_km")
    else:
        planned_km = planned_by_date.get(log_day)
    defaults = log_form_defaults(state, log_day, planned_km)

    col_km, col_h, col_m, col_s = st.columns([2, 1, 1, 1])
    km_text = col_km.text_input("거리 (km)", value=defaults.km_text)
    hh = col_h.text_input("시", value=defaults.hh)
    mm = col_m.text_input("분", value=defaults.mm)
    ss = col_s.text_input("초", value=defaults.ss)
    note = st.text_input("메모(선택)", value=defaults.note)

    if st.button("저장"):
        entry = parse_log_input(log_day, km_text, hh, mm, ss, note)
        if entry is None:
            st.error("거리와 시간을 올바르게 입력해주세요.")
        elif _commit(user_id, apply_log_entry(state, entry)):
            st.session_state.pop("pending_log_date", None)
            st.session_state.pop("pending_log_km", None)
            st.session_state["flash"] = "저장되었습니다."
            st.rerun()

    st.subheader("최근 기록")
    recent = sorted(state.logs_by_date.values(), key=lambda e: e.date, reverse=True)[:14]
    if not recent:
        st.info("아직 기록이 없어요. 오늘 훈련부터 입력해보세요.")
        return
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "날짜": e.date,
                    "거리": format_km(e.distance_km),
                    "시간": seconds_to_hms(e.time_seconds),
                    "페이스": log_entry_pace(e),
                }
                for e in recent
            ]
        ),
        use_container_width=True,
        hide_index=True,
    )


def render_progress(progress: ProgressSummary) -> None:
    st.subheader("주간 거리: 계획 vs 실적")
    weekly_df = weekly_series_frame(progress.weekly_series)
    weekly_chart = (
        alt.Chart(weekly_df)
        .mark_bar()
        .encode(
            x=alt.X("라벨:N", sort=None, axis=alt.Axis(title="주차")),
            xOffset="유형:N",
            y=alt.Y("거리:Q", axis=alt.Axis(title="km")),
            color=alt.Color(
                "유형:N",
                scale=alt.Scale(domain=["계획 km", "실제 km"], range=["#6ea8ff", "#39d98a"]),
                legend=alt.Legend(title=""),
            ),
            tooltip=["라벨", "유형", alt.Tooltip("거리:Q", format=".1f")],
        )
        .properties(height=320)
    )
    st.altair_chart(weekly_chart, use_container_width=True)

    st.subheader("롱런 추이")
    long_df = long_run_series_frame(progress.long_run_series)
    long_chart = (
        alt.Chart(long_df)
        .mark_line()
        .encode(
            x=alt.X("주차:Q", axis=alt.Axis(title="주차")),
            y=alt.Y("거리:Q", axis=alt.Axis(title="km")),
            color=alt.Color("유형:N", legend=alt.Legend(title="")),
            tooltip=["주차", "유형", alt.Tooltip("거리:Q", format=".1f")],
        )
        .properties(height=280)
    )
    st.altair_chart(long_chart, use_container_width=True)


def render_status(progress: ProgressSummary) -> None:
    st.subheader("목표 대비 현재 상태")
    col1, col2, col3 = st.columns(3)
    col1.metric("오늘까지 계획 누적", format_km(progress.planned_to_date_km))
    col2.metric("오늘까지 실적 누적", format_km(progress.actual_to_date_km))
    col3.metric("달성률", f"{progress.completion_pct}%")

    st.markdown("**다음 훈련**")
    nxt = progress.next_planned
    if nxt is None:
        st.info("플랜이 아직 없어요. 설정에서 시작일을 확인해 주세요.")
    else:
        st.markdown(f"**{nxt.date}** · {workout_label(nxt.type)} · **{format_km(nxt.planned_km)}**")
        st.caption(nxt.pace_hint)
        if st.button("기록 입력하러 가기", disabled=nxt.type == "rest"):
            _request_log(nxt, f"{nxt.date} 기록을 '기록' 탭에서 입력하세요.")


def _optional_pace(value: float) -> Optional[float]:
    return value if value > 0 else None


def render_settings(state: AppState, user_id: str) -> None:
    settings = state.settings
    st.subheader("플랜 설정")
    start = st.date_input("플랜 시작일", value=from_iso_date(settings.plan_start_date))
    base = st.number_input("현재 주간 거리 (km)", min_value=0.0, max_value=200.0, value=float(settings.base_weekly_km), step=1.0)
    cap = st.number_input("주간 최대 거리 (km)", min_value=0.0, max_value=250.0, value=float(settings.peak_weekly_cap_km), step=1.0)
    easy = st.number_input("이지 페이스 (분/km, 0=RPE)", min_value=0.0, max_value=15.0, value=float(settings.easy_pace_min_per_km or 0.0), step=0.05)
    tempo = st.number_input("템포 페이스 (분/km, 0=RPE)", min_value=0.0, max_value=15.0, value=float(settings.tempo_pace_min_per_km or 0.0), step=0.05)
    if cap < base:
        st.warning("주간 최대 거리가 현재 주간 거리보다 작습니다.")
    if st.button("설정 저장"):
        updated = update_settings(
            state,
            plan_start_date=to_iso_date(start),
            base_weekly_km=float(base),
            peak_weekly_cap_km=float(cap),
            easy_pace_min_per_km=_optional_pace(easy),
            tempo_pace_min_per_km=_optional_pace(tempo),
        )
        if _commit(user_id, updated):
            st.session_state["flash"] = "설정을 저장했습니다."
            st.rerun()

    st.markdown("---")
    confirm = st.checkbox("정말로 모든 데이터를 초기화합니다")
    if st.button("모든 데이터 초기화", disabled=not confirm):
        try:
            st.session_state.state = get_store().clear(user_id)
        except OSError as err:
            st.error(f"초기화에 실패했습니다: {err}")
        else:
            st.session_state.pop("pending_log_date", None)
            st.session_state.pop("pending_log_km", None)
            st.session_state["flash"] = "데이터가 초기화되었습니다."
            st.rerun()


st.set_page_config(page_title="24주 마라톤 플래너", layout="wide")
st.title("24주 마라톤 완주 플래너")
st.caption("점진 증가 + 4주 컷백 + 3주 테이퍼")

with st.sidebar:
    st.header("사용자")
    user_id = st.text_input("사용자 ID", value="local").strip() or "local"

flash = st.session_state.pop("flash", None)
if flash:
    st.success(flash)

try:
    app_state = _load_state(user_id)
except ValueError as err:
    st.error(f"입력 값을 확인해 주세요: {err}")
    st.stop()

today = date.today()
today_iso = to_iso_date(today)
plan = generate_plan(app_state.settings)
progress = aggregate_progress(plan, app_state.logs_by_date, today_iso)

tab_plan, tab_log, tab_progress, tab_status, tab_settings = st.tabs(["플랜", "기록", "진행", "상태", "설정"])
with tab_plan:
    render_plan(plan, app_state, today_iso, user_id)
with tab_log:
    render_log(plan, app_state, user_id, today)
with tab_progress:
    render_progress(progress)
with tab_status:
    render_status(progress)
with tab_settings:
    render_settings(app_state, user_id)
