from typing import Any, Dict

import altair as alt
import pandas as pd
import streamlit as st

from frontend.state import (
    ApiError,
    AppState,
    escape_text,
    post,
    safe_github_link,
    submit_repo,
    time_ago,
    validate_repo_url,
)

WINDOW_LABELS = {
    "this_week": "이번 주",
    "this_month": "이번 달",
    "all_time": "전체 기간",
}
TOP_CONTRIBUTORS_IN_CHART = 8

CUSTOM_CSS = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Pretendard:wght@400;500;600;700&display=swap');
:root {
  --bg: #f6f7fb;
  --card: #ffffff;
  --text: #0f172a;
  --muted: #6b7280;
  --accent-strong: #0284c7;
  --pill: #e0f2fe;
}
* { font-family: 'Pretendard', 'Inter', system-ui, -apple-system, sans-serif; }
.main, .block-container { background: var(--bg); }
.hero {
  padding: 1.25rem 1.5rem;
  border-radius: 18px;
  background: linear-gradient(120deg, #0ea5e9 0%, #38bdf8 50%, #c7d2fe 100%);
  color: #0b1220;
  box-shadow: 0 14px 40px rgba(14, 165, 233, 0.25);
}
.hero h1 { margin: 0 0 0.35rem 0; font-size: 1.8rem; }
.hero p { margin: 0; color: #0f172a; font-weight: 700; font-size: 1.05rem; }
.metric-card {
  background: var(--card);
  border-radius: 14px;
  padding: 0.9rem 1rem;
  border: 1px solid #e5e7eb;
}
.metric-label { color: var(--muted); font-size: 0.9rem; }
.metric-value { font-size: 1.4rem; font-weight: 700; color: var(--text); }
.commit-meta { color: var(--muted); font-size: 0.85rem; }
.commit-sha { font-family: monospace; color: var(--accent-strong); }
.empty-state {
  background: #e0f2fe;
  color: #0f172a;
  border: 1px solid #bae6fd;
  padding: 0.9rem 1rem;
  border-radius: 12px;
}
</style>
"""


def get_state() -> AppState:
    if "app_state" not in st.session_state:
        st.session_state["app_state"] = AppState()
    return st.session_state["app_state"]


def refresh_report(state: AppState) -> None:
    # 커밋 목록이나 기간이 바뀐 경우에만 다시 집계
    key = (state.submission or "", state.window)
    if state.report_key == key or not state.commits:
        return
    try:
        state.report = post("/analyze/aggregate", {"commits": state.commits, "window": state.window})
        state.report_key = key
    except ApiError as exc:
        state.report = None
        state.report_key = None
        st.error(str(exc))


def metric_card(label: str, value: Any) -> None:
    st.markdown(
        f"""
        <div class="metric-card">
          <div class="metric-label">{label}</div>
          <div class="metric-value">{value}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_activity(report: Dict[str, Any], commits_total: int) -> None:
    daily = pd.DataFrame(report.get("daily_series", []))
    contributors = report.get("contributors", [])
    in_window = int(daily["count"].sum()) if not daily.empty else 0
    active_days = int((daily["count"] > 0).sum()) if not daily.empty else 0

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        metric_card("가져온 커밋", commits_total)
    with col2:
        metric_card("기간 내 커밋", in_window)
    with col3:
        metric_card("활동일", active_days)
    with col4:
        metric_card("기여자", len(contributors))

    st.markdown("#### 일별 커밋")
    if daily.empty:
        st.write("표시할 데이터가 없습니다.")
    else:
        daily["date"] = pd.to_datetime(daily["date"])
        timeline = (
            alt.Chart(daily)
            .mark_area(line=True, opacity=0.35, interpolate="monotone")
            .encode(
                x=alt.X("date:T", title=""),
                y=alt.Y("count:Q", title="커밋 수"),
                tooltip=[alt.Tooltip("date:T", title="날짜"), alt.Tooltip("count:Q", title="커밋 수")],
            )
            .properties(height=240)
        )
        st.altair_chart(timeline, use_container_width=True)

    st.markdown("#### 기여자별 커밋 (가져온 전체 기준)")
    if not contributors:
        st.markdown(
            '<div class="empty-state">GitHub 계정과 연결된 기여자가 없습니다.</div>',
            unsafe_allow_html=True,
        )
        return

    totals = pd.DataFrame(
        [{"login": c["login"], "name": c["display_name"], "commits": c["total_commits"]} for c in contributors]
    )
    bars = (
        alt.Chart(totals)
        .mark_bar(cornerRadiusEnd=3)
        .encode(
            x=alt.X("commits:Q", title="커밋 수"),
            y=alt.Y("login:N", sort="-x", title=""),
            tooltip=["login", "name", "commits"],
        )
        .properties(height=max(120, 24 * len(totals)))
    )
    st.altair_chart(bars, use_container_width=True)

    st.markdown("#### 기여자별 일별 커밋 (선택 기간)")
    rows = []
    for c in contributors[:TOP_CONTRIBUTORS_IN_CHART]:
        for point in c["daily_series"]:
            rows.append({"login": c["login"], "date": point["date"], "count": point["count"]})
    series = pd.DataFrame(rows)
    series["date"] = pd.to_datetime(series["date"])
    lines = (
        alt.Chart(series)
        .mark_line(point=True)
        .encode(
            x=alt.X("date:T", title=""),
            y=alt.Y("count:Q", title="커밋 수"),
            color=alt.Color("login:N", title="기여자"),
            tooltip=["login", alt.Tooltip("date:T", title="날짜"), "count"],
        )
        .properties(height=260)
    )
    st.altair_chart(lines, use_container_width=True)

    for c in contributors:
        cols = st.columns([1, 5, 2])
        with cols[0]:
            if c.get("avatar_url"):
                st.image(c["avatar_url"], width=36)
        with cols[1]:
            st.markdown(
                f"<b>{escape_text(c['display_name'])}</b> · <code>{escape_text(c['login'])}</code>",
                unsafe_allow_html=True,
            )
        with cols[2]:
            st.markdown(f"{c['total_commits']} commits")


def render_rewrite(state: AppState, commit: Dict[str, Any]) -> None:
    if st.button("AI로 메시지 다시 쓰기", key=f"rewrite_{commit['sha']}"):
        with st.spinner("AI가 커밋 메시지를 다시 쓰는 중..."):
            try:
                result = post(
                    "/ai/rewrite",
                    {"owner": state.owner, "repo": state.repo, "sha": commit["sha"]},
                )
                state.rewrite = result
            except ApiError as exc:
                state.rewrite = None
                st.error(f"AI Rewrite Failed: {exc}")

    rewrite = state.rewrite
    if rewrite and rewrite.get("sha") == commit["sha"]:
        st.markdown("**원본 메시지**")
        st.code(rewrite.get("original_message", ""), language=None)
        # st.code 우측 상단 복사 버튼으로 바로 복사 가능
        st.markdown("**AI가 다시 쓴 메시지**")
        st.code(rewrite.get("rewritten_message", ""), language=None)
        if st.button("닫기", key=f"close_{commit['sha']}"):
            state.rewrite = None
            st.rerun()


def render_timeline(state: AppState) -> None:
    for commit in state.commits:
        with st.container(border=True):
            cols = st.columns([1, 11])
            with cols[0]:
                if commit.get("author_avatar_url"):
                    st.image(commit["author_avatar_url"], width=40)
            with cols[1]:
                st.markdown(
                    f"<b>{escape_text(commit['author_display_name'])}</b> "
                    f"<span class='commit-meta'>committed {time_ago(commit['author_date'])}</span>",
                    unsafe_allow_html=True,
                )
            st.markdown(f"<b>{escape_text(commit.get('summary', ''))}</b>", unsafe_allow_html=True)
            if commit.get("body"):
                st.text(commit["body"])
            link = safe_github_link(commit.get("html_url"))
            short_sha = escape_text(commit.get("short_sha") or commit["sha"][:7])
            if link:
                st.markdown(f"<a class='commit-sha' href=\"{link}\" target='_blank'>{short_sha}</a>", unsafe_allow_html=True)
            else:
                st.markdown(f"<span class='commit-sha'>{short_sha}</span>", unsafe_allow_html=True)
            render_rewrite(state, commit)


st.set_page_config(page_title="GitView", layout="wide")
st.markdown(CUSTOM_CSS, unsafe_allow_html=True)

state = get_state()

# ---------- 사이드바: 저장소 선택 ----------

st.sidebar.header("저장소 선택")
with st.sidebar.form("repo_form"):
    repo_url = st.text_input(
        "Repository URL",
        value=state.repo_url or "",
        placeholder="https://github.com/facebook/react",
    )
    submitted = st.form_submit_button("Visualize", type="primary")

if submitted:
    problem = validate_repo_url(repo_url)
    if problem:
        st.sidebar.error(problem)
    else:
        with st.spinner("GitHub에서 커밋을 가져오는 중..."):
            state = submit_repo(state, repo_url.strip())
        st.session_state["app_state"] = state

window_keys = list(WINDOW_LABELS)
state.window = st.sidebar.radio(
    "기간",
    options=window_keys,
    format_func=lambda k: WINDOW_LABELS[k],
    index=window_keys.index(state.window),
)

st.markdown(
    """
    <div class="hero">
      <h1>GitView</h1>
      <p>저장소 커밋 히스토리를 시각화하고 AI로 커밋 메시지를 다듬습니다.</p>
    </div>
    """,
    unsafe_allow_html=True,
)

if state.error:
    st.error(state.error)

if not state.commits:
    if not state.error:
        st.markdown(
            '<div class="empty-state">좌측에 GitHub 저장소 URL을 입력하고 <b>Visualize</b> 버튼을 눌러주세요.</div>',
            unsafe_allow_html=True,
        )
else:
    refresh_report(state)
    st.caption(f"{state.owner}/{state.repo} · 최근 커밋 {len(state.commits)}개")
    tab_activity, tab_timeline, tab_raw = st.tabs(["활동", "커밋 타임라인", "원본 데이터"])

    with tab_activity:
        if state.report:
            render_activity(state.report, len(state.commits))

    with tab_timeline:
        render_timeline(state)

    with tab_raw:
        raw_df = pd.DataFrame(
            [
                {
                    "sha": c.get("short_sha") or c["sha"][:7],
                    "author": c.get("author_login") or c["author_display_name"],
                    "date": c["author_date"],
                    "summary": c.get("summary", ""),
                }
                for c in state.commits
            ]
        )
        st.dataframe(raw_df, use_container_width=True, hide_index=True)
