import asyncio

import pandas as pd
import streamlit as st
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from config import load_settings
from models import Goal, MAX_TIMEFRAME_WEEKS, MENTOR_STYLES
from pdf_export import export_filename, render_pdf
from planner import PlannerSession, completes_plan, is_plan_complete, progress_percent, week_status

STATUS_ICONS = {
    "completed": "✅",
    "current": "🧠",
    "upcoming": "🕒",
}

settings = load_settings()

if "planner" not in st.session_state:
    st.session_state["planner"] = PlannerSession()
if "last_goal" not in st.session_state:
    st.session_state["last_goal"] = None

planner: PlannerSession = st.session_state["planner"]


def run_generation(goal: Goal):
    """Runs the async generation to completion inside the Streamlit script run."""
    with st.spinner("Generating your plan..."):
        asyncio.run(planner.submit_goal(goal))


def mentor_option_label(style: str) -> str:
    meta = MENTOR_STYLES[style]
    return f"{meta['icon']} {meta['label']}"


def week_overview_frame(state) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "Week": label,
            "Status": week_status(state, label).title(),
            "Tasks": len(week.tasks),
            "Resources": len(week.resources),
            "Mentor Tip": week.mentor_tip,
        }
        for label, week in state.roadmap.iter_weeks()
    ])


# --- Streamlit UI Configuration ---
st.set_page_config(
    page_title="Agentic AI Planner",
    page_icon="🌱",
    layout="wide",
)


def render_goal_form():
    st.title("Agentic AI Planner 🌱")
    st.markdown("Turn big goals into an actionable, adaptive weekly plan, powered by AI 🚀")

    if not settings.remote_enabled:
        st.info("No `OPENAI_API_KEY` configured: plans come from the built-in offline planner.")

    state = planner.state
    with st.form("goal_form"):
        goal_text = st.text_input(
            "🎯 What's your goal?",
            placeholder="e.g., Learn React and build 3 projects, Start a fitness routine, Master Spanish...",
        )
        timeframe = st.number_input(
            "⏱️ Timeframe (weeks)",
            min_value=1,
            max_value=MAX_TIMEFRAME_WEEKS,
            value=4,
            step=1,
        )
        mentor_style = st.selectbox(
            "🧠 Choose your AI mentor style",
            list(MENTOR_STYLES.keys()),
            format_func=mentor_option_label,
        )
        st.caption(MENTOR_STYLES[mentor_style]["description"])
        submitted = st.form_submit_button(
            "✨ Generate Plan", type="primary", disabled=state.is_loading
        )

    if submitted:
        try:
            goal = Goal(text=goal_text, timeframe_weeks=int(timeframe), mentor_style=mentor_style)
        except PydanticValidationError as error:
            st.error("Please enter a goal and a timeframe between 1 and 52 weeks.")
            logger.debug(f"Rejected goal form input: {error}")
            return
        st.session_state["last_goal"] = goal
        run_generation(goal)
        st.rerun()

    if state.error:
        st.error(f"We couldn't generate your plan: {state.error}")
        last_goal = st.session_state["last_goal"]
        if last_goal is not None and st.button("🔁 Try again"):
            run_generation(last_goal)
            st.rerun()


def render_week_panel(state, label: str):
    week = state.roadmap.weeks[label]
    st.subheader(f"{label} Details")

    is_completed = label in state.completed_weeks
    toggle_label = "↩️ Mark as not completed" if is_completed else "✅ Mark week as completed"
    if st.button(toggle_label, key=f"toggle_{label}"):
        before = planner.state
        if completes_plan(before, planner.toggle_week_completion(label)):
            st.session_state["celebrate"] = True
        st.rerun()

    st.markdown("**Tasks**")
    for task in week.tasks:
        st.markdown(f"- {task}")

    st.markdown("**Resources**")
    for resource in week.resources:
        st.markdown(f"- [{resource}]({resource})")

    st.markdown("**Reflection**")
    st.write(week.reflection)

    st.markdown("**Mentor Tip**")
    st.info(f"💬 {week.mentor_tip}")


def render_roadmap():
    state = planner.state
    roadmap = state.roadmap
    goal_text = state.current_goal.text if state.current_goal else ""

    header_cols = st.columns([1, 3, 1])
    if header_cols[0].button("← Back to form"):
        planner.reset_session()
        st.rerun()
    header_cols[2].download_button(
        "⬇️ Download PDF",
        data=render_pdf(roadmap, goal_text, state.completed_weeks, font_path=settings.pdf_font),
        file_name=export_filename(),
        mime="application/pdf",
    )

    st.header(f"🎯 {goal_text}")
    if state.strategy == "mock":
        st.caption("Generated by the offline planner.")

    done = len(state.completed_weeks)
    metrics_cols = st.columns(2)
    metrics_cols[0].metric("XP", planner.progress_score())
    metrics_cols[1].metric("Weeks Completed", f"{done}/{roadmap.total_weeks}")
    st.progress(progress_percent(done, roadmap.total_weeks) / 100)

    if st.session_state.pop("celebrate", False):
        st.balloons()
    if is_plan_complete(state):
        st.success("Amazing! You completed every week of this roadmap. 🏆")

    roadmap_tab, overview_tab = st.tabs(["🗺️ Roadmap", "📊 Plan Overview"])

    with roadmap_tab:
        st.markdown("### 🏁 Key Milestones")
        for milestone in roadmap.milestones:
            st.markdown(f"- {milestone}")

        st.markdown("### 📅 Weekly Journey")
        timeline_col, detail_col = st.columns([1, 2])
        with timeline_col:
            for label in roadmap.week_labels:
                icon = STATUS_ICONS[week_status(state, label)]
                if st.button(f"{icon} {label}", key=f"select_{label}", use_container_width=True):
                    planner.select_week(label)
                    st.rerun()
            st.markdown("🏆 **Goal reached**")
        with detail_col:
            if state.current_week:
                render_week_panel(state, state.current_week)

    with overview_tab:
        st.dataframe(week_overview_frame(state), hide_index=True, use_container_width=True)


if planner.state.roadmap is None:
    render_goal_form()
else:
    render_roadmap()
