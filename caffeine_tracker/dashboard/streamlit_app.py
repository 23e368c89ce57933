"""
Streamlit Caffeine Dashboard.
Main page: quick logging, energy gauge, crash prediction, caffeine curve.
Sidebar: History, Profile, System.
Mobile-first.
"""

from datetime import datetime

import httpx
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from caffeine_tracker.config import API_KEY, API_URL

HEADERS = {"x-api-key": API_KEY} if API_KEY else {}


def api_get(path: str, params: dict | None = None) -> dict | list:
    try:
        r = httpx.get(f"{API_URL}{path}", params=params, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def api_post(path: str, data: dict) -> dict:
    try:
        r = httpx.post(f"{API_URL}{path}", json=data, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def api_put(path: str, data: dict) -> dict:
    try:
        r = httpx.put(f"{API_URL}{path}", json=data, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def api_delete(path: str) -> dict:
    try:
        r = httpx.delete(f"{API_URL}{path}", headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def show_warning(warning: dict | None):
    if not warning:
        return
    text = f"**{warning['title']}**: {warning['message']}"
    if warning["tier"] in ("danger", "over_limit"):
        st.error(text)
    elif warning["tier"] == "high_single_dose":
        st.info(text)
    else:
        st.warning(text)


# --- Plotly mobile-friendly helper ---
PLOTLY_MOBILE_CONFIG = {
    "displayModeBar": False,
    "scrollZoom": False,
    "staticPlot": False,
    "responsive": True,
}

PLOTLY_MOBILE_LAYOUT = dict(
    dragmode=False,
    template="plotly_dark",
    margin=dict(l=40, r=20, t=40, b=35),
    legend=dict(orientation="h", yanchor="bottom", y=1.02),
    xaxis=dict(fixedrange=True),
    yaxis=dict(fixedrange=True),
)


def mobile_chart(fig, height=350, **kwargs):
    """Render a Plotly chart with mobile-friendly settings (no accidental zoom/pan)."""
    fig.update_layout(**PLOTLY_MOBILE_LAYOUT, height=height, **kwargs)
    st.plotly_chart(fig, use_container_width=True, config=PLOTLY_MOBILE_CONFIG)


# --- Page Config ---
st.set_page_config(
    page_title="Caffeine Tracker",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="collapsed",
)

PAGES = ["Today", "History", "Profile", "System"]

with st.sidebar:
    st.header("Caffeine Tracker")
    current_page = st.radio("Navigation", PAGES, index=0, label_visibility="collapsed")
    st.divider()
    side_status = api_get("/api/caffeine/status")
    if isinstance(side_status, dict) and "active_mg" in side_status:
        st.metric("Active", f"{side_status['active_mg']:.0f} mg")
        st.caption(side_status["energy"]["status"])


# =========================================================
# PAGE: Today
# =========================================================
if current_page == "Today":
    profile = api_get("/api/profile")
    if isinstance(profile, dict) and profile and not profile.get("is_onboarded"):
        st.info("Set your weight and sensitivity under Profile for accurate limits.")

    status = api_get("/api/caffeine/status")
    if isinstance(status, dict) and "active_mg" in status:
        m1, m2, m3 = st.columns(3)
        with m1:
            st.metric("Active caffeine", f"{status['active_mg']:.0f} mg")
        with m2:
            st.metric("Today", f"{status['total_today_mg']:.0f} / {status['daily_limit_mg']:.0f} mg")
        with m3:
            if status.get("crash_time"):
                crash = datetime.fromisoformat(status["crash_time"])
                mins = status.get("minutes_until_crash")
                delta = f"in {mins // 60}h {mins % 60}m" if mins is not None else None
                st.metric("Crash", crash.strftime("%H:%M"), delta=delta, delta_color="off")
            else:
                st.metric("Crash", "—")
        st.progress(status["energy"]["fill"], text=status["energy"]["status"])
        show_warning(status.get("warning"))

        s1, s2, s3 = st.columns(3)
        with s1:
            st.metric("Daily average (30d)", f"{status['average_daily_mg']:.0f} mg")
        with s2:
            st.metric("Metabolism", f"{status['half_life_hours']:.0f} h")
        with s3:
            st.metric("Total logs", status["total_entries"])

    # ---- Log a drink ----
    st.subheader("Log a drink")
    presets = api_get("/api/presets")
    if isinstance(presets, list) and presets:
        cols = st.columns(3)
        for idx, preset in enumerate(presets):
            with cols[idx % 3]:
                label = f"{preset['name']} {preset['caffeine_mg']:.0f}mg"
                if st.button(label, use_container_width=True, key=f"p_{idx}"):
                    r = api_post("/api/intake", {"drink_name": preset["name"]})
                    if r.get("status") == "ok":
                        show_warning(r.get("warning"))
                        st.success(f"{preset['name']} logged")
                        st.rerun()

    with st.expander("Custom / earlier"):
        cc1, cc2 = st.columns(2)
        with cc1:
            custom_name = st.text_input("Drink", value="Custom", key="cname")
        with cc2:
            custom_mg = st.number_input("mg", min_value=0.0, max_value=2000.0, step=5.0, value=100.0, key="cmg")
        dc1, dc2 = st.columns(2)
        with dc1:
            cdate = st.date_input("Date", value=datetime.now().date(), key="cdate")
        with dc2:
            ctime = st.time_input("Time", value=datetime.now().time().replace(second=0, microsecond=0), key="ctime")

        check = api_post("/api/intake/check", {"caffeine_mg": custom_mg})
        if isinstance(check, dict):
            show_warning(check.get("warning"))

        if st.button("Log", type="primary", use_container_width=True):
            ts = datetime.combine(cdate, ctime).isoformat()
            r = api_post("/api/intake", {"drink_name": custom_name, "caffeine_mg": custom_mg, "timestamp": ts})
            if r.get("status") == "ok":
                st.success("Logged")
                st.rerun()

    # ---- Curve ----
    st.divider()
    curve = api_get("/api/caffeine/curve", {"interval": 15})
    if isinstance(curve, dict) and curve.get("points"):
        df = pd.DataFrame(curve["points"])
        df["time"] = pd.to_datetime(df["timestamp"])
        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=df["time"], y=df["active_mg"],
            mode="lines", name="Active caffeine",
            line=dict(color="#FF9800", width=3),
            fill="tozeroy", fillcolor="rgba(255,152,0,0.10)",
        ))
        fig.add_vline(x=datetime.now(), line=dict(color="#F44336", width=2))
        if isinstance(status, dict) and status.get("crash_threshold_mg"):
            fig.add_hline(
                y=status["crash_threshold_mg"],
                line=dict(color="#9E9E9E", width=1, dash="dot"),
                annotation_text="crash threshold",
            )
        mobile_chart(fig, yaxis_title="mg")

    # ---- Today's entries ----
    st.subheader("Today")
    intakes = api_get("/api/intake", {"today": True})
    if isinstance(intakes, list) and intakes:
        for i in intakes:
            ts = i.get("timestamp", "")[11:16]
            iid = i.get("id")
            ec, dc = st.columns([5, 1])
            with ec:
                st.text(f"{ts} {i.get('drink_name', '?')} {i.get('caffeine_mg', 0):.0f}mg")
            with dc:
                if st.button("X", key=f"di_{iid}"):
                    api_delete(f"/api/intake/{iid}")
                    st.rerun()
    else:
        st.caption("—")


# =========================================================
# PAGE: History
# =========================================================
elif current_page == "History":
    st.header("History")
    premium = st.toggle("Premium", value=False)
    history = api_get("/api/history", {"premium": premium})
    if isinstance(history, dict) and history.get("days"):
        if history.get("limited"):
            st.caption(f"Showing the last {history['history_days']} days. Unlock unlimited history with Premium.")
        totals = pd.DataFrame([{"date": d["date"], "total_mg": d["total_mg"]} for d in history["days"]])
        fig = go.Figure(go.Bar(x=totals["date"], y=totals["total_mg"], marker_color="#FF9800"))
        mobile_chart(fig, height=250, yaxis_title="mg")
        for day in history["days"]:
            with st.expander(f"{day['date']}: {day['total_mg']:.0f} mg"):
                st.dataframe(pd.DataFrame(day["entries"]), use_container_width=True, hide_index=True)
    else:
        st.caption("No entries yet.")


# =========================================================
# PAGE: Profile
# =========================================================
elif current_page == "Profile":
    st.header("Profile")
    profile = api_get("/api/profile")
    if isinstance(profile, dict) and profile:
        weight = st.number_input("Weight (kg)", min_value=20.0, max_value=400.0,
                                 value=float(profile["weight_kg"]), step=0.5)
        options = ["LOW", "MEDIUM", "HIGH"]
        names = {
            "LOW": "Caffeine Veteran (6h half-life)",
            "MEDIUM": "Regular Coffee Drinker (5h half-life)",
            "HIGH": "Caffeine Sensitive (4h half-life)",
        }
        sensitivity = st.radio(
            "Sensitivity", options, index=options.index(profile["sensitivity"]),
            format_func=lambda o: names[o],
        )
        st.caption(
            f"Daily limit {profile['daily_limit_mg']:.0f} mg, "
            f"warning from {profile['warning_level_mg']:.0f} mg."
        )
        if st.button("Save", type="primary", use_container_width=True):
            api_put("/api/profile", {"weight_kg": weight, "sensitivity": sensitivity, "is_onboarded": True})
            st.success("Saved")
            st.rerun()
        if st.button("Restart onboarding", use_container_width=True):
            api_post("/api/profile/reset", {})
            st.rerun()


# =========================================================
# PAGE: System
# =========================================================
elif current_page == "System":
    st.header("System")
    st.json(api_get("/api/status"))
    alerts = api_get("/api/alerts")
    st.subheader("Pending crash alerts")
    if isinstance(alerts, list) and alerts:
        st.dataframe(pd.DataFrame(alerts)[["alert_time", "crash_time", "message"]],
                     use_container_width=True, hide_index=True)
    else:
        st.caption("None")
