# app.py
# Run: streamlit run app.py

from __future__ import annotations

import json
import uuid
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from babylog.config import (
    DB_PATH,
    URL_STATE_PARAM,
    build_event,
    default_form_values,
    event_type_label,
    get_event_type_config,
    load_config,
    validate_event_fields,
)
from babylog.csv_export import events_to_csv
from babylog.errors import (
    ConfigError,
    DecryptionError,
    InvalidEncryptedTokenError,
    PasswordRequiredError,
)
from babylog.regression import calculate_quadratic_regression, generate_trend_line_points
from babylog.stats import calculate_statistics, events_to_frame, filter_today_events, group_events_by_day
from babylog.store import EventStore
from babylog.summaries import SUMMARY_MARKER
from babylog.timestamps import coerce_timestamp, dt_to_iso
from babylog.url_state import get_state_from_url, update_url_state

# =============================================================================
# Constants
# =============================================================================
EVENT_COLORS = {
    "feeding": "#4c78a8",
    "peeing": "#f2cf5b",
    "pooping": "#9d755d",
}

# Browsers and chat apps start truncating links somewhere past these
URL_LENGTH_LIMITS = [2000, 8192, 65536]


# =============================================================================
# State helpers
# =============================================================================
def _read_token() -> Optional[str]:
    return st.query_params.get(URL_STATE_PARAM)


def _write_token(token: str) -> None:
    st.query_params[URL_STATE_PARAM] = token


def _clear_token() -> None:
    if URL_STATE_PARAM in st.query_params:
        del st.query_params[URL_STATE_PARAM]


def hydrate_events() -> bool:
    """
    Load events from the URL once per session.

    Returns False while an encrypted link is waiting for its password.
    """
    if "events" in st.session_state:
        return True

    password = st.session_state.get("share_password") or None
    try:
        state = get_state_from_url(_read_token, password)
    except PasswordRequiredError:
        st.info("🔒 This link is password protected.")
        return False
    except DecryptionError:
        st.error("Wrong password, or the link was altered. Try again.")
        st.session_state["share_password"] = ""
        return False
    except InvalidEncryptedTokenError as e:
        st.error(f"This link is damaged and can't be opened ({e}).")
        if st.button("Start fresh", key="start_fresh"):
            _clear_token()
            st.session_state["events"] = []
            st.rerun()
        return False

    st.session_state["events"] = state.events
    return True


def get_events() -> List[Dict[str, Any]]:
    return st.session_state.setdefault("events", [])


def save_events(events: List[Dict[str, Any]]) -> None:
    events.sort(key=lambda e: coerce_timestamp(e.get("timestamp")))
    st.session_state["events"] = events
    st.session_state["_token"] = update_url_state(
        _write_token, events, st.session_state.get("share_password") or None
    )


def add_event(event: Dict[str, Any]) -> None:
    events = get_events()
    events.append(event)
    save_events(events)


def delete_event(event_id: Any) -> None:
    save_events([e for e in get_events() if e.get("id") != event_id])


# =============================================================================
# Datetime helpers
# =============================================================================
def compose_dt(d: date, t: time) -> datetime:
    return datetime(d.year, d.month, d.day, t.hour, t.minute).astimezone()


def format_event_dt(dt: datetime) -> str:
    return f"{dt.strftime('%b')} {dt.day}, {dt.strftime('%H:%M')}"


def time_picker(label: str, default: time, *, key: str) -> time:
    """
    Native time input + quick back buttons.
    Avoids Streamlit warning by NOT passing value= once session_state has the key.
    """
    widget_key = f"{key}__ti"
    if widget_key not in st.session_state:
        st.session_state[widget_key] = default.replace(second=0, microsecond=0)

    def _shift(delta_min: int) -> None:
        cur: time = st.session_state.get(widget_key) or default
        base = datetime.combine(date.today(), cur) + timedelta(minutes=delta_min)
        st.session_state[widget_key] = base.time().replace(second=0, microsecond=0)

    def _set_now() -> None:
        st.session_state[widget_key] = datetime.now().time().replace(second=0, microsecond=0)

    picked: time = st.time_input(label, key=widget_key)

    c1, c2, c3 = st.columns([1, 1, 1], gap="small")
    c1.button("Now", key=f"{key}__now", on_click=_set_now, use_container_width=True)
    c2.button("−15m", key=f"{key}__m15", on_click=_shift, args=(-15,), use_container_width=True)
    c3.button("−30m", key=f"{key}__m30", on_click=_shift, args=(-30,), use_container_width=True)

    return (st.session_state.get(widget_key) or picked).replace(second=0, microsecond=0)


# =============================================================================
# UI helpers
# =============================================================================
def flash(msg: str, icon: str = "✅") -> None:
    """Queue a toast message to be shown on the next rerun (works inside callbacks)."""
    st.session_state["_flash"] = (msg, icon)


def flash_and_rerun(msg: str, icon: str = "✅") -> None:
    flash(msg, icon)
    st.rerun()


def pretty_event_label(e: Dict[str, Any], config: Optional[Dict[str, Any]]) -> str:
    et = str(e.get("eventType") or "")
    ev_cfg = get_event_type_config(config, et) or {}
    base = f"{ev_cfg.get('icon', '')} {event_type_label(config, et)}".strip()

    parts = []
    if e.get("type"):
        parts.append(str(e["type"]))
    if e.get("amount") not in (None, ""):
        parts.append(f"{e['amount']} ml")
    if e.get("consistency"):
        parts.append(str(e["consistency"]))

    label = base + (" - " + ", ".join(parts) if parts else "")
    if e.get(SUMMARY_MARKER):
        label += " (from daily summary)"
    return label


def render_field(field: Dict[str, Any], value: Any, *, key: str) -> Any:
    ftype = field.get("type")
    label = field.get("label", field["id"]) + (" *" if field.get("required") else "")

    if ftype == "select":
        options = field.get("options", [])
        values = [None] + [o.get("value") for o in options]
        labels = {o.get("value"): o.get("label", o.get("value")) for o in options}
        idx = values.index(value) if value in values else 0
        return st.selectbox(
            label,
            values,
            index=idx,
            format_func=lambda v: f"Select {field.get('label', '')}" if v is None else labels.get(v, v),
            key=key,
        )

    if ftype == "number":
        return st.number_input(
            label,
            min_value=float(field["min"]) if field.get("min") is not None else None,
            step=float(field.get("step", 1)),
            value=None,
            placeholder="e.g. 120",
            key=key,
        )

    return st.text_input(label, value=value or "", key=key)


# =============================================================================
# Tabs
# =============================================================================
def render_log_tab(config: Dict[str, Any]) -> None:
    ids = [ev["id"] for ev in config["events"]]
    etype = st.radio(
        "Event type",
        ids,
        format_func=lambda i: event_type_label(config, i),
        horizontal=True,
        key="event_type",
    )
    ev_cfg = get_event_type_config(config, etype)
    if not ev_cfg:
        st.warning("No event type selected.")
        return

    now = datetime.now()
    form_data = default_form_values(ev_cfg)

    with st.container(border=True):
        # Buttons can't live inside st.form, so datetime fields come first
        for f in ev_cfg["fields"]:
            if f.get("type") != "datetime":
                continue
            col_d, col_t = st.columns(2)
            with col_d:
                d = st.date_input(f.get("label", "Date"), value=now.date(), key=f"{etype}__{f['id']}__d")
            with col_t:
                t = time_picker("Time", default=now.time(), key=f"{etype}__{f['id']}")
            form_data[f["id"]] = compose_dt(d, t)

        with st.form(f"add_{etype}_form", clear_on_submit=True):
            for f in ev_cfg["fields"]:
                if f.get("type") == "datetime":
                    continue
                form_data[f["id"]] = render_field(f, form_data.get(f["id"]), key=f"{etype}__{f['id']}")

            submitted = st.form_submit_button(f"Add {event_type_label(config, etype).lower()}")
            if submitted:
                errors = validate_event_fields(ev_cfg, form_data)
                if errors:
                    for msg in errors.values():
                        st.error(msg)
                else:
                    add_event(build_event(ev_cfg, form_data, uuid.uuid4().hex[:8]))
                    flash_and_rerun(f"Added {event_type_label(config, etype).lower()}.")


def apply_json_edit(edited: str) -> None:
    """Replace all events with the edited JSON array; errors are shown inline."""
    try:
        parsed = json.loads(edited)
    except ValueError as e:
        st.error(f"Invalid JSON: {e}")
        return
    if not isinstance(parsed, list) or not all(isinstance(x, dict) for x in parsed):
        st.error("Expected a JSON array of event objects.")
        return
    save_events([{**x, "timestamp": coerce_timestamp(x.get("timestamp"))} for x in parsed])
    flash_and_rerun("Events replaced.")


def render_events_tab(config: Dict[str, Any]) -> None:
    events = get_events()

    if not events:
        st.info("No events yet.")
    else:
        st.caption(f"{len(events)} events. Events marked *from daily summary* were rebuilt from day totals.")
        for e in sorted(events, key=lambda x: coerce_timestamp(x.get("timestamp")), reverse=True)[:50]:
            ts = coerce_timestamp(e.get("timestamp"))
            c1, c2 = st.columns([5, 1])
            c1.markdown(f"**{format_event_dt(ts)}** · {pretty_event_label(e, config)}")
            if e.get("id") is not None:
                c2.button("Delete", key=f"del__{e['id']}", on_click=delete_event, args=(e["id"],))

        st.download_button(
            "Export CSV",
            data=events_to_csv(events),
            file_name="baby-tracker-export.csv",
            mime="text/csv",
        )

    st.divider()

    with st.expander("Edit as JSON"):
        raw = json.dumps(
            [{**e, "timestamp": dt_to_iso(coerce_timestamp(e.get("timestamp")))} for e in events],
            indent=2,
            ensure_ascii=False,
        )
        edited = st.text_area("Events", value=raw, height=300, key="json_editor")
        if st.button("Apply JSON"):
            apply_json_edit(edited)

    with st.expander("Local database"):
        st.caption(f"SQLite file: `{DB_PATH}`")
        store = EventStore(DB_PATH)
        c1, c2 = st.columns(2)
        if c1.button("Save all to database", use_container_width=True):
            store.sync_events(events)
            flash_and_rerun(f"Saved {len(events)} events to the database.")
        if c2.button("Load from database", use_container_width=True):
            save_events(store.list_events())
            flash_and_rerun("Loaded events from the database.")


def render_charts_tab(config: Dict[str, Any]) -> None:
    events = get_events()
    if not events:
        st.info("No events to chart yet.")
        return

    avg = calculate_statistics(events)["averageTimeBetweenFeeds"]
    st.metric("Average time between feeds", avg.formatted)

    # -------------------------------------------------------------------------
    # Today's timeline
    # -------------------------------------------------------------------------
    st.subheader("Today")
    df_today = events_to_frame(filter_today_events(events))
    if df_today.empty:
        st.info("Nothing logged today.")
    else:
        color = alt.Color(
            "eventType:N",
            title="Event",
            scale=alt.Scale(domain=list(EVENT_COLORS), range=list(EVENT_COLORS.values())),
        )
        ticks = (
            alt.Chart(df_today)
            .mark_tick(thickness=3, size=30)
            .encode(
                x=alt.X("hour:Q", title="Hour of day", scale=alt.Scale(domain=[0, 24])),
                y=alt.Y("eventType:N", title=None),
                color=color,
                tooltip=[
                    alt.Tooltip("time:T", title="Time", format="%H:%M"),
                    alt.Tooltip("eventType:N", title="Event"),
                    alt.Tooltip("amount:Q", title="Amount (ml)"),
                ],
            )
        )
        st.altair_chart(ticks.properties(height=160), use_container_width=True)

        milk = df_today.dropna(subset=["amount"])
        milk = milk[milk["eventType"] == "feeding"].sort_values("hour")
        if not milk.empty:
            points = [{"x": float(x), "y": float(y)} for x, y in zip(milk["hour"], milk["amount"])]
            pts = (
                alt.Chart(milk)
                .mark_line(point=True)
                .encode(
                    x=alt.X("hour:Q", title="Hour of day"),
                    y=alt.Y("amount:Q", title="Milk (ml)"),
                    tooltip=[alt.Tooltip("time:T", format="%H:%M"), "amount:Q"],
                )
            )
            layers = pts
            coefficients = calculate_quadratic_regression(points)
            if coefficients:
                trend = pd.DataFrame(
                    generate_trend_line_points(milk["hour"].min(), milk["hour"].max(), coefficients, 50)
                )
                layers = pts + (
                    alt.Chart(trend).mark_line(strokeDash=[4, 4], color="gray").encode(x="x:Q", y="y:Q")
                )
            st.altair_chart(layers.properties(height=260), use_container_width=True)

    st.divider()

    # -------------------------------------------------------------------------
    # Last 7 days
    # -------------------------------------------------------------------------
    st.subheader("Last 7 days")
    days = group_events_by_day(events)
    df_week = pd.DataFrame(
        [{"label": d["label"], "dateKey": d["dateKey"], "feeds": d["feeds"], "pees": d["pees"], "poops": d["poops"]} for d in days]
    )
    df_long = df_week.melt(id_vars=["label", "dateKey"], var_name="kind", value_name="count")
    bars = (
        alt.Chart(df_long)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title=None, sort=list(df_week["label"])),
            xOffset="kind:N",
            y=alt.Y("count:Q", title="Count"),
            color=alt.Color("kind:N", title=None),
            tooltip=["dateKey:N", "kind:N", "count:Q"],
        )
    )
    st.altair_chart(bars.properties(height=280), use_container_width=True)


def render_share_tab() -> None:
    events = get_events()

    st.caption(
        "The link keeps today's and yesterday's events (times rounded to 15 minutes) "
        "and only daily totals for older days. Set a password to share everything, encrypted."
    )

    pw = st.text_input("Password (optional)", type="password", key="share_password_input")
    if st.button("Apply password"):
        st.session_state["share_password"] = pw
        save_events(get_events())
        flash_and_rerun("Link is now encrypted." if pw else "Link is no longer encrypted.")

    token = st.session_state.get("_token")
    if token is None:
        token = update_url_state(_write_token, events, st.session_state.get("share_password") or None)
        st.session_state["_token"] = token
    st.code(f"?{URL_STATE_PARAM}={token}", language=None)

    length = len(token) + len(URL_STATE_PARAM) + 2
    over = [lim for lim in URL_LENGTH_LIMITS if length > lim]
    if over:
        st.warning(f"Link is {length:,} characters, longer than {over[-1]:,}. Some apps may cut it off.")
    else:
        st.caption(f"Link length: {length:,} characters.")


# =============================================================================
# App entrypoint
# =============================================================================
def main() -> None:
    st.set_page_config(page_title="Baby Event Tracker", page_icon="🍼", layout="centered")
    st.title("🍼 Baby Event Tracker")

    try:
        config = load_config()
    except ConfigError as e:
        st.error(str(e))
        return

    if "share_password" not in st.session_state:
        st.session_state["share_password"] = ""

    if not hydrate_events():
        pw = st.text_input("Password", type="password", key="unlock_password")
        if st.button("Unlock"):
            st.session_state["share_password"] = pw
            st.rerun()
        return

    # One-shot toast across reruns
    if "_flash" in st.session_state:
        msg, icon = st.session_state.pop("_flash")
        st.toast(msg, icon=icon)

    tabs = st.tabs(["Log event", "Events", "Charts", "Share"])

    with tabs[0]:
        render_log_tab(config)

    with tabs[1]:
        render_events_tab(config)

    with tabs[2]:
        render_charts_tab(config)

    with tabs[3]:
        render_share_tab()


if __name__ == "__main__":
    main()
