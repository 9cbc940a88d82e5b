"""
UI layer
Purpose: Streamlit-only glue. Renders the transcript, the composer and the
session panel, and delegates all work to the controller. Keeps UI concerns
(layout/state widgets) separate from business logic so logic can be unit
tested without Streamlit (see counsel.presentation).

Persistence follows COUNSEL_PERSISTENCE:
- file:   the controller keeps transcripts on the server.
- client: the controller is stateless; transcripts live in this browser
          session's state under one key, with delete and JSON export.
"""

import logging
from datetime import datetime

import streamlit as st

from counsel.config import AppConfig, PersistenceMode, build_controller, configure_logging
from counsel.errors import CounselError
from counsel.models import Role, Turn
from counsel.persistence.local_store import KeyValueTranscriptStore, MappingStorage
from counsel.presentation import ChatPanel, format_started_at

logger = logging.getLogger("counsel.app")

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="Counsel Chat",
    page_icon="🌿",
    layout="centered",
    initial_sidebar_state="collapsed",
)

CONFIG = AppConfig.from_env()
configure_logging(CONFIG.log_level)
LOCAL_MODE = CONFIG.persistence is PersistenceMode.CLIENT

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("panel", ChatPanel())
st_session.setdefault("composer", "")


# ---------------------------
# Helpers
# ---------------------------
def get_panel() -> ChatPanel:
    return st_session.panel


def get_controller():
    """Controller built by the sidebar once a key is known, else None."""
    return st_session.get("controller")


def local_store() -> KeyValueTranscriptStore:
    """Browser-local transcripts: this tab's session state is the backend."""
    return KeyValueTranscriptStore(MappingStorage(st_session))


def send_message(message: str, session_id, history):
    controller = get_controller()
    return controller.chat(
        message,
        session_id=session_id,
        history=history if LOCAL_MODE else None,
    )


def handle_submit():
    """Form callback: runs before widgets render, so the composer can be reset."""
    panel = get_panel()
    text = st_session.composer
    try:
        reply = panel.submit(text, send_message)
    except CounselError as e:
        st_session.composer = panel.draft
        st.toast(f"Could not send message: {e.public_message}", icon="⚠️")
        return
    except Exception:
        logger.exception("Chat flow failed")
        st_session.composer = panel.draft
        st.toast("Failed to send message. Please try again.", icon="⚠️")
        return

    st_session.composer = ""
    if reply is not None and LOCAL_MODE:
        session = panel.to_session()
        if session is not None:
            local_store().save(session)


def list_summaries():
    if LOCAL_MODE:
        return local_store().list_sessions()
    controller = get_controller()
    return controller.list_sessions() if controller else []


def open_session(session_id: str):
    panel = get_panel()
    if session_id == panel.session_id:
        return
    try:
        if LOCAL_MODE:
            session = local_store().load(session_id)
        else:
            session = get_controller().get_session(session_id)
    except CounselError as e:
        st.toast(f"Could not load session: {e.public_message}", icon="⚠️")
        return
    if session is not None:
        panel.select_session(session)
        st_session.composer = ""


def delete_session(session_id: str):
    local_store().delete(session_id)
    if get_panel().session_id == session_id:
        get_panel().new_session()


def start_new_session():
    get_panel().new_session()
    st_session.composer = ""


def render_turn(turn: Turn) -> None:
    """Human turns as plain text; assistant turns with per-segment technique tags."""
    is_human = turn.role is Role.HUMAN
    with st.chat_message("user" if is_human else "assistant", avatar=None if is_human else "🌿"):
        st.markdown(turn.content)
        if turn.segments:
            with st.expander("Techniques used", expanded=False):
                for seg in turn.segments:
                    st.markdown(f"> {seg.text}")
                    if seg.strategies:
                        st.caption(" · ".join(s.label for s in seg.strategies))


# ---------------------------
# SIDEBAR: credentials & sessions
# ---------------------------
with st.sidebar:
    st.markdown("# Sessions")

    if get_controller() is None:
        api_key = CONFIG.api_key
        if not api_key:
            api_key = st.text_input(
                "Enter your OpenAI API key",
                type="password",
                help="The key stays in this browser session only.",
            )
        if not api_key:
            st.warning("Please enter your API key in the sidebar to continue.")
            st.stop()
        try:
            st_session.controller = build_controller(CONFIG, api_key=api_key)
        except Exception as e:
            st.error(f"OpenAI client init failed: {e}")
            st.stop()

    st.button("New session", use_container_width=True, on_click=start_new_session)
    st.divider()

    summaries = list_summaries()
    current_id = get_panel().session_id
    local_now = datetime.now().astimezone()
    if not summaries:
        st.caption("No previous sessions")
    for summary in summaries:
        label = f"{format_started_at(summary.started_at, now=local_now)} · {summary.message_count} messages"
        if summary.session_id == current_id:
            label += " (current)"
        cols = st.columns([4, 1]) if LOCAL_MODE else [st.container()]
        with cols[0]:
            st.button(
                label,
                key=f"open-{summary.session_id}",
                use_container_width=True,
                on_click=open_session,
                args=(summary.session_id,),
            )
        if LOCAL_MODE:
            with cols[1]:
                st.button(
                    "🗑",
                    key=f"delete-{summary.session_id}",
                    help="Delete this session",
                    on_click=delete_session,
                    args=(summary.session_id,),
                )

    if LOCAL_MODE and summaries:
        st.divider()
        st.download_button(
            "Export all sessions",
            data=local_store().export_all(),
            file_name="counsel-sessions.json",
            mime="application/json",
            use_container_width=True,
        )
        if current_id:
            exported = local_store().export_session(current_id)
            if exported:
                st.download_button(
                    "Export current session",
                    data=exported,
                    file_name=f"session-{current_id}.json",
                    mime="application/json",
                    use_container_width=True,
                )


# ---------------------------
# MAIN: transcript & composer
# ---------------------------
st.markdown("## Counsel Chat")

panel = get_panel()
if not panel.messages:
    st.markdown(
        """
        **Welcome!** Please share what is on your mind.
        Responses come from an AI assistant offering emotional support,
        not a licensed therapist.
        """
    )
for turn in panel.messages:
    render_turn(turn)

with st.form("composer-form", clear_on_submit=False, border=False):
    st.text_area(
        "Message",
        key="composer",
        placeholder="Share what's on your mind...",
        height=90,
        label_visibility="collapsed",
    )
    st.form_submit_button("Send", on_click=handle_submit, use_container_width=True)
