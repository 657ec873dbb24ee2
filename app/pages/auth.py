"""
app/pages/auth.py

Sign in / sign up:
- email + password login
- sign-up form (name, email, password, role)
- one-click demo accounts
"""

from __future__ import annotations

import logging

import streamlit as st

from app.state import current_session, go, store
from app.ui import card_close, card_open
from pipelines.errors import MediChainError
from storage.accounts import login, signup
from storage.models import Session
from storage.repository import DEMO_PASSWORD, DEMO_USERS

logger = logging.getLogger(__name__)

_HOME = {"patient": "patient", "doctor": "doctor", "admin": "admin"}


def _enter(session: Session) -> None:
    st.session_state["session"] = session
    go(_HOME.get(session.role, "checker"))


def _login_tab() -> None:
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)
    if submitted:
        session = login(store(), email, password)
        if session is None:
            st.error("Invalid email or password.")
        else:
            _enter(session)


def _signup_tab() -> None:
    with st.form("signup"):
        name = st.text_input("Full name")
        email = st.text_input("Email", key="signup_email")
        password = st.text_input("Password", type="password", key="signup_password")
        role = st.selectbox("Role", ["patient", "doctor", "admin"])
        submitted = st.form_submit_button("Create account", type="primary", use_container_width=True)
    if submitted:
        try:
            signup(store(), name, email, password, role)
        except MediChainError as e:
            st.error(e.user_message)
            return
        st.success("Account created. Signing you in...")
        _enter(login(store(), email, password))


def _demo_accounts() -> None:
    card_open("Demo accounts", f"Password for all of them: {DEMO_PASSWORD}")
    cols = st.columns(len(DEMO_USERS))
    for col, (name, email, role) in zip(cols, DEMO_USERS):
        with col:
            if st.button(f"{role.capitalize()} demo", key=f"demo-{role}", use_container_width=True):
                session = login(store(), email, DEMO_PASSWORD)
                if session is None:
                    st.error("Demo account is not available in this store.")
                else:
                    _enter(session)
    card_close()


def render() -> None:
    if current_session().is_authenticated:
        st.info("You are already signed in.")
        return

    st.title("Welcome to MediChain")
    st.caption("AI-assisted symptom checking. Not a substitute for professional medical advice.")

    tab_login, tab_signup = st.tabs(["Sign in", "Sign up"])
    with tab_login:
        _login_tab()
    with tab_signup:
        _signup_tab()

    _demo_accounts()
