import streamlit as st
from streamlit_option_menu import option_menu
from views import login, investor_dashboard, deals, history, msme_dashboard, account
from utils.styles import inject_styles
from config import APP_NAME

# (page, icon) per account type
NAVIGATION = {
    "investor": [
        ("Dashboard", "speedometer2"),
        ("Deals", "shop"),
        ("History", "clock-history"),
        ("Account", "gear"),
    ],
    "msme": [
        ("My Deal", "briefcase"),
        ("Deals", "shop"),
        ("Account", "gear"),
    ],
}

PAGES = {
    "Dashboard": investor_dashboard.render,
    "Deals": deals.render,
    "History": history.render,
    "My Deal": msme_dashboard.render,
    "Account": account.render,
}


def init_session():
    defaults = {
        "is_authenticated": False,
        "user_id": None,
        "user": None,
        "account_type": None,
        "token": None,
        "selected_deal_id": None,
        "nav_page": None,
        "nav_override": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def main():
    st.set_page_config(page_title=APP_NAME, layout="wide")
    inject_styles()
    init_session()

    if not st.session_state["is_authenticated"]:
        login.render()
        st.stop()

    entries = NAVIGATION.get(st.session_state.get("account_type"), NAVIGATION["investor"])
    nav_options = [name for name, _ in entries]

    # --- Programmatic navigation (e.g. "View deal" on the dashboard)
    nav_override = st.session_state.get("nav_override")
    if nav_override:
        st.session_state["nav_page"] = nav_override
        st.session_state["nav_override"] = None
        st.session_state["nav_key"] = st.session_state.get("nav_key", 0) + 1
        st.rerun()

    # --- Sidebar navigation
    with st.sidebar:
        current_page = st.session_state.get("nav_page") or nav_options[0]
        try:
            default_index = nav_options.index(current_page)
        except ValueError:
            default_index = 0
            current_page = nav_options[0]

        page_selected = option_menu(
            menu_title=APP_NAME,
            options=nav_options,
            icons=[icon for _, icon in entries],
            default_index=default_index,
            key=f"main_nav_{st.session_state.get('nav_key', 0)}",
        )

        if page_selected != current_page:
            st.session_state["nav_page"] = page_selected
            if page_selected != "Deals":
                st.session_state["selected_deal_id"] = None
            st.rerun()

        user = st.session_state.get("user") or {}
        st.caption(f"Signed in as {user.get('name') or user.get('email', '')}")

    PAGES[current_page]()


if __name__ == "__main__":
    main()
