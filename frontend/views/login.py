import streamlit as st
from utils.api import APIClient
from config import API_URL

api = APIClient(API_URL)

ACCOUNT_TYPES = {"Investor": "investor", "MSME (borrower)": "msme"}


def _sign_in(data: dict):
    """Store the token and user from a login/register response."""
    st.session_state.token = data["access_token"]
    st.session_state.user = data.get("user")
    st.session_state.user_id = (data.get("user") or {}).get("id")
    st.session_state.account_type = (data.get("user") or {}).get("account_type")
    st.session_state["is_authenticated"] = True


def render():
    st.title("SkaleBitz")
    st.caption("Working capital for growing businesses, funded by investors.")

    tab1, tab2, tab3 = st.tabs(["Login", "Register", "Forgot password"])

    with tab1:
        st.subheader("Login")
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login")

            if submitted:
                if email and password:
                    result = api.login(email, password)
                    if result["status"] == 200:
                        _sign_in(result["data"])
                        st.success("Logged in successfully!")
                        st.rerun()
                    else:
                        st.error(f"Login failed: {api.error_message(result, 'Login failed')}")
                else:
                    st.warning("Please enter email and password")

    with tab2:
        st.subheader("Register")
        with st.form("register_form"):
            name = st.text_input("Name")
            email = st.text_input("Email", key="reg_email")
            account_label = st.radio("I want to", list(ACCOUNT_TYPES), horizontal=True)
            new_password = st.text_input("Password", type="password", key="reg_password")
            confirm_password = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Create account")

            if submitted:
                if not all([name, email, new_password, confirm_password]):
                    st.warning("Please fill all fields")
                elif len(new_password) < 8:
                    st.error("Password must be at least 8 characters long")
                elif new_password != confirm_password:
                    st.error("Passwords do not match")
                else:
                    result = api.register(name, email, new_password, ACCOUNT_TYPES[account_label])
                    if result["status"] in [200, 201]:
                        _sign_in(result["data"])
                        st.success("Registration successful!")
                        st.rerun()
                    else:
                        st.error(f"Registration failed: {api.error_message(result, 'Registration failed')}")

    with tab3:
        st.subheader("Reset your password")
        with st.form("reset_request_form"):
            email = st.text_input("Email", key="reset_email")
            if st.form_submit_button("Send reset link"):
                result = api.request_password_reset(email)
                if result["status"] == 200:
                    st.info(result["data"]["message"])
                else:
                    st.error(api.error_message(result))

        with st.form("reset_confirm_form"):
            token = st.text_input("Reset token")
            new_password = st.text_input("New password", type="password", key="reset_password")
            if st.form_submit_button("Set new password"):
                if not token or len(new_password) < 8:
                    st.warning("Enter the token and a password of at least 8 characters")
                else:
                    result = api.confirm_password_reset(token, new_password)
                    if result["status"] == 200:
                        st.success("Password updated. You can log in now.")
                    else:
                        st.error(api.error_message(result))
