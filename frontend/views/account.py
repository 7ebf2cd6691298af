import streamlit as st
from utils.api import APIClient
from utils.formatters import format_currency
from utils.validators import sanitize_amount_input, validate_allocation_amount
from config import API_URL


def _log_out():
    st.session_state.is_authenticated = False
    st.session_state.token = None
    st.session_state.user = None
    st.session_state.account_type = None
    st.rerun()


def render():
    st.title("My Account")

    api = APIClient(API_URL)

    user_info = api.get_me()
    if user_info["status"] != 200:
        st.error("Unable to retrieve user information")
        return
    user_data = user_info["data"]
    st.session_state.user = user_data

    is_investor = user_data.get("account_type") == "investor"
    tab_names = ["Profile", "Security"] + (["Funds"] if is_investor else [])
    tabs = st.tabs(tab_names)

    with tabs[0]:
        st.subheader("Profile Information")
        col1, col2 = st.columns(2)
        with col1:
            st.write(f"**Email:** {user_data.get('email')}")
            if user_data.get("pending_email"):
                st.caption(f"Pending change to {user_data['pending_email']}, check that inbox for a token.")
        with col2:
            st.write(f"**Account type:** {user_data.get('account_type', '').upper()}")

        with st.form("profile_form"):
            name = st.text_input("Name", value=user_data.get("name", ""))
            email = st.text_input("Email", value=user_data.get("email", ""))
            about = st.text_area("About", value=user_data.get("about") or "")
            avatar_url = st.text_input("Avatar URL", value=user_data.get("avatar_url") or "")
            if st.form_submit_button("Save profile", use_container_width=True):
                response = api.update_profile(
                    name=name or None,
                    email=email if email != user_data.get("email") else None,
                    about=about,
                    avatar_url=avatar_url,
                )
                if response["status"] == 200:
                    st.success("Profile saved")
                    st.rerun()
                else:
                    st.error(api.error_message(response))

        with st.form("verify_email_form"):
            token = st.text_input("Email verification token")
            if st.form_submit_button("Verify email") and token:
                response = api.verify_email(token)
                if response["status"] == 200:
                    st.success(f"Email changed to {response['data']['email']}")
                else:
                    st.error(api.error_message(response))

        st.divider()

        if st.button("Log out", use_container_width=True):
            _log_out()

    with tabs[1]:
        st.subheader("Change Password")

        with st.form("change_password_form"):
            current_password = st.text_input(
                "Current password",
                type="password",
                help="Enter your current password for verification"
            )
            new_password = st.text_input(
                "New password",
                type="password",
                help="Minimum 8 characters"
            )
            new_password_confirm = st.text_input(
                "Confirm new password",
                type="password",
                help="Must match the new password"
            )
            submitted = st.form_submit_button(
                "Change password",
                use_container_width=True
            )
            if submitted:
                # Client-side validation
                if not current_password:
                    st.error("Please enter your current password")
                elif not new_password:
                    st.error("Please enter a new password")
                elif len(new_password) < 8:
                    st.error("The new password must be at least 8 characters long")
                elif new_password != new_password_confirm:
                    st.error("The new passwords do not match")
                elif current_password == new_password:
                    st.error("The new password must be different from the old one")
                else:
                    response = api.change_password(
                        current_password=current_password,
                        new_password=new_password,
                        new_password_confirm=new_password_confirm,
                    )
                    if response["status"] == 200:
                        st.success("Password changed successfully!")
                        st.info("Please log in again with your new password.")
                        _log_out()
                    else:
                        st.error(f"Error: {api.error_message(response, 'Unknown error')}")

        st.divider()
        st.subheader("Delete account")
        confirm = st.checkbox("I understand this cannot be undone")
        if st.button("Delete my account", disabled=not confirm, use_container_width=True):
            response = api.delete_account()
            if response["status"] == 204:
                _log_out()
            else:
                st.error(api.error_message(response))

    if is_investor:
        with tabs[2]:
            st.subheader("Add funds")
            st.metric("Available balance", format_currency(user_data.get("balance")))
            with st.form("top_up_form"):
                raw = st.text_input("Amount", placeholder="e.g., 5000")
                if st.form_submit_button("Top up", use_container_width=True):
                    amount, error = validate_allocation_amount(sanitize_amount_input(raw))
                    if error:
                        st.error(error.replace("to allocate", "to add"))
                    else:
                        response = api.top_up(amount)
                        if response["status"] == 200:
                            st.session_state.user = response["data"]
                            st.success(f"New balance: {format_currency(response['data']['balance'])}")
                        else:
                            st.error(api.error_message(response))
