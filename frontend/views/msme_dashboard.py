from typing import Optional

import streamlit as st
from config import API_URL
from utils.api import APIClient
from utils.display_figure import build_investors_dataframe
from utils.formatters import format_currency, format_percent, format_date


def render():
    st.title("My Deal")

    api = APIClient(API_URL)
    resp = api.get_msme_dashboard()
    if resp["status"] != 200:
        st.error(api.error_message(resp, "Unable to load dashboard"))
        return
    data = resp["data"]

    if not data.get("has_deal"):
        st.info("You have not listed a deal yet. Describe your facility to start raising.")
        _render_deal_form(api, None)
        return

    # --- Summary cards
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Facility", format_currency(data.get("facility_size")))
    col2.metric("Raised", format_currency(data.get("total_raised")))
    col3.metric("Remaining", format_currency(data.get("remaining_capacity")))
    col4.metric("Investors", data.get("investor_count", 0))
    st.progress(
        min(max(data.get("utilization") or 0.0, 0.0), 1.0),
        text=f"{format_percent(data.get('utilization'))} utilized · status: {data.get('status')}",
    )

    next_cashflow = data.get("next_cashflow")
    if next_cashflow:
        st.info(
            f"Next repayment: {format_currency(next_cashflow['amount'])} due "
            f"{format_date(next_cashflow['due_date'])}"
        )

    tab_investors, tab_edit = st.tabs(["Investors", "Edit deal"])
    with tab_investors:
        _render_investors(api, data["deal_id"])
    with tab_edit:
        deal_resp = api.get_deal(data["deal_id"])
        if deal_resp["status"] == 200:
            _render_deal_form(api, deal_resp["data"])
        else:
            st.error(api.error_message(deal_resp, "Unable to load deal"))


def _render_investors(api: APIClient, deal_id: str):
    resp = api.get_deal_investors(deal_id)
    if resp["status"] != 200:
        st.error(api.error_message(resp, "Unable to load investors"))
        return

    roster = resp["data"] or []
    if not roster:
        st.caption("No investors yet.")
        return

    st.dataframe(build_investors_dataframe(roster), use_container_width=True, hide_index=True)

    st.subheader("Manage investments")
    for row in roster:
        if row["status"] != "active":
            continue
        cols = st.columns([3, 2, 1, 1])
        cols[0].write(row.get("name") or row["investor_id"])
        cols[1].write(format_currency(row["amount"]))
        if cols[2].button("Refund", key=f"refund_{row['investment_id']}"):
            _owner_action(api.refund_investment, row["investment_id"], "Investment refunded")
        if cols[3].button("Repaid", key=f"complete_{row['investment_id']}"):
            _owner_action(api.complete_investment, row["investment_id"], "Investment marked as repaid")


def _owner_action(action, investment_id: str, success_message: str):
    result = action(investment_id)
    if result["status"] == 200:
        st.success(success_message)
        st.rerun()
    else:
        st.error(APIClient.error_message(result))


def _render_deal_form(api: APIClient, deal: Optional[dict]):
    """Create form when deal is None, otherwise edit form prefilled with the deal."""
    deal = deal or {}
    is_new = not deal.get("id")

    with st.form("deal_form"):
        name = st.text_input("Deal name", value=deal.get("name", ""))
        col1, col2 = st.columns(2)
        sector = col1.text_input("Sector", value=deal.get("sector", ""))
        location = col2.text_input("Location", value=deal.get("location") or "")
        col3, col4, col5 = st.columns(3)
        facility_size = col3.number_input(
            "Facility size ($)",
            min_value=0.0,
            step=1000.0,
            value=float(deal.get("facility_size") or 10000.0),
            help="Cannot go below what investors have already allocated",
        )
        target_yield_pct = col4.number_input(
            "Target yield (%)",
            min_value=0.0,
            max_value=100.0,
            step=0.5,
            value=float(deal.get("target_yield") or 0.12) * 100,
        )
        tenor_months = col5.number_input(
            "Tenor (months)", min_value=1, max_value=360, value=int(deal.get("tenor_months") or 12)
        )
        risk_label = st.text_input("Risk label", value=deal.get("risk_label") or "")
        description = st.text_area("Description", value=deal.get("description") or "")
        col6, col7 = st.columns(2)
        contact_name = col6.text_input("Contact name", value=deal.get("contact_name") or "")
        contact_email = col7.text_input("Contact email", value=deal.get("contact_email") or "")
        cash_balance = st.number_input(
            "Cash balance ($)", min_value=0.0, step=1000.0, value=float(deal.get("cash_balance") or 0.0)
        )
        submitted = st.form_submit_button("Create deal" if is_new else "Save changes", use_container_width=True)

    if not submitted:
        return

    if not name or not sector:
        st.error("Name and sector are required")
        return
    if facility_size <= 0:
        st.error("Facility size must be positive")
        return

    payload = {
        "name": name,
        "sector": sector,
        "location": location or None,
        "facility_size": facility_size,
        "target_yield": round(target_yield_pct / 100, 4),
        "tenor_months": int(tenor_months),
        "risk_label": risk_label or None,
        "description": description or None,
        "contact_name": contact_name or None,
        "contact_email": contact_email or None,
        "cash_balance": cash_balance,
    }

    if is_new:
        result = api.create_deal(payload)
    else:
        result = api.update_deal(deal["id"], {k: v for k, v in payload.items() if v is not None})

    if result["status"] in (200, 201):
        st.success("Deal created" if is_new else "Deal updated")
        st.rerun()
    else:
        st.error(api.error_message(result, "Unable to save deal"))
