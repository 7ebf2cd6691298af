import uuid

import streamlit as st
from config import API_URL, DEALS_PAGE_SIZE
from utils.api import APIClient
from utils.display_figure import build_cashflow_dataframe, create_financials_chart
from utils.formatters import (
    deal_display_name,
    format_currency,
    format_date,
    format_months,
    format_percent,
    format_ratio,
    get_health_color,
)
from utils.styles import deal_card_html
from utils.validators import sanitize_amount_input, validate_allocation_amount

SECTORS = ["All", "Agriculture", "Manufacturing", "Retail", "Services", "Technology", "Logistics"]
STATUSES = ["All", "open", "funded", "closed"]


def _init_state():
    """Initialize session state variables."""
    if "selected_deal_id" not in st.session_state:
        st.session_state.selected_deal_id = None
    if "deals_page" not in st.session_state:
        st.session_state.deals_page = 1


def render():
    _init_state()
    api = APIClient(API_URL)

    if st.session_state.selected_deal_id:
        _render_detail(api, st.session_state.selected_deal_id)
    else:
        _render_list(api)


# --- Marketplace list

def _render_list(api: APIClient):
    st.title("Deals")

    col1, col2 = st.columns(2)
    sector = col1.selectbox("Sector", SECTORS)
    status = col2.selectbox("Status", STATUSES, index=1)

    page = st.session_state.deals_page
    resp = api.list_deals(
        page=page,
        page_size=DEALS_PAGE_SIZE,
        sector=None if sector == "All" else sector,
        status=None if status == "All" else status,
    )
    if resp["status"] != 200:
        st.error(api.error_message(resp, "Unable to load deals"))
        return

    data = resp["data"]
    deals = data.get("deals") or []
    if not deals:
        st.info("No deals match these filters.")
        return

    st.caption(f"{data['total']} deals")
    cols = st.columns(3)
    for i, deal in enumerate(deals):
        with cols[i % 3]:
            st.markdown(deal_card_html(deal), unsafe_allow_html=True)
            if st.button("View details", key=f"deal_{deal['id']}", use_container_width=True):
                st.session_state.selected_deal_id = deal["id"]
                st.rerun()

    prev_col, _, next_col = st.columns([1, 4, 1])
    if page > 1 and prev_col.button("Previous"):
        st.session_state.deals_page = page - 1
        st.rerun()
    if data.get("has_more") and next_col.button("Next"):
        st.session_state.deals_page = page + 1
        st.rerun()


# --- Deal detail

def _render_detail(api: APIClient, deal_id: str):
    if st.button("← Back to deals"):
        st.session_state.selected_deal_id = None
        st.session_state.pop("allocation_key", None)
        st.rerun()

    resp = api.get_deal(deal_id)
    if resp["status"] != 200:
        st.error(api.error_message(resp, "Deal not found"))
        return
    deal = resp["data"]

    st.title(deal_display_name(deal))
    st.caption(f"{deal.get('sector')} · {deal.get('location') or '-'} · Risk {deal.get('risk_label') or '-'}")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Target yield", format_percent(deal.get("target_yield")))
    col2.metric("Facility", format_currency(deal.get("facility_size")))
    col3.metric("Remaining", format_currency(deal.get("remaining_capacity")))
    col4.metric("Tenor", f"{deal['tenor_months']} months" if deal.get("tenor_months") else "-")
    st.progress(min(max(deal.get("utilization") or 0.0, 0.0), 1.0), text=f"{format_percent(deal.get('utilization'))} utilized")

    if deal.get("description"):
        st.write(deal["description"])

    next_cashflow = deal.get("next_cashflow")
    if next_cashflow:
        st.info(
            f"Next repayment: {format_currency(next_cashflow['amount'])} due "
            f"{format_date(next_cashflow['due_date'])} ({next_cashflow['status']})"
        )

    tab_metrics, tab_schedule, tab_contact = st.tabs(["Financial health", "Repayment schedule", "Contact"])
    with tab_metrics:
        _render_metrics(deal.get("financial_metrics") or {})
        st.plotly_chart(
            create_financials_chart(deal.get("monthly_financials") or []),
            use_container_width=True,
            key="deal_financials_chart",
        )
    with tab_schedule:
        df = build_cashflow_dataframe(deal.get("cashflows") or [])
        if df.empty:
            st.caption("No repayment schedule published.")
        else:
            st.dataframe(df, use_container_width=True, hide_index=True)
    with tab_contact:
        st.write(f"**Contact:** {deal.get('contact_name') or '-'}")
        st.write(f"**Email:** {deal.get('contact_email') or '-'}")
        st.write(f"**Phone:** {deal.get('contact_phone') or '-'}")
        st.write(f"**Website:** {deal.get('website') or '-'}")
        st.write(f"**Registered address:** {deal.get('registered_address') or '-'}")
        owner = api.get_profile(deal["owner_id"])
        if owner["status"] == 200 and (owner["data"] or {}).get("about"):
            st.caption(f"About {owner['data']['name']}")
            st.write(owner["data"]["about"])

    if st.session_state.get("account_type") == "investor":
        st.divider()
        _render_allocation_form(api, deal)


def _render_metrics(metrics: dict):
    rows = [
        ("Profit margin", format_percent(metrics.get("profit_margin")), metrics.get("profitability_health")),
        ("Runway", format_months(metrics.get("runway_months")), None),
        ("Survival probability", format_percent(metrics.get("survival_probability")), None),
        ("LTV / CAC", format_ratio(metrics.get("ltv_cac_ratio")), metrics.get("marketing_efficiency")),
        ("Customer growth", format_percent(metrics.get("customer_growth_rate")), metrics.get("growth_status")),
        ("Average churn", format_percent(metrics.get("avg_churn_rate")), metrics.get("retention_health")),
    ]
    cols = st.columns(3)
    for i, (label, value, health) in enumerate(rows):
        with cols[i % 3]:
            st.metric(label, value)
            if health:
                st.markdown(
                    f"<span style='color:{get_health_color(health)}'>{health}</span>",
                    unsafe_allow_html=True,
                )


def _render_allocation_form(api: APIClient, deal: dict):
    st.subheader("Allocate funds")

    if deal.get("status") != "open":
        st.warning("This deal is not open for allocation.")
        return

    user = st.session_state.get("user") or {}
    st.caption(
        f"Available balance: {format_currency(user.get('balance', 0))} · "
        f"Remaining capacity: {format_currency(deal.get('remaining_capacity'))}"
    )

    # Same key for every submit of one attempt
    if "allocation_key" not in st.session_state:
        st.session_state.allocation_key = str(uuid.uuid4())

    with st.form("allocate_form"):
        raw = st.text_input("Amount", placeholder="e.g., 25000")
        submitted = st.form_submit_button("Allocate", use_container_width=True)

    if submitted:
        cleaned = sanitize_amount_input(raw)
        amount, error = validate_allocation_amount(cleaned, deal.get("remaining_capacity"))
        if error:
            st.error(error)
            return

        result = api.allocate(deal["id"], amount, st.session_state.allocation_key)
        if result["status"] in (200, 201):
            st.session_state.user = result["data"]["user"]
            st.session_state.pop("allocation_key", None)
            st.success(
                f"Allocated {format_currency(amount)}. "
                f"New balance: {format_currency(result['data']['user']['balance'])}"
            )
        else:
            st.session_state.pop("allocation_key", None)
            st.error(api.error_message(result, "Allocation failed"))
