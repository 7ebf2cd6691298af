import streamlit as st
from config import API_URL
from utils.api import APIClient
from utils.display_figure import create_sector_allocation_chart
from utils.formatters import format_currency, format_percent, format_date


ACTIVITY_LABELS = {
    "allocation": "Allocated to",
    "refund": "Refunded from",
    "repayment": "Repaid by",
}


def render():
    st.title("Dashboard")

    api = APIClient(API_URL)
    resp = api.get_investor_dashboard()
    if resp["status"] != 200:
        st.error(api.error_message(resp, "Unable to load dashboard"))
        return
    data = resp["data"]

    # --- Summary cards
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Available balance", format_currency(data.get("balance")))
    col2.metric("Total invested", format_currency(data.get("total_invested")))
    col3.metric("Average yield", format_percent(data.get("average_yield")))
    col4.metric("Active deals", data.get("active_deals", 0))

    st.divider()

    left, right = st.columns([3, 2])
    with left:
        st.subheader("Allocation by sector")
        st.plotly_chart(
            create_sector_allocation_chart(data.get("allocation") or []),
            use_container_width=True,
            key="sector_allocation_chart",
        )

    with right:
        st.subheader("Recent activity")
        activity = data.get("activity") or []
        if not activity:
            st.info("No activity yet. Browse deals to make your first allocation.")
        for item in activity:
            label = ACTIVITY_LABELS.get(item.get("type"), item.get("type", "").capitalize())
            st.markdown(
                f"**{label}** {item.get('deal_name') or 'a deal'} · "
                f"{format_currency(item.get('amount'))} · {format_date(item.get('timestamp'))}"
            )

    st.divider()
    st.subheader("Recent deals")
    recent = data.get("recent_deals") or []
    if not recent:
        st.caption("Nothing here yet.")
    for deal in recent:
        cols = st.columns([3, 2, 2, 2])
        cols[0].write(deal.get("deal_name") or deal.get("deal_id"))
        cols[1].write(deal.get("sector") or "-")
        cols[2].write(format_currency(deal.get("amount")))
        cols[3].write(format_percent(deal.get("target_yield")))

    # --- Holdings per deal
    holdings_resp = api.get_investor_deals()
    if holdings_resp["status"] == 200 and holdings_resp["data"]:
        st.divider()
        st.subheader("Your deals")
        for holding in holdings_resp["data"]:
            with st.container(border=True):
                cols = st.columns([3, 2, 2, 2])
                cols[0].markdown(f"**{holding['name']}**  \n{holding['sector']}")
                cols[1].metric("Invested", format_currency(holding["invested_amount"]))
                cols[2].metric("Yield", format_percent(holding["target_yield"]))
                cols[3].metric("Remaining", format_currency(holding["remaining_capacity"]))
                if st.button("View deal", key=f"holding_{holding['deal_id']}"):
                    st.session_state["selected_deal_id"] = holding["deal_id"]
                    st.session_state["nav_override"] = "Deals"
                    st.rerun()
