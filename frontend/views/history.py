"""
History page: the investor's complete allocation history.

Features:
- Summary of invested, refunded and repaid amounts
- Status filter
- CSV export
"""

import streamlit as st
from datetime import datetime

from config import API_URL
from utils.api import APIClient
from utils.display_figure import build_investments_dataframe
from utils.formatters import format_currency

STATUS_FILTERS = {"All": None, "Active": "active", "Repaid": "completed", "Refunded": "refunded"}


def _fetch_all_investments(api: APIClient, status: str = None) -> list:
	"""Walk every page of /investments."""
	investments, page = [], 1
	while True:
		resp = api.list_investments(page=page, page_size=100, status=status)
		if resp.get("status") != 200:
			break
		data = resp.get("data") or {}
		investments.extend(data.get("investments") or [])
		if not data.get("has_more"):
			break
		page += 1
	return investments


def render():
	"""Render the history page."""
	st.title("Investment history")

	api = APIClient(API_URL)

	label = st.radio("Status", list(STATUS_FILTERS), horizontal=True)
	with st.spinner("Loading history..."):
		investments = _fetch_all_investments(api, STATUS_FILTERS[label])

	if not investments:
		st.info("No investments recorded yet.")
		return

	def total(status):
		return sum(i["amount"] for i in investments if i.get("status") == status)

	col1, col2, col3, col4 = st.columns(4)
	col1.metric("Investments", len(investments))
	col2.metric("Active", format_currency(total("active")))
	col3.metric("Repaid", format_currency(total("completed")))
	col4.metric("Refunded", format_currency(total("refunded")))

	st.divider()

	df = build_investments_dataframe(investments)
	col_config = {
		"Date": st.column_config.TextColumn(width="medium"),
		"Deal": st.column_config.TextColumn(width="large"),
		"Sector": st.column_config.TextColumn(width="small"),
		"Amount": st.column_config.NumberColumn(format="$%.2f", width="small"),
		"Status": st.column_config.TextColumn(width="small"),
	}
	st.dataframe(
		df,
		use_container_width=True,
		hide_index=True,
		column_config=col_config,
		height=500,
	)

	st.download_button(
		label="Download CSV",
		data=df.to_csv(index=False),
		file_name=f"investments_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
		mime="text/csv",
		use_container_width=True,
	)
