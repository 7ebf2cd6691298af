import pandas as pd
import plotly.graph_objects as go
from datetime import datetime
from typing import List, Dict, Optional
from utils.styles import COLORS

SECTOR_PALETTE = [
	COLORS["accent_blue"],
	COLORS["accent_green"],
	COLORS["accent_purple"],
	COLORS["accent_yellow"],
	COLORS["accent_red"],
	COLORS["text_secondary"],
]


def _parse_datetime(value) -> Optional[datetime]:
	"""Parse an ISO string from the API, tolerating a trailing Z."""
	if isinstance(value, datetime):
		return value
	if not value:
		return None
	try:
		return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
	except ValueError:
		return None


def _empty_figure(message: str, height: int = 320) -> go.Figure:
	fig = go.Figure()
	fig.add_annotation(
		text=message,
		xref="paper", yref="paper",
		x=0.5, y=0.5, showarrow=False,
		font=dict(size=16, color=COLORS["text_secondary"])
	)
	fig.update_layout(
		paper_bgcolor='rgba(0,0,0,0)',
		plot_bgcolor=COLORS["bg_secondary"],
		height=height,
		xaxis=dict(visible=False),
		yaxis=dict(visible=False),
	)
	return fig


def build_investments_dataframe(investments: List[Dict]) -> pd.DataFrame:
	"""
	Convert investment history into a display DataFrame.

	Expected fields: created_at, deal_name, deal_sector, amount, status.
	"""
	if not investments:
		return pd.DataFrame()

	rows = []
	for inv in investments:
		dt = _parse_datetime(inv.get("created_at"))
		rows.append({
			"Date": dt.strftime("%Y-%m-%d %H:%M") if dt else "",
			"Deal": inv.get("deal_name") or inv.get("deal_id", ""),
			"Sector": inv.get("deal_sector") or "",
			"Amount": float(inv.get("amount") or 0),
			"Status": (inv.get("status") or "").capitalize(),
		})

	df = pd.DataFrame(rows)
	df["Amount"] = pd.to_numeric(df["Amount"], errors="coerce")
	return df.reset_index(drop=True)


def build_investors_dataframe(roster: List[Dict]) -> pd.DataFrame:
	"""Convert an MSME investor roster into a display DataFrame."""
	if not roster:
		return pd.DataFrame()

	df = pd.DataFrame([
		{
			"Investor": row.get("name") or row.get("investor_id"),
			"Email": row.get("email") or "",
			"Amount": float(row.get("amount") or 0),
			"Status": (row.get("status") or "").capitalize(),
			"Since": (_parse_datetime(row.get("created_at")) or datetime.min).strftime("%Y-%m-%d"),
		}
		for row in roster
	])
	return df


def build_cashflow_dataframe(cashflows: List[Dict]) -> pd.DataFrame:
	"""Repayment schedule sorted by due date."""
	if not cashflows:
		return pd.DataFrame()

	df = pd.DataFrame([
		{
			"Due": _parse_datetime(c.get("due_date")),
			"Amount": float(c.get("amount") or 0),
			"Status": (c.get("status") or "scheduled").capitalize(),
		}
		for c in cashflows
	])
	df = df.sort_values("Due", na_position="last").reset_index(drop=True)
	df["Due"] = df["Due"].apply(lambda d: d.strftime("%Y-%m-%d") if d else "")
	return df


def create_sector_allocation_chart(allocation: List[Dict]) -> go.Figure:
	"""
	Donut chart of an investor's book by sector.

	Args:
		allocation: [{"sector", "amount", "percent"}] from the dashboard
	"""
	if not allocation:
		return _empty_figure("No allocations yet")

	fig = go.Figure(go.Pie(
		labels=[a["sector"] for a in allocation],
		values=[a["amount"] for a in allocation],
		hole=0.55,
		marker=dict(colors=SECTOR_PALETTE[:len(allocation)] or None),
		hovertemplate='%{label}<br><b>$%{value:,.2f}</b> (%{percent})<extra></extra>',
		sort=False,
	))
	fig.update_layout(
		paper_bgcolor='rgba(0,0,0,0)',
		font=dict(color=COLORS["text_primary"], family="Inter, sans-serif"),
		margin=dict(l=20, r=20, t=20, b=20),
		height=320,
		legend=dict(orientation="h", y=-0.1),
	)
	return fig


def create_financials_chart(monthly_financials: List[Dict]) -> go.Figure:
	"""Revenue vs expenses bars per reported month."""
	if not monthly_financials:
		return _empty_figure("No financials reported")

	months = sorted(monthly_financials, key=lambda m: m.get("month", ""))
	labels = [m.get("month") for m in months]

	fig = go.Figure()
	fig.add_trace(go.Bar(
		x=labels,
		y=[m.get("revenue") or 0 for m in months],
		name="Revenue",
		marker_color=COLORS["accent_green"],
	))
	fig.add_trace(go.Bar(
		x=labels,
		y=[m.get("expenses") or 0 for m in months],
		name="Expenses",
		marker_color=COLORS["accent_red"],
	))
	fig.update_layout(
		barmode="group",
		paper_bgcolor='rgba(0,0,0,0)',
		plot_bgcolor=COLORS["bg_secondary"],
		font=dict(color=COLORS["text_primary"], family="Inter, sans-serif"),
		margin=dict(l=60, r=20, t=20, b=40),
		height=320,
		hovermode='x unified',
		yaxis=dict(
			gridcolor='rgba(255, 255, 255, 0.08)',
			tickprefix='$',
			tickformat=',.0f',
		),
	)
	return fig
