"""
Centralized formatting utilities for the marketplace UI.
"""
from datetime import datetime
from typing import Optional, Tuple


def format_number(value: float, decimals: int = 2) -> str:
    """Format numbers with K/M suffixes."""
    try:
        if value is None:
            return "-"
        if abs(value) >= 1_000_000:
            return f"{value/1_000_000:.1f}M"
        if abs(value) >= 1_000:
            return f"{value/1_000:.1f}k"
        return f"{value:.{decimals}f}"
    except Exception:
        return "-"


def format_currency(value: float, decimals: int = 2) -> str:
    """Format as currency with $ prefix."""
    try:
        if value is None:
            return "-"
        return f"${value:,.{decimals}f}"
    except Exception:
        return "-"


def format_percent(value: float, decimals: int = 1) -> str:
    """Format as percentage."""
    try:
        if value is None:
            return "-"
        return f"{value * 100:.{decimals}f}%"
    except Exception:
        return "-"


def format_date(date_str: str, fmt: str = "%d/%m/%Y") -> str:
    """Format ISO date string for display."""
    try:
        if not date_str:
            return "-"
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        return dt.strftime(fmt)
    except Exception:
        return "-"


def format_datetime_parts(date_str: str) -> Tuple[str, str]:
    """Return (date_str, time_str) tuple."""
    try:
        if not date_str:
            return "", ""
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        return dt.strftime("%Y-%m-%d"), dt.strftime("%H:%M:%S")
    except Exception:
        return "", ""


def format_ratio(value: Optional[float], decimals: int = 1) -> str:
    """Format a multiple such as LTV/CAC (3.2x)."""
    try:
        if value is None:
            return "-"
        return f"{value:.{decimals}f}x"
    except Exception:
        return "-"


def format_months(value: Optional[float]) -> str:
    """Format a runway in months."""
    if value is None:
        return "-"
    return f"{value:.1f} months"


def status_badge_class(status: str) -> str:
    """Return CSS badge class for a deal or investment status."""
    return {
        "open": "badge-open",
        "active": "badge-open",
        "funded": "badge-funded",
        "completed": "badge-funded",
        "closed": "badge-closed",
        "refunded": "badge-closed",
    }.get((status or "").lower(), "badge-closed")


def get_health_color(label: Optional[str]) -> str:
    """Return hex color for a financial health label."""
    good = {"Strong", "Healthy", "Efficient", "Growing", "Excellent"}
    neutral = {"Break-even", "Moderate", "Stable"}
    if label in good:
        return "#3fb950"  # accent_green
    if label in neutral:
        return "#d29922"  # accent_yellow
    if label:
        return "#f85149"  # accent_red
    return "#8b949e"  # text_secondary


def deal_display_name(deal: dict) -> str:
    """Return a readable deal name."""
    name = deal.get("name") or deal.get("deal_name")
    if name:
        return name
    sector = deal.get("sector")
    return f"{sector} deal" if sector else "Deal"
