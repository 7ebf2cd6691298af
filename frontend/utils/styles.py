"""
Global styles and CSS for the marketplace UI.
"""

COLORS = {
    "bg_primary": "#0d1117",
    "bg_secondary": "#161b22",
    "bg_card": "#21262d",
    "bg_hover": "#30363d",
    "border": "#30363d",
    "text_primary": "#f0f6fc",
    "text_secondary": "#8b949e",
    "text_muted": "#6e7681",
    "accent_green": "#3fb950",
    "accent_red": "#f85149",
    "accent_blue": "#58a6ff",
    "accent_purple": "#a371f7",
    "accent_yellow": "#d29922",
}


def get_global_css() -> str:
    """Return global CSS for dark theme styling."""
    return f"""
    <style>
        .deal-card {{
            background: {COLORS['bg_card']};
            border: 1px solid {COLORS['border']};
            border-radius: 12px;
            padding: 16px;
            margin-bottom: 12px;
            transition: all 0.2s ease;
        }}

        .deal-card:hover {{
            background: {COLORS['bg_hover']};
            border-color: {COLORS['accent_blue']};
        }}

        .deal-card-title {{
            color: {COLORS['text_primary']};
            font-size: 15px;
            font-weight: 600;
            margin-bottom: 6px;
            line-height: 1.4;
        }}

        .deal-card-meta {{
            color: {COLORS['text_secondary']};
            font-size: 12px;
            margin-bottom: 12px;
        }}

        .deal-card-yield {{
            font-size: 22px;
            font-weight: 700;
            color: {COLORS['accent_green']};
        }}

        .capacity-bar {{
            width: 100%;
            height: 6px;
            border-radius: 3px;
            background: {COLORS['bg_secondary']};
            overflow: hidden;
            margin: 8px 0 4px 0;
        }}

        .capacity-bar-fill {{
            height: 100%;
            background: {COLORS['accent_blue']};
        }}

        .badge-open, .badge-funded, .badge-closed {{
            display: inline-block;
            padding: 4px 8px;
            border-radius: 4px;
            font-size: 11px;
            font-weight: 600;
            text-transform: uppercase;
        }}

        .badge-open {{
            background: rgba(63, 185, 80, 0.2);
            color: {COLORS['accent_green']};
        }}

        .badge-funded {{
            background: rgba(88, 166, 255, 0.2);
            color: {COLORS['accent_blue']};
        }}

        .badge-closed {{
            background: rgba(248, 81, 73, 0.2);
            color: {COLORS['accent_red']};
        }}

        .metric-positive {{ color: {COLORS['accent_green']}; }}
        .metric-negative {{ color: {COLORS['accent_red']}; }}
    </style>
    """


def deal_card_html(deal: dict) -> str:
    """HTML card for a deal in the marketplace grid."""
    from utils.formatters import deal_display_name, format_currency, format_percent, status_badge_class

    utilization = min(max(deal.get("utilization") or 0.0, 0.0), 1.0)
    status = deal.get("status", "open")
    return f"""
    <div class="deal-card">
        <div class="deal-card-title">{deal_display_name(deal)}</div>
        <div class="deal-card-meta">
            {deal.get('sector', '-')} · {deal.get('location') or '-'} ·
            <span class="{status_badge_class(status)}">{status}</span>
        </div>
        <div class="deal-card-yield">{format_percent(deal.get('target_yield'))}</div>
        <div class="capacity-bar"><div class="capacity-bar-fill" style="width: {utilization * 100:.0f}%"></div></div>
        <div class="deal-card-meta">
            {format_currency(deal.get('remaining_capacity'))} remaining of {format_currency(deal.get('facility_size'))}
        </div>
    </div>
    """


def inject_styles():
    """Inject global styles into the Streamlit app."""
    import streamlit as st
    st.markdown(get_global_css(), unsafe_allow_html=True)
