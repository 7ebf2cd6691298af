"""
Financial health metrics for a deal, computed from reported monthly figures.

All ratios are fractions (0.12 == 12%). A metric whose inputs are missing
is left as None rather than guessed.
"""
from typing import Optional

from skalebitz.schemas.deal import FinancialMetrics

# 24 months of runway or more maps to the top of the survival scale
SURVIVAL_RUNWAY_MONTHS = 24
SURVIVAL_FLOOR = 0.05
SURVIVAL_CEILING = 0.95


def _safe_div(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if numerator is None or not denominator:
        return None
    return numerator / denominator


def profitability_health(profit_margin: Optional[float]) -> Optional[str]:
    if profit_margin is None:
        return None
    if profit_margin >= 0.2:
        return "Strong"
    if profit_margin >= 0.05:
        return "Healthy"
    if profit_margin >= 0:
        return "Break-even"
    return "Loss-making"


def marketing_efficiency(ltv_cac: Optional[float]) -> Optional[str]:
    if ltv_cac is None:
        return None
    if ltv_cac >= 3:
        return "Efficient"
    if ltv_cac >= 1:
        return "Moderate"
    return "Inefficient"


def growth_status(growth_rate: Optional[float]) -> Optional[str]:
    if growth_rate is None:
        return None
    if growth_rate > 0.1:
        return "Growing"
    if growth_rate >= 0:
        return "Stable"
    return "Declining"


def retention_health(churn_rate: Optional[float]) -> Optional[str]:
    if churn_rate is None:
        return None
    if churn_rate <= 0.02:
        return "Excellent"
    if churn_rate <= 0.05:
        return "Healthy"
    return "At risk"


def survival_probability(runway_months: Optional[float], burning: bool) -> Optional[float]:
    """Rough survival odds from runway; businesses not burning cash sit at the ceiling."""
    if not burning:
        return SURVIVAL_CEILING
    if runway_months is None:
        return None
    score = runway_months / SURVIVAL_RUNWAY_MONTHS
    return max(SURVIVAL_FLOOR, min(SURVIVAL_CEILING, score))


def _monthly_churn_rates(months: list[dict]) -> list[float]:
    """Churned customers over customers at the start of each month."""
    rates = []
    previous_customers = None
    for month in months:
        customers = month.get("customers")
        churned = month.get("churned_customers")
        if churned is not None and previous_customers:
            rates.append(churned / previous_customers)
        if customers is not None:
            previous_customers = customers
    return rates


def compute_financial_metrics(
    monthly_financials: list[dict],
    cash_balance: Optional[float] = None,
) -> FinancialMetrics:
    """
    Compute deal health metrics.

    Args:
        monthly_financials: Month dicts in chronological order
        cash_balance: Cash on hand, needed for runway

    Returns:
        FinancialMetrics with every computable field set
    """
    months = sorted(monthly_financials or [], key=lambda m: m.get("month", ""))
    if not months:
        return FinancialMetrics()

    count = len(months)
    total_revenue = sum(m.get("revenue") or 0.0 for m in months)
    total_expenses = sum(m.get("expenses") or 0.0 for m in months)
    net = total_revenue - total_expenses
    avg_revenue = total_revenue / count
    avg_expenses = total_expenses / count
    margin = _safe_div(net, total_revenue)

    # Runway from average monthly burn
    monthly_burn = avg_expenses - avg_revenue
    burning = monthly_burn > 0
    runway = None
    if burning and cash_balance is not None:
        runway = max(cash_balance, 0.0) / monthly_burn

    # Unit economics
    churn_rates = _monthly_churn_rates(months)
    avg_churn = sum(churn_rates) / len(churn_rates) if churn_rates else None

    marketing_total = sum(m.get("marketing_spend") or 0.0 for m in months)
    new_customers_total = sum(m.get("new_customers") or 0 for m in months)
    cac = _safe_div(marketing_total, new_customers_total) if marketing_total else None

    customer_months = [m["customers"] for m in months if m.get("customers")]
    arpu = None
    if customer_months:
        arpu = avg_revenue / (sum(customer_months) / len(customer_months))

    ltv_cac = None
    if arpu is not None and avg_churn and cac:
        ltv_cac = (arpu / avg_churn) / cac

    growth = None
    customer_counts = [m.get("customers") for m in months if m.get("customers") is not None]
    if len(customer_counts) >= 2 and customer_counts[0]:
        growth = (customer_counts[-1] - customer_counts[0]) / customer_counts[0]

    return FinancialMetrics(
        total_revenue=round(total_revenue, 2),
        total_expenses=round(total_expenses, 2),
        net_profit_loss=round(net, 2),
        profit_margin=margin,
        expense_ratio=_safe_div(total_expenses, total_revenue),
        avg_monthly_revenue=round(avg_revenue, 2),
        avg_monthly_expenses=round(avg_expenses, 2),
        profitability_health=profitability_health(margin),
        runway_months=round(runway, 1) if runway is not None else None,
        survival_probability=survival_probability(runway, burning),
        ltv_cac_ratio=ltv_cac,
        marketing_efficiency=marketing_efficiency(ltv_cac),
        customer_growth_rate=growth,
        growth_status=growth_status(growth),
        avg_churn_rate=avg_churn,
        retention_health=retention_health(avg_churn),
    )
