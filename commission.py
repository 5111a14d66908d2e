import logging
from dataclasses import dataclass

import pandas as pd

from forecast_params import ForecastParams
from records import Affiliate, CommissionScenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioCommission:
    name: str
    commission: float
    revenue: float
    net: float
    margin_pct: float


@dataclass(frozen=True)
class CommissionSummary:
    scenarios: tuple
    total_commission: float
    total_revenue: float
    net_revenue: float
    margin_pct: float
    annual_commission: float
    annual_revenue: float
    annual_net_revenue: float


def affiliate_for_type(affiliate_type, params=None):
    """Affiliate entry for a known role, None when the role is not configured"""
    params = params if params is not None else ForecastParams()
    rate = params.affiliate_rate_for(affiliate_type)
    if rate is None:
        return None
    return Affiliate(affiliate_type, rate)


def new_commission_scenario(name, params=None):
    """A scenario with the default affiliate and nothing selected"""
    params = params if params is not None else ForecastParams()
    default = affiliate_for_type(params.default_affiliate_type, params)
    return CommissionScenario(name=name, affiliates=(default,))


def total_commission_rate(scenario):
    return sum((a.affiliate_rate for a in scenario.affiliates), 0.0)


def _selected_lines(scenario, plans, add_ons):
    """(price, quantity) for every selection that matches a plan or add-on with quantity > 0"""
    plan_prices = {p.id: p.price for p in plans}
    add_on_prices = {a.id: a.price for a in add_ons}

    lines = []
    for selections, prices in ((scenario.selected_plans, plan_prices),
                               (scenario.selected_add_ons, add_on_prices)):
        for item_id, quantity in selections.items():
            if item_id not in prices:
                logger.debug("Commission scenario %r selects unknown id %r", scenario.name, item_id)
                continue
            if quantity > 0:
                lines.append((prices[item_id], quantity))
    return lines


def scenario_commission(scenario, plans, add_ons):
    """Commission owed across every affiliate on the scenario's selections"""
    lines = _selected_lines(scenario, plans, add_ons)
    return sum(
        (price * quantity * (affiliate.affiliate_rate / 100)
         for affiliate in scenario.affiliates
         for price, quantity in lines),
        0.0,
    )


def scenario_revenue(scenario, plans, add_ons):
    """Gross revenue of the selections, counted once whatever the affiliate count"""
    return sum((price * quantity for price, quantity in _selected_lines(scenario, plans, add_ons)), 0.0)


def _margin_pct(revenue, net):
    if revenue <= 0:
        return 0.0
    return net / revenue * 100


def evaluate_commission_scenario(scenario, plans, add_ons):
    commission = scenario_commission(scenario, plans, add_ons)
    revenue = scenario_revenue(scenario, plans, add_ons)
    net = revenue - commission
    return ScenarioCommission(
        name=scenario.name,
        commission=commission,
        revenue=revenue,
        net=net,
        margin_pct=_margin_pct(revenue, net),
    )


def evaluate_commission_scenarios(scenarios, plans, add_ons, params=None):
    """
    Evaluate each commission scenario independently and total them

    Parameters:
    -----------
    scenarios : list of CommissionScenario
    plans, add_ons : sequences of PricingPlan / AddOnFeature
        Price sources for the selected ids

    Returns:
    --------
    CommissionSummary
        Per-scenario results plus monthly and annual totals
    """
    params = params if params is not None else ForecastParams()
    plans = tuple(plans or ())
    add_ons = tuple(add_ons or ())

    results = tuple(evaluate_commission_scenario(s, plans, add_ons) for s in scenarios or ())

    total_commission = sum((r.commission for r in results), 0.0)
    total_revenue = sum((r.revenue for r in results), 0.0)
    net_revenue = total_revenue - total_commission
    months = params.months_per_year

    return CommissionSummary(
        scenarios=results,
        total_commission=total_commission,
        total_revenue=total_revenue,
        net_revenue=net_revenue,
        margin_pct=_margin_pct(total_revenue, net_revenue),
        annual_commission=total_commission * months,
        annual_revenue=total_revenue * months,
        annual_net_revenue=net_revenue * months,
    )


def commission_frame(summary):
    """One row per scenario plus a Total row"""
    rows = [
        {
            'scenario': r.name,
            'commission': r.commission,
            'revenue': r.revenue,
            'net': r.net,
            'margin_pct': r.margin_pct,
        }
        for r in summary.scenarios
    ]
    rows.append({
        'scenario': 'Total',
        'commission': summary.total_commission,
        'revenue': summary.total_revenue,
        'net': summary.net_revenue,
        'margin_pct': summary.margin_pct,
    })
    return pd.DataFrame(rows)
