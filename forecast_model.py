import logging

import pandas as pd

from forecast_params import ForecastParams
from records import (
    FIXED,
    ONBOARDING_TYPES,
    BreakEven,
    Calculations,
    CostTotals,
    SurgicalExtras,
)

logger = logging.getLogger(__name__)


# ==========================================
# PLAN PRICE RESOLUTION
# ==========================================

def resolve_plan_price(label, plans):
    """
    Resolve a plan price from a free-text label (e.g. "Basic" matches "Basic Plan")

    The first plan whose lowercased name equals, contains, or is contained by
    the normalised label wins. Returns 0 when nothing matches.
    """
    normalized = (label or '').lower().strip()
    for plan in plans or ():
        name = plan.name.lower()
        if name == normalized or normalized in name or name in normalized:
            return plan.price

    logger.debug("No plan matches label %r; contributing 0", label)
    return 0


def resolve_plan_price_by_id(plan_id, plans):
    """Price of the plan with this id, None when the id is unknown"""
    for plan in plans or ():
        if plan.id == plan_id:
            return plan.price
    return None


def resolve_marketing_plan_price(cost, plans):
    """Prefer the explicit plan reference; fall back to the legacy label match"""
    if cost.plan_id:
        price = resolve_plan_price_by_id(cost.plan_id, plans)
        if price is not None:
            return price
        logger.debug("Marketing cost %r references unknown plan id %r", cost.name, cost.plan_id)
    return resolve_plan_price(cost.price_plan, plans)


def marketing_cost_value(cost, plans):
    """Monthly expense of one marketing row"""
    if cost.cost_type == FIXED:
        return cost.fixed_amount
    plan_price = resolve_marketing_plan_price(cost, plans)
    return plan_price * cost.customers * (cost.rate / 100)


# ==========================================
# FORECAST MODEL
# ==========================================

class ForecastModel:
    """Monthly snapshot of revenue and cost for one set of scenario rows."""

    def __init__(self, params=None, plans=None, add_ons=None, operating_costs=None,
                 marketing_costs=None, tech_support_rows=None, plan_addon_rows=None,
                 surgical_rows=None, surgical_extras=None, onboarding_rows=None):
        self.params = params if params is not None else ForecastParams()

        # Missing collections contribute nothing
        self.plans = tuple(plans or ())
        self.add_ons = tuple(add_ons or ())
        self.operating_costs = tuple(operating_costs or ())
        self.marketing_costs = tuple(marketing_costs or ())
        self.tech_support_rows = tuple(tech_support_rows or ())
        self.plan_addon_rows = tuple(plan_addon_rows or ())
        self.surgical_rows = tuple(surgical_rows or ())
        self.surgical_extras = surgical_extras if surgical_extras is not None else SurgicalExtras()
        self.onboarding_rows = tuple(onboarding_rows or ())

    def revenue_add_ons(self):
        return [f for f in self.add_ons if f.is_revenue_line(self.params.cost_only_addon_names)]

    def calculate_plan_revenue(self):
        return sum((plan.revenue() for plan in self.plans), 0.0)

    def calculate_add_on_revenue(self):
        """Revenue from add-ons sold on their own; cost-only packs are skipped"""
        return sum((f.price * f.customers for f in self.revenue_add_ons()), 0.0)

    def calculate_tech_support_revenue(self):
        return sum((row.revenue() for row in self.tech_support_rows), 0.0)

    def calculate_plan_addon_revenue(self):
        return sum((row.revenue() for row in self.plan_addon_rows), 0.0)

    def calculate_surgical_revenue(self):
        """Volume-tier rows plus the scenario-wide provider and automation overage extras"""
        tier_revenue = sum((row.revenue() for row in self.surgical_rows), 0.0)
        return tier_revenue + self.surgical_extras.revenue()

    def calculate_onboarding_revenue(self):
        return sum((row.revenue() for row in self.onboarding_rows), 0.0)

    def calculate_revenue_breakdown(self):
        return {
            'plans': self.calculate_plan_revenue(),
            'add_ons': self.calculate_add_on_revenue(),
            'tech_support': self.calculate_tech_support_revenue(),
            'plan_addons': self.calculate_plan_addon_revenue(),
            'surgical': self.calculate_surgical_revenue(),
            'onboarding': self.calculate_onboarding_revenue(),
        }

    def calculate_revenue(self):
        return sum(self.calculate_revenue_breakdown().values(), 0.0)

    def calculate_operating_costs(self):
        """Fixed or unit-priced rows, plus serving cost of every add-on (cost-only included)"""
        base_costs = sum((cost.monthly_cost() for cost in self.operating_costs), 0.0)
        add_on_costs = sum((f.operating_cost() for f in self.add_ons), 0.0)
        return base_costs + add_on_costs

    def calculate_marketing_costs(self):
        return sum((marketing_cost_value(cost, self.plans) for cost in self.marketing_costs), 0.0)

    def run_forecast(self, capital_expenditure=0):
        """Combine revenue and cost into the full monthly and annual summary"""
        return assemble_calculations(
            capital_expenditure,
            self.calculate_revenue(),
            self.calculate_operating_costs(),
            self.calculate_marketing_costs(),
            self.params,
        )


def assemble_calculations(capital_expenditure, monthly_revenue, monthly_operating,
                          monthly_marketing, params=None):
    """Derive totals, profit, annual figures and break-even from the monthly components"""
    months = (params if params is not None else ForecastParams()).months_per_year

    total_monthly_expenses = monthly_operating + monthly_marketing
    monthly_profit = monthly_revenue - total_monthly_expenses

    annual_revenue = monthly_revenue * months
    annual_operating = monthly_operating * months
    annual_marketing = monthly_marketing * months
    annual_profit = annual_revenue - annual_operating - annual_marketing - capital_expenditure

    # 0 when monthly profit <= 0: reads as "never", not "already recovered"
    break_even_months = capital_expenditure / monthly_profit if monthly_profit > 0 else 0

    return Calculations(
        monthly_revenue=monthly_revenue,
        monthly_operating_expenses=monthly_operating,
        monthly_marketing_expenses=monthly_marketing,
        total_monthly_expenses=total_monthly_expenses,
        monthly_profit=monthly_profit,
        annual_revenue=annual_revenue,
        annual_operating_expenses=annual_operating,
        annual_marketing_expenses=annual_marketing,
        annual_profit=annual_profit,
        break_even_months=break_even_months,
    )


def evaluate_break_even(capital_expenditure, monthly_profit):
    """
    Tagged break-even result

    Parameters:
    -----------
    capital_expenditure : float
        One-time investment to recover
    monthly_profit : float
        Profit per month from the forecast

    Returns:
    --------
    BreakEven
        'unprofitable' when monthly profit <= 0, 'already_broken' when there is
        no capital left to recover, otherwise 'reached' with the month count
    """
    if monthly_profit <= 0:
        return BreakEven(BreakEven.UNPROFITABLE)
    if capital_expenditure <= 0:
        return BreakEven(BreakEven.ALREADY_BROKEN)
    return BreakEven(BreakEven.REACHED, capital_expenditure / monthly_profit)


# ==========================================
# FUNCTIONAL ENTRY POINTS
# ==========================================

def compute_revenue(plans=None, add_ons=None, tech_support_rows=None, plan_addon_rows=None,
                    surgical_rows=None, surgical_extras=None, onboarding_rows=None, params=None):
    """Total monthly revenue across every revenue source"""
    model = ForecastModel(
        params, plans=plans, add_ons=add_ons, tech_support_rows=tech_support_rows,
        plan_addon_rows=plan_addon_rows, surgical_rows=surgical_rows,
        surgical_extras=surgical_extras, onboarding_rows=onboarding_rows,
    )
    return model.calculate_revenue()


def revenue_breakdown(plans=None, add_ons=None, tech_support_rows=None, plan_addon_rows=None,
                      surgical_rows=None, surgical_extras=None, onboarding_rows=None, params=None):
    """Monthly revenue per source; values sum to compute_revenue()"""
    model = ForecastModel(
        params, plans=plans, add_ons=add_ons, tech_support_rows=tech_support_rows,
        plan_addon_rows=plan_addon_rows, surgical_rows=surgical_rows,
        surgical_extras=surgical_extras, onboarding_rows=onboarding_rows,
    )
    return model.calculate_revenue_breakdown()


def compute_costs(operating_costs=None, add_ons=None, marketing_costs=None, plans=None, params=None):
    model = ForecastModel(
        params, plans=plans, add_ons=add_ons,
        operating_costs=operating_costs, marketing_costs=marketing_costs,
    )
    return CostTotals(
        operating=model.calculate_operating_costs(),
        marketing=model.calculate_marketing_costs(),
    )


def calculate_metrics(capital_expenditure, plans=None, add_ons=None, operating_costs=None,
                      marketing_costs=None, tech_support_rows=None, plan_addon_rows=None,
                      surgical_rows=None, surgical_extras=None, onboarding_rows=None, params=None):
    """Full monthly/annual revenue, expense, profit and break-even summary"""
    model = ForecastModel(
        params, plans, add_ons, operating_costs, marketing_costs,
        tech_support_rows, plan_addon_rows, surgical_rows, surgical_extras, onboarding_rows,
    )
    return model.run_forecast(capital_expenditure)


def calculate_scenario_metrics(scenario, params=None):
    """calculate_metrics() over a ForecastScenario context"""
    return calculate_metrics(
        scenario.capital_expenditure,
        scenario.pricing_plans,
        scenario.add_on_features,
        scenario.operating_costs,
        scenario.marketing_costs,
        scenario.tech_support_rows,
        scenario.plan_addon_rows,
        scenario.surgical_tier_rows,
        scenario.surgical_extras,
        scenario.onboarding_rows,
        params=params,
    )


# ==========================================
# SUMMARY TABLES
# ==========================================

def _margin_pct(revenue, profit):
    if revenue <= 0:
        return 0.0
    return profit / revenue * 100


def onboarding_summary(rows, params=None):
    """
    Revenue, delivery cost, profit and margin for the paid onboarding upgrades

    Rows without their own delivery_cost use the default for their upgrade type.

    Returns:
    --------
    dict
        One entry per upgrade type plus 'total'
    """
    params = params if params is not None else ForecastParams()
    rows = tuple(rows or ())

    def summarise(subset):
        revenue = sum((r.revenue() for r in subset), 0.0)
        delivery = sum(
            ((r.delivery_cost if r.delivery_cost is not None else params.delivery_cost_for(r.upgrade_type))
             * r.customers for r in subset),
            0.0,
        )
        profit = revenue - delivery
        return {
            'revenue': revenue,
            'delivery_cost': delivery,
            'profit': profit,
            'margin_pct': _margin_pct(revenue, profit),
        }

    summary = {
        upgrade_type: summarise([r for r in rows if r.upgrade_type == upgrade_type])
        for upgrade_type in ONBOARDING_TYPES
    }
    summary['total'] = summarise(rows)
    return summary


def calculations_frame(calculations):
    """Monthly vs annual view of a Calculations result"""
    c = calculations
    return pd.DataFrame(
        [
            ('Revenue', c.monthly_revenue, c.annual_revenue),
            ('Operating Expenses', c.monthly_operating_expenses, c.annual_operating_expenses),
            ('Marketing Expenses', c.monthly_marketing_expenses, c.annual_marketing_expenses),
            ('Total Expenses', c.total_monthly_expenses,
             c.annual_operating_expenses + c.annual_marketing_expenses),
            ('Profit', c.monthly_profit, c.annual_profit),
        ],
        columns=['Metric', 'Monthly', 'Annual'],
    )
