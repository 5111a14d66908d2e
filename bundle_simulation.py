import logging
from dataclasses import replace
from itertools import product

import numpy as np
import pandas as pd

from forecast_model import ForecastModel, assemble_calculations
from forecast_params import ForecastParams
from records import SimulationResult

logger = logging.getLogger(__name__)

# (label, attribute, higher is better)
COMPARISON_METRICS = (
    ('Monthly Revenue', 'monthly_revenue', True),
    ('Monthly Operating Expenses', 'monthly_operating_expenses', False),
    ('Monthly Profit', 'monthly_profit', True),
    ('Annual Profit', 'annual_profit', True),
    ('Break-even Months', 'break_even_months', False),
)


def partition_add_ons(add_ons, bundle_config):
    """
    Split add-ons into those bundled into each plan and those still sold standalone

    A feature listed by any plan's bundle is removed from the standalone list,
    even when that plan id matches no real plan.
    """
    bundled_features = {}
    bundled_ids = set()

    for plan_id, feature_ids in (bundle_config or {}).items():
        feature_ids = list(feature_ids or ())
        bundled_features[plan_id] = [f for f in add_ons if f.id in feature_ids]
        bundled_ids.update(feature_ids)

    remaining_add_ons = [f for f in add_ons if f.id not in bundled_ids]
    return bundled_features, remaining_add_ons


def adjust_plans(plans, adjusted_prices=None, adjusted_customers=None):
    """Copies of the plans with price/customer overrides applied where present"""
    adjusted_prices = adjusted_prices or {}
    adjusted_customers = adjusted_customers or {}

    return [
        replace(
            plan,
            price=adjusted_prices.get(plan.id, plan.price),
            customers=adjusted_customers.get(plan.id, plan.customers),
        )
        for plan in plans
    ]


def bundled_feature_costs(bundled_features, bundle_config, adjusted_plans):
    """
    Operating cost of bundled features, scaled by the consuming plan's customers

    Each feature is charged against the first plan (in plan order) whose bundle
    lists it. A feature whose bundle names no existing plan costs nothing.
    """
    total = 0.0
    for features in bundled_features.values():
        for feature in features:
            plan = next(
                (p for p in adjusted_plans if feature.id in (bundle_config.get(p.id) or ())),
                None,
            )
            if plan is None:
                logger.debug("Bundled feature %r has no matching plan; cost contributes 0", feature.name)
                continue
            total += feature.operating_cost(plan.customers)
    return total


def calculate_simulation(capital_expenditure, plans, add_ons, operating_costs, marketing_costs,
                         bundle_config, adjusted_prices, adjusted_customers,
                         onboarding_rows=None, tech_support_rows=None, plan_addon_rows=None,
                         surgical_rows=None, surgical_extras=None, name='Simulation', params=None):
    """
    Re-run the forecast with features bundled into plans and plan prices/customers overridden

    Parameters:
    -----------
    capital_expenditure : float
        One-time investment
    plans, add_ons, operating_costs, marketing_costs : sequences of records
        Current scenario rows
    bundle_config : dict
        plan_id -> list of add-on ids now included in that plan
    adjusted_prices, adjusted_customers : dict
        plan_id -> override value; plans without an entry keep their own

    Returns:
    --------
    SimulationResult
        Calculations plus the bundled/standalone split of add-ons
    """
    params = params if params is not None else ForecastParams()
    plans = list(plans or ())
    add_ons = list(add_ons or ())
    bundle_config = bundle_config or {}

    bundled_features, remaining_add_ons = partition_add_ons(add_ons, bundle_config)
    adjusted_plans = adjust_plans(plans, adjusted_prices, adjusted_customers)

    # Bundled features earn nothing directly; their value sits in the adjusted plan price
    model = ForecastModel(
        params,
        plans=adjusted_plans,
        add_ons=remaining_add_ons,
        operating_costs=operating_costs,
        marketing_costs=marketing_costs,
        tech_support_rows=tech_support_rows,
        plan_addon_rows=plan_addon_rows,
        surgical_rows=surgical_rows,
        surgical_extras=surgical_extras,
        onboarding_rows=onboarding_rows,
    )

    monthly_revenue = model.calculate_revenue()
    monthly_operating = (
        model.calculate_operating_costs() +
        bundled_feature_costs(bundled_features, bundle_config, adjusted_plans)
    )
    monthly_marketing = model.calculate_marketing_costs()

    calculations = assemble_calculations(
        capital_expenditure, monthly_revenue, monthly_operating, monthly_marketing, params)

    return SimulationResult(
        name=name,
        calculations=calculations,
        bundled_features=bundled_features,
        remaining_add_ons=remaining_add_ons,
    )


def simulate_scenario(scenario, bundle_config, adjusted_prices=None, adjusted_customers=None,
                      name='Simulation', params=None):
    """calculate_simulation() over a ForecastScenario context"""
    return calculate_simulation(
        scenario.capital_expenditure,
        scenario.pricing_plans,
        scenario.add_on_features,
        scenario.operating_costs,
        scenario.marketing_costs,
        bundle_config,
        adjusted_prices or {},
        adjusted_customers or {},
        onboarding_rows=scenario.onboarding_rows,
        tech_support_rows=scenario.tech_support_rows,
        plan_addon_rows=scenario.plan_addon_rows,
        surgical_rows=scenario.surgical_tier_rows,
        surgical_extras=scenario.surgical_extras,
        name=name,
        params=params,
    )


def _change(current, simulated):
    amount = simulated - current
    percentage = amount / abs(current) * 100 if current != 0 else 0.0
    return amount, percentage


def compare_calculations(current, simulated):
    """Side-by-side table of the current forecast against a simulated one"""
    rows = []
    for label, attribute, higher_is_better in COMPARISON_METRICS:
        current_value = getattr(current, attribute)
        simulated_value = getattr(simulated, attribute)
        amount, percentage = _change(current_value, simulated_value)
        improved = amount > 0 if higher_is_better else amount < 0
        rows.append({
            'metric': label,
            'current': current_value,
            'simulated': simulated_value,
            'change': amount,
            'change_pct': percentage,
            'is_improvement': improved,
        })
    return pd.DataFrame(rows)


def plan_price_changes(plans, adjusted_prices):
    """Per-plan price movement between the current plans and a simulation's overrides"""
    rows = []
    for plan in plans:
        new_price = adjusted_prices.get(plan.id, plan.price)
        amount, percentage = _change(plan.price, new_price)
        rows.append({
            'plan_id': plan.id,
            'plan': plan.name,
            'current_price': plan.price,
            'new_price': new_price,
            'change': amount,
            'change_pct': percentage,
        })
    return pd.DataFrame(rows)


def grid_search_plan_prices(capital_expenditure, plans, add_ons, operating_costs, marketing_costs,
                            bundle_config=None, adjusted_customers=None, grid_points=5,
                            min_multiplier=0.8, max_multiplier=1.2, params=None, **row_kwargs):
    """
    Grid search over plan price multipliers for a given bundle configuration

    Parameters:
    -----------
    grid_points : int
        Number of multipliers tested per plan
    min_multiplier, max_multiplier : float
        Range of the multiplier applied to each plan's current price
    row_kwargs :
        Extra row collections forwarded to calculate_simulation()

    Returns:
    --------
    dict
        'best' (highest monthly profit) and 'all_results' (one entry per combination)

    Raises:
    -------
    ValueError
        When grid_points is below 1 or the grid exceeds params.max_grid_combinations
    """
    params = params if params is not None else ForecastParams()
    plans = list(plans or ())

    if grid_points < 1:
        raise ValueError(f"grid_points must be at least 1, got {grid_points}")
    combinations = grid_points ** len(plans)
    if combinations > params.max_grid_combinations:
        raise ValueError(
            f"Grid of {grid_points} points over {len(plans)} plans needs {combinations:,} simulations; "
            f"the limit is {params.max_grid_combinations:,}"
        )

    multipliers = np.linspace(min_multiplier, max_multiplier, grid_points)

    best = {'monthly_profit': float('-inf'), 'adjusted_prices': None, 'calculations': None}
    all_results = []

    for combination in product(multipliers, repeat=len(plans)):
        adjusted_prices = {
            plan.id: plan.price * float(multiplier)
            for plan, multiplier in zip(plans, combination)
        }

        result = calculate_simulation(
            capital_expenditure, plans, add_ons, operating_costs, marketing_costs,
            bundle_config or {}, adjusted_prices, adjusted_customers or {},
            params=params, **row_kwargs,
        )
        calculations = result.calculations

        entry = {f'price_{plan_id}': price for plan_id, price in adjusted_prices.items()}
        entry.update({
            'monthly_revenue': calculations.monthly_revenue,
            'monthly_profit': calculations.monthly_profit,
            'annual_profit': calculations.annual_profit,
            'break_even_months': calculations.break_even_months,
        })
        all_results.append(entry)

        if calculations.monthly_profit > best['monthly_profit']:
            best = {
                'monthly_profit': calculations.monthly_profit,
                'adjusted_prices': dict(adjusted_prices),
                'calculations': calculations,
            }

    logger.info("Grid search evaluated %d price combinations", len(all_results))

    return {
        'best': best,
        'all_results': all_results,
    }
