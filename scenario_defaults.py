"""
Starting rows for a new scenario: tech support tiers, seat add-ons,
surgical volume tiers and onboarding upgrades for each plan.
"""
import re
from dataclasses import replace

from forecast_params import ForecastParams
from records import (
    OnboardingRow,
    PlanAddonRow,
    SurgicalExtras,
    SurgicalTierRow,
    TechSupportRow,
)

_PLAN_SUFFIX = re.compile(r'\s+Plan$', re.IGNORECASE)


def _plan_list(plans, params):
    """(id, name) pairs; the sample plans stand in when the scenario has none"""
    pairs = [(p.id, p.name) for p in plans or ()]
    return pairs or list(params.sample_plans)


def display_plan_name(name):
    """'Basic Plan' -> 'Basic'"""
    return _PLAN_SUFFIX.sub('', name) or name


def plan_key(name):
    """Map a plan name onto the basic / professional / enterprise price tables"""
    n = name.lower()
    if 'enterprise' in n:
        return 'enterprise'
    if 'professional' in n or 'pro' in n:
        return 'professional'
    return 'basic'


def _tech_support_key(name):
    # Unrecognised plans are priced like Enterprise for support
    n = name.lower()
    if 'basic' in n:
        return 'basic'
    if 'professional' in n or 'pro' in n:
        return 'professional'
    return 'enterprise'


def build_default_tech_support_rows(plans=None, params=None):
    """Priority and Urgent tier rows for every plan"""
    params = params if params is not None else ForecastParams()
    rows = []
    for plan_id, name in _plan_list(plans, params):
        prices = params.tech_support_prices[_tech_support_key(name)]
        for tier in ('Priority', 'Urgent'):
            tier_price, seat_price = prices[tier]
            rows.append(TechSupportRow(
                plan_id=plan_id,
                plan_name=display_plan_name(name),
                tier=tier,
                tier_price=tier_price,
                customers=params.default_customers,
                seat_addon_price=seat_price,
                extra_seats=0,
            ))
    return rows


def build_default_plan_addon_rows(plans=None, params=None):
    """Additional staff on every plan; additional provider everywhere except Basic"""
    params = params if params is not None else ForecastParams()
    rows = []
    for plan_id, name in _plan_list(plans, params):
        n = name.lower()
        is_basic = 'basic' in n and 'professional' not in n and 'enterprise' not in n
        rows.append(PlanAddonRow(
            plan_id=plan_id,
            plan_name=display_plan_name(name),
            addon_type='additional_staff',
            price=params.additional_staff_price,
            quantity=params.default_customers,
        ))
        if not is_basic:
            rows.append(PlanAddonRow(
                plan_id=plan_id,
                plan_name=display_plan_name(name),
                addon_type='additional_provider',
                price=params.additional_provider_price,
                quantity=params.default_customers,
            ))
    return rows


def build_default_surgical_tier_rows(plans=None, params=None):
    """One row per volume tier per plan, all sharing the plan's base price"""
    params = params if params is not None else ForecastParams()
    rows = []
    for plan_id, name in _plan_list(plans, params):
        base_price = params.surgical_base_prices[plan_key(name)]
        for tier_key, addon_price in params.surgical_tiers:
            rows.append(SurgicalTierRow(
                plan_id=plan_id,
                plan_name=display_plan_name(name),
                base_price=base_price,
                tier_key=tier_key,
                addon_price=addon_price,
                customers=params.default_customers,
            ))
    return rows


def default_surgical_extras(params=None):
    params = params if params is not None else ForecastParams()
    return SurgicalExtras(
        additional_provider_price=params.surgical_additional_provider_price,
        additional_provider_quantity=0,
        automation_price_per_1000=params.automation_price_per_1000,
        automation_overage_thousands=0,
    )


def build_default_onboarding_rows(plans=None, params=None):
    """A session and a bundle upgrade row for every plan"""
    params = params if params is not None else ForecastParams()
    rows = []
    for plan_id, name in _plan_list(plans, params):
        key = plan_key(name)
        for upgrade_type, prices in (('session', params.onboarding_session_prices),
                                     ('bundle', params.onboarding_bundle_prices)):
            rows.append(OnboardingRow(
                plan_id=plan_id,
                plan_name=display_plan_name(name),
                upgrade_type=upgrade_type,
                price=prices[key],
                customers=params.default_customers,
            ))
    return rows


def with_surgical_base_price(rows, plan_id, base_price):
    """All tier rows of a plan share one base price; update them together"""
    return [
        replace(r, base_price=base_price)
        if r.plan_id == plan_id else r
        for r in rows
    ]


def with_custom_surgical_addon(rows, plan_id, addon_price):
    """Only the 100+ tier takes a negotiated add-on price"""
    return [
        replace(r, addon_price=addon_price)
        if r.plan_id == plan_id and r.is_custom else r
        for r in rows
    ]
