from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

# ==========================================
# CONSTANTS
# ==========================================

REVENUE = 'revenue'
COST_ONLY = 'cost_only'
ADDON_CATEGORIES = (REVENUE, COST_ONLY)

COMMISSION = 'commission'
FIXED = 'fixed'

TECH_SUPPORT_TIERS = ('Priority', 'Urgent')
PLAN_ADDON_TYPES = ('additional_staff', 'additional_provider')
SURGICAL_TIER_KEYS = ('0-10', '11-25', '26-50', '51-100', '100+')
ONBOARDING_TYPES = ('session', 'bundle')


def _number(value) -> float:
    """Store values arrive as numbers, numeric strings or null; null reads as 0"""
    if value is None or value == '':
        return 0.0
    return float(value)


def _optional_number(value) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


def _text(value) -> str:
    return '' if value is None else str(value)


_TRUE_TEXT = ('true', 'yes', '1')
_FALSE_TEXT = ('false', 'no', '0')


def _flag(value, default: bool) -> bool:
    """Booleans, 0/1 or true/false text; null reads as the default"""
    if value is None or value == '':
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
        raise ValueError(f"Not a boolean: {value!r}")
    if isinstance(value, (bool, int, float)):
        return bool(value)
    raise TypeError(f"Not a boolean: {value!r}")


# ==========================================
# INPUT RECORDS
# ==========================================

@dataclass(frozen=True)
class PricingPlan:
    id: str
    name: str
    price: float
    customers: float
    display_order: int = 0

    @classmethod
    def from_row(cls, row: Mapping) -> 'PricingPlan':
        return cls(
            id=_text(row.get('id')),
            name=_text(row.get('name')),
            price=_number(row.get('price')),
            customers=_number(row.get('customers')),
            display_order=int(_number(row.get('display_order'))),
        )

    def revenue(self) -> float:
        return self.price * self.customers


@dataclass(frozen=True)
class AddOnFeature:
    id: str
    name: str
    price: float
    customers: float
    is_revenue: bool = True
    operating_cost_per_customer: float = 0.0
    category: Optional[str] = None  # explicit revenue / cost_only tag; None falls back to the name list

    @classmethod
    def from_row(cls, row: Mapping) -> 'AddOnFeature':
        category = row.get('category')
        if category not in ADDON_CATEGORIES:
            category = None
        return cls(
            id=_text(row.get('id')),
            name=_text(row.get('name')),
            price=_number(row.get('price')),
            customers=_number(row.get('customers')),
            is_revenue=_flag(row.get('is_revenue'), True),
            operating_cost_per_customer=_number(row.get('operating_cost_per_customer')),
            category=category,
        )

    def is_revenue_line(self, cost_only_names) -> bool:
        """True when this feature's sales count towards revenue"""
        if self.category is not None:
            return self.category == REVENUE
        return self.is_revenue and self.name not in cost_only_names

    def operating_cost(self, customers: Optional[float] = None) -> float:
        """Cost of serving the feature; pass customers to scale by another base"""
        if customers is None:
            customers = self.customers
        return self.operating_cost_per_customer * customers


@dataclass(frozen=True)
class OperatingCost:
    name: str
    amount: float = 0.0
    is_fixed: bool = True
    unit_price: float = 0.0
    units: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping) -> 'OperatingCost':
        return cls(
            name=_text(row.get('name')),
            amount=_number(row.get('amount')),
            is_fixed=_flag(row.get('is_fixed'), True),
            unit_price=_number(row.get('unit_price')),
            units=_number(row.get('units')),
        )

    def monthly_cost(self) -> float:
        if self.is_fixed:
            return self.amount
        return self.unit_price * self.units


@dataclass(frozen=True)
class MarketingCost:
    name: str
    rate: float = 0.0
    price_plan: str = ''
    customers: float = 0.0
    cost_type: str = COMMISSION
    fixed_amount: float = 0.0
    plan_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping) -> 'MarketingCost':
        cost_type = row.get('cost_type') or COMMISSION
        plan_id = row.get('plan_id')
        return cls(
            name=_text(row.get('name')),
            rate=_number(row.get('rate')),
            price_plan=_text(row.get('price_plan')),
            customers=_number(row.get('customers')),
            cost_type=cost_type if cost_type in (COMMISSION, FIXED) else COMMISSION,
            fixed_amount=_number(row.get('fixed_amount')),
            plan_id=_text(plan_id) if plan_id else None,
        )


@dataclass(frozen=True)
class TechSupportRow:
    plan_id: str
    tier: str
    tier_price: float
    customers: float
    seat_addon_price: float = 0.0
    extra_seats: float = 0.0
    plan_name: str = ''

    @classmethod
    def from_row(cls, row: Mapping) -> 'TechSupportRow':
        return cls(
            plan_id=_text(row.get('plan_id')),
            tier=_text(row.get('tier')),
            tier_price=_number(row.get('tier_price')),
            customers=_number(row.get('customers')),
            seat_addon_price=_number(row.get('seat_addon_price')),
            extra_seats=_number(row.get('extra_seats')),
            plan_name=_text(row.get('plan_name')),
        )

    def revenue(self) -> float:
        return self.tier_price * self.customers + self.seat_addon_price * self.extra_seats


@dataclass(frozen=True)
class PlanAddonRow:
    plan_id: str
    addon_type: str
    price: float
    quantity: float
    plan_name: str = ''

    @classmethod
    def from_row(cls, row: Mapping) -> 'PlanAddonRow':
        return cls(
            plan_id=_text(row.get('plan_id')),
            addon_type=_text(row.get('addon_type')),
            price=_number(row.get('price')),
            quantity=_number(row.get('quantity')),
            plan_name=_text(row.get('plan_name')),
        )

    def revenue(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class SurgicalTierRow:
    plan_id: str
    base_price: float
    tier_key: str
    addon_price: float
    customers: float
    plan_name: str = ''

    @classmethod
    def from_row(cls, row: Mapping) -> 'SurgicalTierRow':
        return cls(
            plan_id=_text(row.get('plan_id')),
            base_price=_number(row.get('base_price')),
            tier_key=_text(row.get('tier_key')),
            addon_price=_number(row.get('addon_price')),
            customers=_number(row.get('customers')),
            plan_name=_text(row.get('plan_name')),
        )

    @property
    def is_custom(self) -> bool:
        """The 100+ tier carries a negotiated add-on price"""
        return self.tier_key == '100+'

    def revenue(self) -> float:
        return (self.base_price + self.addon_price) * self.customers


@dataclass(frozen=True)
class SurgicalExtras:
    additional_provider_price: float = 0.0
    additional_provider_quantity: float = 0.0
    automation_price_per_1000: float = 0.0
    automation_overage_thousands: float = 0.0

    @classmethod
    def from_row(cls, row: Optional[Mapping]) -> 'SurgicalExtras':
        if not row:
            return cls()
        return cls(
            additional_provider_price=_number(row.get('additional_provider_price')),
            additional_provider_quantity=_number(row.get('additional_provider_quantity')),
            automation_price_per_1000=_number(row.get('automation_price_per_1000')),
            automation_overage_thousands=_number(row.get('automation_overage_thousands')),
        )

    def revenue(self) -> float:
        return (
            self.additional_provider_price * self.additional_provider_quantity +
            self.automation_price_per_1000 * self.automation_overage_thousands
        )


@dataclass(frozen=True)
class OnboardingRow:
    plan_id: str
    upgrade_type: str
    price: float
    customers: float
    delivery_cost: Optional[float] = None  # overrides the per-type default when set
    plan_name: str = ''
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping) -> 'OnboardingRow':
        row_id = row.get('id')
        return cls(
            plan_id=_text(row.get('plan_id')),
            upgrade_type=_text(row.get('upgrade_type')),
            price=_number(row.get('price')),
            customers=_number(row.get('customers')),
            delivery_cost=_optional_number(row.get('delivery_cost')),
            plan_name=_text(row.get('plan_name')),
            id=_text(row_id) if row_id else None,
        )

    def revenue(self) -> float:
        return self.price * self.customers


# ==========================================
# COMMISSION INPUTS
# ==========================================

@dataclass(frozen=True)
class Affiliate:
    affiliate_type: str
    affiliate_rate: float

    @classmethod
    def from_row(cls, row: Mapping) -> 'Affiliate':
        return cls(
            affiliate_type=_text(row.get('affiliateType', row.get('affiliate_type'))),
            affiliate_rate=_number(row.get('affiliateRate', row.get('affiliate_rate'))),
        )


@dataclass(frozen=True)
class CommissionScenario:
    name: str
    affiliates: Tuple[Affiliate, ...] = ()
    selected_plans: Dict[str, float] = field(default_factory=dict)
    selected_add_ons: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping) -> 'CommissionScenario':
        plans = row.get('selectedPlans', row.get('selected_plans')) or {}
        add_ons = row.get('selectedAddOns', row.get('selected_add_ons')) or {}
        return cls(
            name=_text(row.get('name')),
            affiliates=tuple(Affiliate.from_row(a) for a in row.get('affiliates') or []),
            selected_plans={str(k): _number(v) for k, v in plans.items()},
            selected_add_ons={str(k): _number(v) for k, v in add_ons.items()},
        )


# ==========================================
# DERIVED RECORDS
# ==========================================

@dataclass(frozen=True)
class Calculations:
    monthly_revenue: float = 0.0
    monthly_operating_expenses: float = 0.0
    monthly_marketing_expenses: float = 0.0
    total_monthly_expenses: float = 0.0
    monthly_profit: float = 0.0
    annual_revenue: float = 0.0
    annual_operating_expenses: float = 0.0
    annual_marketing_expenses: float = 0.0
    annual_profit: float = 0.0
    break_even_months: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        """camelCase keys, as consumed by the presentation layer"""
        return {
            'monthlyRevenue': self.monthly_revenue,
            'monthlyOperatingExpenses': self.monthly_operating_expenses,
            'monthlyMarketingExpenses': self.monthly_marketing_expenses,
            'totalMonthlyExpenses': self.total_monthly_expenses,
            'monthlyProfit': self.monthly_profit,
            'annualRevenue': self.annual_revenue,
            'annualOperatingExpenses': self.annual_operating_expenses,
            'annualMarketingExpenses': self.annual_marketing_expenses,
            'annualProfit': self.annual_profit,
            'breakEvenMonths': self.break_even_months,
        }


@dataclass(frozen=True)
class CostTotals:
    operating: float = 0.0
    marketing: float = 0.0


@dataclass(frozen=True)
class BreakEven:
    """
    Tagged break-even outcome.

    status is 'reached' (months until capex is recovered), 'already_broken'
    (nothing left to recover) or 'unprofitable' (monthly profit <= 0, never).
    """
    status: str
    months: float = 0.0

    REACHED = 'reached'
    ALREADY_BROKEN = 'already_broken'
    UNPROFITABLE = 'unprofitable'

    def as_months(self) -> float:
        # Unprofitable maps to 0 for call sites that only read a number
        if self.status == self.UNPROFITABLE:
            return 0.0
        return self.months


@dataclass(frozen=True)
class SimulationResult:
    name: str
    calculations: Calculations
    bundled_features: Dict[str, List[AddOnFeature]] = field(default_factory=dict)
    remaining_add_ons: List[AddOnFeature] = field(default_factory=list)

    def bundled_feature_ids(self):
        return {f.id for features in self.bundled_features.values() for f in features}


@dataclass(frozen=True)
class SavedSimulation:
    """Inputs of a named bundle simulation, stored so it can be re-run later"""
    name: str
    bundle_config: Dict[str, List[str]] = field(default_factory=dict)
    adjusted_plan_prices: Dict[str, float] = field(default_factory=dict)
    adjusted_plan_customers: Dict[str, float] = field(default_factory=dict)
    description: str = ''

    @classmethod
    def from_row(cls, row: Mapping) -> 'SavedSimulation':
        bundles = row.get('bundle_config') or {}
        prices = row.get('adjusted_plan_prices') or {}
        customers = row.get('adjusted_plan_customers') or {}
        return cls(
            name=_text(row.get('name')),
            bundle_config={str(k): [str(f) for f in v or ()] for k, v in bundles.items()},
            adjusted_plan_prices={str(k): _number(v) for k, v in prices.items()},
            adjusted_plan_customers={str(k): _number(v) for k, v in customers.items()},
            description=_text(row.get('description')),
        )

    def to_row(self) -> dict:
        return asdict(self)


# ==========================================
# SCENARIO CONTEXT
# ==========================================

@dataclass(frozen=True)
class ForecastScenario:
    """Everything one forecast needs, passed explicitly into every engine call."""
    id: str
    name: str = ''
    capital_expenditure: float = 0.0
    pricing_plans: Tuple[PricingPlan, ...] = ()
    add_on_features: Tuple[AddOnFeature, ...] = ()
    operating_costs: Tuple[OperatingCost, ...] = ()
    marketing_costs: Tuple[MarketingCost, ...] = ()
    tech_support_rows: Tuple[TechSupportRow, ...] = ()
    plan_addon_rows: Tuple[PlanAddonRow, ...] = ()
    surgical_tier_rows: Tuple[SurgicalTierRow, ...] = ()
    surgical_extras: SurgicalExtras = field(default_factory=SurgicalExtras)
    onboarding_rows: Tuple[OnboardingRow, ...] = ()

    @classmethod
    def from_document(cls, scenario_id: str, doc: Mapping) -> 'ForecastScenario':
        plans = sorted(
            (PricingPlan.from_row(r) for r in doc.get('pricing_plans') or []),
            key=lambda p: p.display_order,
        )
        return cls(
            id=scenario_id,
            name=_text(doc.get('name')),
            capital_expenditure=_number(doc.get('capital_expenditure')),
            pricing_plans=tuple(plans),
            add_on_features=tuple(AddOnFeature.from_row(r) for r in doc.get('add_on_features') or []),
            operating_costs=tuple(OperatingCost.from_row(r) for r in doc.get('operating_costs') or []),
            marketing_costs=tuple(MarketingCost.from_row(r) for r in doc.get('marketing_costs') or []),
            tech_support_rows=tuple(TechSupportRow.from_row(r) for r in doc.get('tech_support_revenue') or []),
            plan_addon_rows=tuple(PlanAddonRow.from_row(r) for r in doc.get('plan_addon_rows') or []),
            surgical_tier_rows=tuple(SurgicalTierRow.from_row(r) for r in doc.get('surgical_tier_rows') or []),
            surgical_extras=SurgicalExtras.from_row(doc.get('surgical_extras')),
            onboarding_rows=tuple(OnboardingRow.from_row(r) for r in doc.get('onboarding_rows') or []),
        )

    def to_document(self) -> dict:
        return {
            'name': self.name,
            'capital_expenditure': self.capital_expenditure,
            'pricing_plans': [asdict(r) for r in self.pricing_plans],
            'add_on_features': [asdict(r) for r in self.add_on_features],
            'operating_costs': [asdict(r) for r in self.operating_costs],
            'marketing_costs': [asdict(r) for r in self.marketing_costs],
            'tech_support_revenue': [asdict(r) for r in self.tech_support_rows],
            'plan_addon_rows': [asdict(r) for r in self.plan_addon_rows],
            'surgical_tier_rows': [asdict(r) for r in self.surgical_tier_rows],
            'surgical_extras': asdict(self.surgical_extras),
            'onboarding_rows': [asdict(r) for r in self.onboarding_rows],
        }
