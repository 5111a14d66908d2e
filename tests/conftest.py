import pytest

from records import AddOnFeature, MarketingCost, OperatingCost, PricingPlan


@pytest.fixture
def plans():
    return [
        PricingPlan(id="p1", name="Basic", price=100, customers=20, display_order=1),
        PricingPlan(id="p2", name="Professional", price=200, customers=5, display_order=2),
    ]


@pytest.fixture
def add_ons():
    return [
        AddOnFeature(id="f1", name="SMS Reminders", price=10, customers=7,
                     is_revenue=True, operating_cost_per_customer=5),
        AddOnFeature(id="f2", name="Patient Portal", price=20, customers=3,
                     is_revenue=True, operating_cost_per_customer=2),
        AddOnFeature(id="f3", name="Extra Storage (5GB pack)", price=10, customers=4,
                     is_revenue=True, operating_cost_per_customer=1),
    ]


@pytest.fixture
def basic_marketing():
    return [MarketingCost(name="Affiliates", rate=10, price_plan="Basic", customers=10)]


@pytest.fixture
def fixed_rent():
    return [OperatingCost(name="Rent", amount=500, is_fixed=True)]
