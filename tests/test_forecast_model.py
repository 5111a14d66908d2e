"""
Tests: plan price resolution, revenue and cost composition, forecast summary.

Run with:
    pytest tests/test_forecast_model.py -v
"""

import pytest

from forecast_model import (
    ForecastModel,
    calculate_metrics,
    calculate_scenario_metrics,
    calculations_frame,
    compute_costs,
    compute_revenue,
    evaluate_break_even,
    onboarding_summary,
    resolve_plan_price,
    revenue_breakdown,
)
from forecast_params import ForecastParams
from records import (
    COST_ONLY,
    REVENUE,
    AddOnFeature,
    BreakEven,
    ForecastScenario,
    MarketingCost,
    OnboardingRow,
    OperatingCost,
    PlanAddonRow,
    PricingPlan,
    SurgicalExtras,
    SurgicalTierRow,
    TechSupportRow,
)


class TestResolvePlanPrice:
    def test_label_contained_in_plan_name(self):
        plans = [PricingPlan(id="b", name="Basic Plan", price=99, customers=0)]
        assert resolve_plan_price("Basic", plans) == 99

    def test_unknown_label_is_zero(self):
        plans = [PricingPlan(id="b", name="Basic Plan", price=99, customers=0)]
        assert resolve_plan_price("Unknown", plans) == 0

    def test_plan_name_contained_in_label(self):
        plans = [PricingPlan(id="e", name="Enterprise", price=449, customers=0)]
        assert resolve_plan_price("  Enterprise Annual ", plans) == 449

    def test_case_insensitive_and_first_match_wins(self):
        plans = [
            PricingPlan(id="p", name="Pro", price=150, customers=0),
            PricingPlan(id="pp", name="Pro Plus", price=250, customers=0),
        ]
        assert resolve_plan_price("PRO PLUS", plans) == 150

    def test_no_plans(self):
        assert resolve_plan_price("Basic", []) == 0
        assert resolve_plan_price("Basic", None) == 0


class TestRevenueComposer:
    def test_cost_only_addon_excluded_from_revenue(self):
        storage = AddOnFeature(id="s", name="Extra Storage (5GB pack)", price=20, customers=10,
                               is_revenue=True, operating_cost_per_customer=5)
        assert compute_revenue(add_ons=[storage]) == 0
        assert compute_costs(add_ons=[storage]).operating == 50

    def test_non_revenue_flag_excluded(self):
        feature = AddOnFeature(id="x", name="Internal", price=20, customers=10, is_revenue=False)
        assert compute_revenue(add_ons=[feature]) == 0

    def test_explicit_category_overrides_name_list(self):
        storage = AddOnFeature(id="s", name="Extra Storage (5GB pack)", price=20, customers=10,
                               category=REVENUE)
        internal = AddOnFeature(id="i", name="SMS", price=5, customers=10, category=COST_ONLY)
        assert compute_revenue(add_ons=[storage, internal]) == 200

    def test_custom_cost_only_names(self):
        feature = AddOnFeature(id="x", name="Backup Pack", price=20, customers=10)
        params = ForecastParams().use_cost_only_names(["Backup Pack"])
        assert compute_revenue(add_ons=[feature], params=params) == 0

    def test_every_source_is_summed(self):
        revenue = compute_revenue(
            plans=[PricingPlan(id="p", name="Basic", price=100, customers=3)],
            add_ons=[AddOnFeature(id="a", name="SMS", price=10, customers=2)],
            tech_support_rows=[TechSupportRow(plan_id="p", tier="Priority", tier_price=39,
                                              customers=2, seat_addon_price=10, extra_seats=3)],
            plan_addon_rows=[PlanAddonRow(plan_id="p", addon_type="additional_staff", price=35, quantity=4)],
            surgical_rows=[SurgicalTierRow(plan_id="p", base_price=129, tier_key="11-25",
                                           addon_price=150, customers=2)],
            surgical_extras=SurgicalExtras(75, 2, 25, 4),
            onboarding_rows=[
                OnboardingRow(plan_id="p", upgrade_type="session", price=299, customers=1),
                OnboardingRow(plan_id="p", upgrade_type="bundle", price=799, customers=1),
            ],
        )
        # 300 + 20 + (78 + 30) + 140 + 558 + (150 + 100) + 1098
        assert revenue == pytest.approx(2474)

    def test_additive_over_disjoint_collections(self, plans, add_ons):
        support_a = [TechSupportRow(plan_id="p1", tier="Priority", tier_price=39, customers=5)]
        support_b = [TechSupportRow(plan_id="p2", tier="Urgent", tier_price=199, customers=2,
                                    seat_addon_price=25, extra_seats=1)]
        surgical_a = [SurgicalTierRow(plan_id="p1", base_price=129, tier_key="0-10", addon_price=0, customers=4)]
        surgical_b = [SurgicalTierRow(plan_id="p2", base_price=219, tier_key="100+", addon_price=900, customers=1)]
        extras = SurgicalExtras(75, 1, 25, 2)

        part_a = compute_revenue(plans[:1], add_ons[:1], support_a, [], surgical_a, extras, [])
        part_b = compute_revenue(plans[1:], add_ons[1:], support_b, [], surgical_b, None, [])
        union = compute_revenue(plans, add_ons, support_a + support_b, [], surgical_a + surgical_b, extras, [])

        assert union == pytest.approx(part_a + part_b)

    def test_breakdown_sums_to_total(self, plans, add_ons):
        breakdown = revenue_breakdown(plans, add_ons, surgical_extras=SurgicalExtras(75, 2, 0, 0))
        assert breakdown['plans'] == 3000
        assert breakdown['add_ons'] == 130
        assert breakdown['surgical'] == 150
        assert sum(breakdown.values()) == pytest.approx(compute_revenue(
            plans, add_ons, surgical_extras=SurgicalExtras(75, 2, 0, 0)))

    def test_missing_collections_contribute_zero(self):
        assert compute_revenue() == 0
        assert compute_revenue(None, None, None, None, None, None, None) == 0


class TestCostComposer:
    def test_fixed_and_unit_operating_costs(self):
        costs = [
            OperatingCost(name="Rent", amount=500, is_fixed=True),
            OperatingCost(name="Seats", amount=999, is_fixed=False, unit_price=20, units=7),
        ]
        assert compute_costs(operating_costs=costs).operating == 640

    def test_all_add_ons_contribute_operating_cost(self, add_ons):
        # 5*7 + 2*3 + 1*4
        assert compute_costs(add_ons=add_ons).operating == 45

    def test_marketing_uses_resolved_plan_price(self, plans, basic_marketing):
        assert compute_costs(marketing_costs=basic_marketing, plans=plans).marketing == pytest.approx(100)

    def test_unmatched_marketing_plan_contributes_zero(self, plans):
        cost = MarketingCost(name="Referral", rate=10, price_plan="Platinum", customers=10)
        assert compute_costs(marketing_costs=[cost], plans=plans).marketing == 0

    def test_plan_id_preferred_over_label(self, plans):
        cost = MarketingCost(name="Referral", rate=10, price_plan="Basic", customers=1, plan_id="p2")
        assert compute_costs(marketing_costs=[cost], plans=plans).marketing == pytest.approx(20)

    def test_unknown_plan_id_falls_back_to_label(self, plans):
        cost = MarketingCost(name="Referral", rate=10, price_plan="Basic", customers=1, plan_id="gone")
        assert compute_costs(marketing_costs=[cost], plans=plans).marketing == pytest.approx(10)

    def test_fixed_marketing_cost(self, plans):
        cost = MarketingCost(name="Trade show", cost_type="fixed", fixed_amount=750)
        assert compute_costs(marketing_costs=[cost], plans=plans).marketing == 750


class TestCalculateMetrics:
    def test_end_to_end_single_plan(self, fixed_rent, basic_marketing):
        plans = [PricingPlan(id="basic", name="Basic", price=100, customers=10)]
        calc = calculate_metrics(4000, plans, [], fixed_rent, basic_marketing)

        assert calc.monthly_revenue == 1000
        assert calc.monthly_marketing_expenses == pytest.approx(100)
        assert calc.monthly_operating_expenses == 500
        assert calc.total_monthly_expenses == pytest.approx(600)
        assert calc.monthly_profit == pytest.approx(400)
        assert calc.break_even_months == pytest.approx(10)
        assert calc.annual_revenue == 12000
        assert calc.annual_profit == pytest.approx(12000 - 6000 - 1200 - 4000)

    def test_zero_plan_invariant(self):
        calc = calculate_metrics(2500, [], [], [], [], [], [], [], SurgicalExtras(), [])
        values = calc.to_dict()

        assert values.pop('annualProfit') == -2500
        assert all(v == 0 for v in values.values())

    def test_break_even_sentinel_when_unprofitable(self):
        plans = [PricingPlan(id="p", name="Basic", price=100, customers=1)]
        costs = [OperatingCost(name="Rent", amount=150, is_fixed=True)]
        calc = calculate_metrics(1000, plans, [], costs, [])

        assert calc.monthly_profit == -50
        assert calc.break_even_months == 0

    def test_break_even_sentinel_when_profit_is_zero(self):
        plans = [PricingPlan(id="p", name="Basic", price=100, customers=1)]
        costs = [OperatingCost(name="Rent", amount=100, is_fixed=True)]
        calc = calculate_metrics(1000, plans, [], costs, [])

        assert calc.monthly_profit == 0
        assert calc.break_even_months == 0

    def test_invariants_hold(self, plans, add_ons, basic_marketing, fixed_rent):
        calc = calculate_metrics(10000, plans, add_ons, fixed_rent, basic_marketing)

        assert calc.total_monthly_expenses == pytest.approx(
            calc.monthly_operating_expenses + calc.monthly_marketing_expenses)
        assert calc.monthly_profit == pytest.approx(calc.monthly_revenue - calc.total_monthly_expenses)
        assert calc.annual_operating_expenses == pytest.approx(calc.monthly_operating_expenses * 12)
        assert calc.annual_marketing_expenses == pytest.approx(calc.monthly_marketing_expenses * 12)

    def test_repeated_calls_are_identical(self, plans, add_ons, basic_marketing, fixed_rent):
        first = calculate_metrics(10000, plans, add_ons, fixed_rent, basic_marketing)
        second = calculate_metrics(10000, plans, add_ons, fixed_rent, basic_marketing)
        assert first == second

    def test_inputs_are_not_mutated(self, plans, add_ons):
        before = (list(plans), list(add_ons))
        calculate_metrics(0, plans, add_ons, [], [])
        assert (plans, add_ons) == before

    def test_scenario_context(self, fixed_rent, basic_marketing):
        scenario = ForecastScenario(
            id="s1",
            capital_expenditure=4000,
            pricing_plans=(PricingPlan(id="basic", name="Basic", price=100, customers=10),),
            operating_costs=tuple(fixed_rent),
            marketing_costs=tuple(basic_marketing),
        )
        assert calculate_scenario_metrics(scenario).break_even_months == pytest.approx(10)

    def test_model_methods_match_functions(self, plans, add_ons):
        model = ForecastModel(plans=plans, add_ons=add_ons)
        assert model.calculate_revenue() == compute_revenue(plans, add_ons)
        assert model.run_forecast(0).monthly_operating_expenses == 45


class TestBreakEven:
    def test_reached(self):
        result = evaluate_break_even(4000, 400)
        assert result.status == BreakEven.REACHED
        assert result.months == pytest.approx(10)

    def test_unprofitable_maps_to_zero(self):
        result = evaluate_break_even(4000, -10)
        assert result.status == BreakEven.UNPROFITABLE
        assert result.as_months() == 0

    def test_no_capital_to_recover(self):
        result = evaluate_break_even(0, 250)
        assert result.status == BreakEven.ALREADY_BROKEN
        assert result.as_months() == 0


class TestOnboardingSummary:
    def test_delivery_defaults_and_overrides(self):
        rows = [
            OnboardingRow(plan_id="p1", upgrade_type="session", price=299, customers=2),
            OnboardingRow(plan_id="p2", upgrade_type="session", price=399, customers=1, delivery_cost=100),
            OnboardingRow(plan_id="p1", upgrade_type="bundle", price=799, customers=1),
        ]
        summary = onboarding_summary(rows)

        assert summary['session']['revenue'] == 997
        assert summary['session']['delivery_cost'] == 350
        assert summary['session']['profit'] == 647
        assert summary['bundle']['delivery_cost'] == 375
        assert summary['total']['profit'] == 1071
        assert summary['total']['margin_pct'] == pytest.approx(1071 / 1796 * 100)

    def test_custom_delivery_defaults(self):
        rows = [OnboardingRow(plan_id="p1", upgrade_type="bundle", price=800, customers=1)]
        params = ForecastParams().use_delivery_costs(bundle=400)
        assert onboarding_summary(rows, params)['bundle']['profit'] == 400

    def test_negative_delivery_default_rejected(self):
        with pytest.raises(ValueError):
            ForecastParams().use_delivery_costs(session=-1)

    def test_empty_rows_have_zero_margin(self):
        summary = onboarding_summary([])
        assert summary['total'] == {'revenue': 0, 'delivery_cost': 0, 'profit': 0, 'margin_pct': 0}


class TestCalculationsFrame:
    def test_rows_and_columns(self, fixed_rent, basic_marketing):
        plans = [PricingPlan(id="basic", name="Basic", price=100, customers=10)]
        frame = calculations_frame(calculate_metrics(4000, plans, [], fixed_rent, basic_marketing))

        assert list(frame.columns) == ['Metric', 'Monthly', 'Annual']
        profit = frame.set_index('Metric').loc['Profit']
        assert profit['Monthly'] == pytest.approx(400)
        assert profit['Annual'] == pytest.approx(800)
