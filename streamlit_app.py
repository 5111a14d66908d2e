import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import plotly.express as px
from dataclasses import replace
from datetime import date

from forecast_params import ForecastParams
from forecast_model import (
    calculate_scenario_metrics,
    calculations_frame,
    evaluate_break_even,
    onboarding_summary,
    revenue_breakdown,
)
from bundle_simulation import (
    compare_calculations,
    grid_search_plan_prices,
    plan_price_changes,
    simulate_scenario,
)
from commission import (
    affiliate_for_type,
    commission_frame,
    evaluate_commission_scenarios,
    total_commission_rate,
)
from records import CommissionScenario, SavedSimulation, SurgicalExtras
from record_store import JsonRecordStore, RecordStoreError
from scenario_defaults import (
    build_default_onboarding_rows,
    build_default_plan_addon_rows,
    build_default_surgical_tier_rows,
    build_default_tech_support_rows,
    default_surgical_extras,
)
from log_config import setup_logging

setup_logging()

# Set page configuration
st.set_page_config(
    page_title="Revenue Forecast Calculator",
    page_icon="💲",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.title("Subscription Revenue Forecast")
st.markdown("""
Monthly and annual revenue, cost, profit and break-even for a pricing scenario.
Pick a scenario in the sidebar, then use the tabs to simulate bundles and model affiliate commissions.
""")

tab_forecast, tab_simulator, tab_commission, tab_onboarding = st.tabs([
    "📊 Forecast",
    "📦 Bundle Simulator",
    "🤝 Affiliate Commissions",
    "🎓 Onboarding Services",
])

params = ForecastParams()

# Sidebar: scenario selection
st.sidebar.header("Scenario")
store_path = st.sidebar.text_input("Record store", "sample_data/scenarios.json",
                                   help="JSON file holding the scenario rows.")
store = JsonRecordStore(store_path)

try:
    available = store.list_scenarios()
except RecordStoreError as exc:
    st.error(str(exc))
    st.stop()

if not available:
    st.warning(f"No scenarios found in {store_path}")
    st.stop()

scenario_labels = {scenario_id: name for scenario_id, name in available}
scenario_id = st.sidebar.selectbox("Forecast scenario", list(scenario_labels),
                                   format_func=lambda sid: scenario_labels[sid])

try:
    scenario = store.load_scenario(scenario_id)
except RecordStoreError as exc:
    st.error(str(exc))
    st.stop()

capital_expenditure = st.sidebar.number_input(
    "Capital Expenditure ($)", 0.0, 10_000_000.0, float(scenario.capital_expenditure), 1000.0,
    help="One-time investment recovered by monthly profit (drives break-even)."
)

seed_defaults = st.sidebar.checkbox(
    "Seed empty tables with default rows", value=True,
    help="Scenarios without support, seat add-on, surgical or onboarding rows get the standard starting rows."
)

if seed_defaults:
    plans = scenario.pricing_plans
    scenario = replace(
        scenario,
        tech_support_rows=scenario.tech_support_rows or tuple(build_default_tech_support_rows(plans, params)),
        plan_addon_rows=scenario.plan_addon_rows or tuple(build_default_plan_addon_rows(plans, params)),
        surgical_tier_rows=scenario.surgical_tier_rows or tuple(build_default_surgical_tier_rows(plans, params)),
        onboarding_rows=scenario.onboarding_rows or tuple(build_default_onboarding_rows(plans, params)),
    )
    if scenario.surgical_extras == SurgicalExtras():
        scenario = replace(scenario, surgical_extras=default_surgical_extras(params))

scenario = replace(scenario, capital_expenditure=capital_expenditure)
calculations = calculate_scenario_metrics(scenario, params)

with tab_forecast:
    st.header(scenario.name or scenario.id)

    metrics_col1, metrics_col2, metrics_col3, metrics_col4 = st.columns(4)
    with metrics_col1:
        st.metric("Monthly Revenue", f"${calculations.monthly_revenue:,.2f}")
    with metrics_col2:
        st.metric("Monthly Expenses", f"${calculations.total_monthly_expenses:,.2f}")
    with metrics_col3:
        st.metric("Monthly Profit", f"${calculations.monthly_profit:,.2f}")
    with metrics_col4:
        break_even = evaluate_break_even(capital_expenditure, calculations.monthly_profit)
        if break_even.status == break_even.UNPROFITABLE:
            st.metric("Break-even Period", "Not reached")
        else:
            st.metric("Break-even Period", f"{break_even.months:.1f} months")

    st.subheader("Monthly vs Annual")
    st.dataframe(calculations_frame(calculations).style.format({'Monthly': '${:,.2f}', 'Annual': '${:,.2f}'}))

    breakdown = revenue_breakdown(
        scenario.pricing_plans, scenario.add_on_features, scenario.tech_support_rows,
        scenario.plan_addon_rows, scenario.surgical_tier_rows, scenario.surgical_extras,
        scenario.onboarding_rows, params=params,
    )

    chart_col1, chart_col2 = st.columns(2)
    with chart_col1:
        st.subheader("Revenue by Source")
        breakdown_df = pd.DataFrame({'source': list(breakdown), 'revenue': list(breakdown.values())})
        fig = px.pie(breakdown_df[breakdown_df['revenue'] > 0], names='source', values='revenue')
        st.plotly_chart(fig, use_container_width=True)

    with chart_col2:
        st.subheader("Monthly Cash Flow")
        fig = go.Figure(go.Bar(
            x=['Revenue', 'Operating', 'Marketing', 'Profit'],
            y=[calculations.monthly_revenue, calculations.monthly_operating_expenses,
               calculations.monthly_marketing_expenses, calculations.monthly_profit],
            marker_color=['#22c55e', '#ef4444', '#f97316', '#3b82f6'],
        ))
        fig.update_layout(yaxis_title="USD / month")
        st.plotly_chart(fig, use_container_width=True)

with tab_simulator:
    st.header("Bundle Simulator")
    st.markdown("Move add-on features into plans and re-price them to see the effect on profit.")

    feature_names = {f.id: f.name for f in scenario.add_on_features}
    bundle_config = {}
    adjusted_prices = {}
    adjusted_customers = {}

    for plan in scenario.pricing_plans:
        with st.expander(f"{plan.name} (${plan.price:,.2f} × {plan.customers:,.0f})"):
            bundle_config[plan.id] = st.multiselect(
                "Bundled features", list(feature_names),
                format_func=lambda fid: feature_names[fid], key=f"bundle_{plan.id}")
            price_col, customers_col = st.columns(2)
            with price_col:
                adjusted_prices[plan.id] = st.number_input(
                    "Adjusted price ($)", 0.0, 100_000.0, float(plan.price), 1.0, key=f"price_{plan.id}")
            with customers_col:
                adjusted_customers[plan.id] = st.number_input(
                    "Adjusted customers", 0.0, 1_000_000.0, float(plan.customers), 1.0, key=f"customers_{plan.id}")

    # scenario id -> (last run, the plan prices it used)
    simulations = st.session_state.setdefault('simulations', {})

    name_col, run_col, save_col = st.columns([3, 1, 1])
    with name_col:
        simulation_name = st.text_input("Simulation name", "Bundle Simulation 1")
    with run_col:
        if st.button("Run Simulation"):
            with st.spinner("Running bundle simulation..."):
                simulations[scenario.id] = (
                    simulate_scenario(scenario, bundle_config, adjusted_prices, adjusted_customers,
                                      name=simulation_name, params=params),
                    dict(adjusted_prices),
                )
    with save_col:
        if st.button("Save"):
            saved = SavedSimulation(
                name=simulation_name,
                bundle_config={pid: list(fids) for pid, fids in bundle_config.items() if fids},
                adjusted_plan_prices=dict(adjusted_prices),
                adjusted_plan_customers=dict(adjusted_customers),
                description=f"Bundle simulation created on {date.today():%Y-%m-%d}",
            )
            try:
                store.save_simulation(scenario.id, saved)
                st.success(f"Saved simulation '{saved.name}'")
            except RecordStoreError as exc:
                st.error(str(exc))

    try:
        saved_simulations = store.list_simulations(scenario.id)
    except RecordStoreError as exc:
        st.error(str(exc))
        saved_simulations = []

    if saved_simulations:
        saved_labels = {index: s.name for index, s in enumerate(saved_simulations)}
        chosen = st.selectbox("Saved simulations", list(saved_labels), format_func=saved_labels.get)
        if st.button("Re-run saved simulation"):
            saved = saved_simulations[chosen]
            simulations[scenario.id] = (
                simulate_scenario(scenario, saved.bundle_config, saved.adjusted_plan_prices,
                                  saved.adjusted_plan_customers, name=saved.name, params=params),
                dict(saved.adjusted_plan_prices),
            )

    if scenario.id in simulations:
        simulation, simulated_prices = simulations[scenario.id]
        st.subheader(f"Simulation Results: {simulation.name}")
        st.dataframe(compare_calculations(calculations, simulation.calculations))
        st.dataframe(plan_price_changes(scenario.pricing_plans, simulated_prices))

        remaining = ", ".join(f.name for f in simulation.remaining_add_ons) or "none"
        st.write(f"Standalone add-ons: **{remaining}**")

    st.subheader("Price Grid Search")
    grid_points = st.slider("Grid points per plan", 2, 7, 3)
    grid = None
    if st.button("Run Grid Search"):
        try:
            with st.spinner("Searching plan prices..."):
                grid = grid_search_plan_prices(
                    scenario.capital_expenditure, scenario.pricing_plans, scenario.add_on_features,
                    scenario.operating_costs, scenario.marketing_costs,
                    bundle_config=bundle_config, adjusted_customers=adjusted_customers,
                    grid_points=grid_points, params=params,
                    tech_support_rows=scenario.tech_support_rows,
                    plan_addon_rows=scenario.plan_addon_rows,
                    surgical_rows=scenario.surgical_tier_rows,
                    surgical_extras=scenario.surgical_extras,
                    onboarding_rows=scenario.onboarding_rows,
                )
        except ValueError as exc:
            st.error(str(exc))

    if grid is not None:
        best = grid['best']
        st.metric("Best Monthly Profit", f"${best['monthly_profit']:,.2f}")
        st.json(best['adjusted_prices'])
        results_df = pd.DataFrame(grid['all_results'])
        fig = px.scatter(results_df, x='monthly_revenue', y='monthly_profit',
                         title="Grid search: revenue vs profit")
        st.plotly_chart(fig, use_container_width=True)

with tab_commission:
    st.header("Affiliate Commission Calculator")

    num_scenarios = st.number_input("Scenarios", 1, 10, 1, 1)
    commission_scenarios = []

    for index in range(int(num_scenarios)):
        with st.expander(f"Scenario {index + 1}", expanded=index == 0):
            name = st.text_input("Name", f"Scenario {index + 1}", key=f"cname_{index}")
            affiliate_types = st.multiselect(
                "Affiliates receiving commissions",
                list(params.affiliate_types),
                default=[params.default_affiliate_type],
                format_func=lambda t: f"{t} ({params.affiliate_types[t]}% commission)",
                key=f"caff_{index}")

            selected_plans = {
                plan.id: st.number_input(f"{plan.name} quantity", 0, 100_000, 0, 1, key=f"cplan_{index}_{plan.id}")
                for plan in scenario.pricing_plans
            }
            selected_add_ons = {
                add_on.id: st.number_input(f"{add_on.name} quantity", 0, 100_000, 0, 1, key=f"caddon_{index}_{add_on.id}")
                for add_on in scenario.add_on_features
            }

            commission_scenario = CommissionScenario(
                name=name,
                affiliates=tuple(affiliate_for_type(t, params) for t in affiliate_types),
                selected_plans=selected_plans,
                selected_add_ons=selected_add_ons,
            )
            st.caption(f"Total commission rate: {total_commission_rate(commission_scenario):.1f}%")
            commission_scenarios.append(commission_scenario)

    summary = evaluate_commission_scenarios(
        commission_scenarios, scenario.pricing_plans, scenario.add_on_features, params)

    comm_col1, comm_col2, comm_col3, comm_col4 = st.columns(4)
    with comm_col1:
        st.metric("Total Commission", f"${summary.total_commission:,.2f}")
    with comm_col2:
        st.metric("Gross Revenue", f"${summary.total_revenue:,.2f}")
    with comm_col3:
        st.metric("Net Revenue", f"${summary.net_revenue:,.2f}")
    with comm_col4:
        st.metric("Profit Margin", f"{summary.margin_pct:.1f}%")

    st.dataframe(commission_frame(summary))
    st.write(f"Annual commission: **${summary.annual_commission:,.2f}** on "
             f"**${summary.annual_revenue:,.2f}** gross revenue")

with tab_onboarding:
    st.header("Onboarding Services")

    delivery_col1, delivery_col2 = st.columns(2)
    with delivery_col1:
        session_cost = st.number_input("Contractor pay per session ($)", 0.0, 10_000.0,
                                       float(params.session_delivery_cost), 5.0)
    with delivery_col2:
        bundle_cost = st.number_input("Contractor pay per bundle ($)", 0.0, 10_000.0,
                                      float(params.bundle_delivery_cost), 5.0)
    params.use_delivery_costs(session_cost, bundle_cost)

    summary_by_type = onboarding_summary(scenario.onboarding_rows, params)
    st.dataframe(pd.DataFrame(summary_by_type).T.style.format({
        'revenue': '${:,.2f}', 'delivery_cost': '${:,.2f}', 'profit': '${:,.2f}', 'margin_pct': '{:.1f}%',
    }))
