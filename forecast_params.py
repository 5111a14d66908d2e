# Forecast Parameters
class ForecastParams:
    def __init__(self):
        # Cost-only add-ons: no revenue, only cost per customer (storage and image scan packs)
        self.cost_only_addon_names = ('Extra Storage (5GB pack)', 'Image Scans (5k pack)')

        # Onboarding contractor pay (delivery cost per unit)
        self.session_delivery_cost = 125  # Upgrade 1: onboarding session
        self.bundle_delivery_cost = 375  # Upgrade 2: onboarding bundle

        # Annualisation
        self.months_per_year = 12

        # Price grid search
        self.max_grid_combinations = 20_000  # Upper bound on grid_points ** plan count

        # Affiliate commission roles (rate in percent)
        self.affiliate_types = {
            'Field Agent': 8.0,
            'Regional Manager': 4.0,
            'Country Manager': 4.0,
            'Affiliate': 10.0,
        }
        self.default_affiliate_type = 'Field Agent'

        # Surgical Services Pack volume tiers (monthly add-on price); 100+ is negotiated
        self.surgical_tiers = (
            ('0-10', 0),
            ('11-25', 150),
            ('26-50', 300),
            ('51-100', 600),
            ('100+', 0),
        )
        self.surgical_base_prices = {'basic': 129, 'professional': 219, 'enterprise': 349}
        self.surgical_additional_provider_price = 75
        self.automation_price_per_1000 = 25

        # Sample plans used when a scenario has none yet
        self.sample_plans = (
            ('sample-basic', 'Basic'),
            ('sample-professional', 'Professional'),
            ('sample-enterprise', 'Enterprise'),
        )
        self.default_customers = 10  # Starting customer count for seeded rows

        # Tech support tier pricing per plan: (tier_price, seat_addon_price)
        self.tech_support_prices = {
            'basic': {'Priority': (39, 10), 'Urgent': (99, 25)},
            'professional': {'Priority': (79, 10), 'Urgent': (199, 25)},
            'enterprise': {'Priority': (149, 8), 'Urgent': (349, 20)},
        }

        # Per-plan seat add-ons
        self.additional_staff_price = 35
        self.additional_provider_price = 75  # Not offered on Basic

        # Paid onboarding upgrade prices per plan
        self.onboarding_session_prices = {'basic': 299, 'professional': 399, 'enterprise': 499}
        self.onboarding_bundle_prices = {'basic': 799, 'professional': 1049, 'enterprise': 1299}

    def delivery_cost_for(self, upgrade_type):
        """Default delivery cost for an onboarding upgrade type"""
        if upgrade_type == 'bundle':
            return self.bundle_delivery_cost
        return self.session_delivery_cost

    def affiliate_rate_for(self, affiliate_type):
        """Commission rate for a known affiliate role, None when the role is unknown"""
        return self.affiliate_types.get(affiliate_type)

    def use_delivery_costs(self, session=None, bundle=None):
        """
        Override the default onboarding delivery costs

        Parameters:
        -----------
        session : float
            Contractor pay per onboarding session
        bundle : float
            Contractor pay per onboarding bundle
        """
        for label, value in (('session', session), ('bundle', bundle)):
            if value is not None and value < 0:
                raise ValueError(f"Delivery cost for {label} cannot be negative: {value}")

        if session is not None:
            self.session_delivery_cost = session
        if bundle is not None:
            self.bundle_delivery_cost = bundle

        return self

    def use_cost_only_names(self, names):
        """
        Replace the set of add-on names treated as cost-only
        """
        self.cost_only_addon_names = tuple(names)

        return self
