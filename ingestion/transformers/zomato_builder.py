"""
Zomato consumer-behaviour builder.

Turns a normalized order history into the `consumer_behavior_profile`
sellable record: transaction summary, brand and category intelligence,
temporal, price, repeat, basket and competitor analytics, and a coarse
geo block. Order-derived sections are None when the proof carries only
declared totals.
"""

from collections import Counter
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
from ingestion.transformers.builder import SellableRecordBuilder, pct, round1
from ingestion.transformers import anonymizer
from schemas.contribution import BuiltRecord, CohortAssignment
from schemas.normalized import ZomatoNormalized, ZomatoOrder
import math
import re

LOCAL_RESTAURANT = "Local Restaurant"
UNKNOWN_CUISINE = "Unknown"
DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
BASKET_SAMPLE_SIZE = 15

# ============================================================================
# TAXONOMIES
# ============================================================================

CUISINE_PATTERNS = [
    (re.compile(r"biryani|pulao|fried rice", re.IGNORECASE), "Biryani & Rice"),
    (re.compile(r"momo|noodle|manchurian|chow|shanghai|schezwan|szechuan|darsaan", re.IGNORECASE), "Chinese"),
    (re.compile(r"dosa|idli|idly|vada|uttapam|upma|sambar", re.IGNORECASE), "South Indian"),
    (re.compile(r"naan|roti|paratha|paneer|butter chicken|dal makhani|tandoori|tikka|chaap|kebab|korma|masala", re.IGNORECASE), "North Indian"),
    (re.compile(r"pizza|pasta|lasagna|garlic bread", re.IGNORECASE), "Pizza & Italian"),
    (re.compile(r"burger|fries|nuggets", re.IGNORECASE), "Burgers"),
    (re.compile(r"fried chicken|chicken leg|chicken breast|popcorn chicken|chicken bucket", re.IGNORECASE), "Fried Chicken"),
    (re.compile(r"shawarma|wrap|roll|kathi", re.IGNORECASE), "Shawarma & Wraps"),
    (re.compile(r"sandwich|club|\bsub\b", re.IGNORECASE), "Sandwiches"),
    (re.compile(r"ice cream|brownie|cake|gulab jamun|rasgulla", re.IGNORECASE), "Desserts"),
    (re.compile(r"coffee|tea|shake|smoothie|juice|lassi|mojito|thumbs up|coca cola|pepsi", re.IGNORECASE), "Beverages"),
]

BRAND_PATTERNS = [
    (re.compile(r"domino", re.IGNORECASE), "Dominos"),
    (re.compile(r"pizza\s*hut", re.IGNORECASE), "Pizza Hut"),
    (re.compile(r"mcdonald|mcd\b", re.IGNORECASE), "McDonalds"),
    (re.compile(r"kfc", re.IGNORECASE), "KFC"),
    (re.compile(r"burger\s*king", re.IGNORECASE), "Burger King"),
    (re.compile(r"subway", re.IGNORECASE), "Subway"),
    (re.compile(r"starbucks", re.IGNORECASE), "Starbucks"),
    (re.compile(r"taco\s*bell", re.IGNORECASE), "Taco Bell"),
    (re.compile(r"dunkin", re.IGNORECASE), "Dunkin"),
    (re.compile(r"cafe\s*coffee\s*day|\bccd\b", re.IGNORECASE), "Cafe Coffee Day"),
    (re.compile(r"chaayos", re.IGNORECASE), "Chaayos"),
    (re.compile(r"chai\s*point", re.IGNORECASE), "Chai Point"),
    (re.compile(r"haldiram", re.IGNORECASE), "Haldirams"),
    (re.compile(r"barbeque\s*nation|bbq\s*nation", re.IGNORECASE), "Barbeque Nation"),
    (re.compile(r"behrouz", re.IGNORECASE), "Behrouz Biryani"),
    (re.compile(r"biryani\s*blues", re.IGNORECASE), "Biryani Blues"),
    (re.compile(r"paradise", re.IGNORECASE), "Paradise Biryani"),
    (re.compile(r"aminia", re.IGNORECASE), "Aminia"),
    (re.compile(r"arsalan", re.IGNORECASE), "Haji Arsalan"),
    (re.compile(r"faasos", re.IGNORECASE), "Faasos"),
    (re.compile(r"box8", re.IGNORECASE), "Box8"),
    (re.compile(r"oven\s*story", re.IGNORECASE), "Ovenstory"),
    (re.compile(r"wow\s*momo", re.IGNORECASE), "Wow Momo"),
    (re.compile(r"mojo\s*pizza", re.IGNORECASE), "Mojo Pizza"),
    (re.compile(r"theobroma", re.IGNORECASE), "Theobroma"),
    (re.compile(r"naturals", re.IGNORECASE), "Naturals Ice Cream"),
    (re.compile(r"baskin", re.IGNORECASE), "Baskin Robbins"),
    (re.compile(r"chowman", re.IGNORECASE), "Chowman"),
    (re.compile(r"peter\s*cat", re.IGNORECASE), "Peter Cat"),
    (re.compile(r"6\s*ballygunge\s*place", re.IGNORECASE), "6 Ballygunge Place"),
    (re.compile(r"monginis", re.IGNORECASE), "Monginis"),
    (re.compile(r"flurys", re.IGNORECASE), "Flurys"),
]

FOOD_CATEGORIES = {
    "north indian": {"l1": "Regional Cuisine", "l2": "North Indian"},
    "south indian": {"l1": "Regional Cuisine", "l2": "South Indian"},
    "biryani": {"l1": "Regional Cuisine", "l2": "Biryani"},
    "chinese": {"l1": "Asian Cuisine", "l2": "Chinese"},
    "italian": {"l1": "Western Cuisine", "l2": "Italian"},
    "pizza": {"l1": "Fast Food", "l2": "Pizza"},
    "burger": {"l1": "Fast Food", "l2": "Burgers"},
    "fried chicken": {"l1": "Fast Food", "l2": "Fried Chicken"},
    "shawarma": {"l1": "Fast Food", "l2": "Shawarma & Wraps"},
    "sandwich": {"l1": "Fast Food", "l2": "Sandwiches"},
    "dessert": {"l1": "Desserts & Sweets", "l2": "Desserts"},
    "beverage": {"l1": "Beverages", "l2": "Drinks"},
}
DEFAULT_FOOD_CATEGORY = {"l1": "Food & Dining", "l2": "General"}

IAB_CATEGORIES = {
    "Fast Food": "IAB8-5",
    "Regional Cuisine": "IAB8-9",
    "Asian Cuisine": "IAB8-9",
    "Western Cuisine": "IAB8-9",
    "Health Food": "IAB8-12",
    "Beverages": "IAB8-4",
    "Desserts & Sweets": "IAB8-6",
    "Food & Dining": "IAB8-1",
}

GS1_CATEGORIES = {
    "Biryani & Rice": "GS1-10000043",
    "Chinese": "GS1-10000044",
    "North Indian": "GS1-10000043",
    "South Indian": "GS1-10000043",
    "Pizza & Italian": "GS1-10000045",
    "Burgers": "GS1-10000046",
    "Fried Chicken": "GS1-10000047",
    "Sandwiches": "GS1-10000048",
    "Desserts": "GS1-10000049",
    "Beverages": "GS1-10000050",
}

DISCOUNT_PATTERN = re.compile(r"offer|combo|deal|discount|value|saver|special", re.IGNORECASE)
SPICY_PATTERN = re.compile(r"spicy|hot|chilli|pepper|masala|tikka|schezwan", re.IGNORECASE)
HEALTHY_PATTERN = re.compile(r"salad|grilled|steamed|healthy|lite|diet|protein|veg", re.IGNORECASE)
COMBO_PATTERN = re.compile(r"combo|meal|thali|platter|bucket", re.IGNORECASE)
DRINK_PATTERN = re.compile(r"cola|pepsi|thumbs up|sprite|fanta|coke|juice|shake|lassi|coffee|tea|mojito", re.IGNORECASE)
SIDE_PATTERN = re.compile(r"fries|chips|salad|soup|bread|naan|roti|rice", re.IGNORECASE)
DESSERT_PATTERN = re.compile(r"ice cream|brownie|cake|gulab jamun|rasgulla|dessert|sweet", re.IGNORECASE)
BRACKETED = re.compile(r"\[.*?\]")

QUALITY_WEIGHTS = {
    "price_coverage": 0.20,
    "category_mapping": 0.15,
    "brand_matching": 0.15,
    "timestamp_coverage": 0.15,
    "data_window_span": 0.10,
    "parsing_success": 0.10,
    "summary_coverage": 0.10,
    "geo_coverage": 0.05,
}


def infer_cuisine(items: Optional[str]) -> str:
    if items:
        for pattern, cuisine in CUISINE_PATTERNS:
            if pattern.search(items):
                return cuisine
    return UNKNOWN_CUISINE


def infer_brand(restaurant: Optional[str]) -> str:
    if restaurant:
        for pattern, brand in BRAND_PATTERNS:
            if pattern.search(restaurant):
                return brand
    return LOCAL_RESTAURANT


def categorize(cuisine: str) -> Dict[str, str]:
    lower = cuisine.lower()
    for key, category in FOOD_CATEGORIES.items():
        if key in lower:
            return category
    return DEFAULT_FOOD_CATEGORY


def iab_code(cuisine: str) -> str:
    return IAB_CATEGORIES.get(categorize(cuisine)["l1"], "IAB8-1")


def time_bucket(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 16:
        return "afternoon"
    if 16 <= hour < 19:
        return "evening"
    if 19 <= hour < 22:
        return "dinner"
    return "late_night"


def price_bucket(price: float) -> str:
    if price < 150:
        return "budget"
    if price < 300:
        return "mid_range"
    if price < 500:
        return "premium"
    return "luxury"


def sample_price_bucket(price: Optional[float]) -> Optional[str]:
    if price is None:
        return None
    if price > 300:
        return "high"
    if price > 150:
        return "medium"
    return "low"


class ZomatoBuilder(SellableRecordBuilder):
    dataset_id = "myrad_zomato_v1"
    record_type = "consumer_behavior_profile"
    schema_standard = "myrad_consumer_intelligence_v2"
    platform = "zomato_india"

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    @staticmethod
    def order_totals(normalized: ZomatoNormalized) -> Tuple[Optional[int], Optional[float]]:
        """
        (order_count, total_gmv). Order lines win over declared totals;
        declared totals are used when the proof has no orders.
        """
        if normalized.orders:
            prices = [o.price for o in normalized.orders if o.price is not None and o.price > 0]
            gmv = round(sum(prices), 2) if prices else normalized.declared_total_gmv
            return len(normalized.orders), gmv

        gmv = normalized.declared_total_gmv
        return (
            normalized.declared_total_orders,
            round(gmv, 2) if gmv is not None else None,
        )

    def cohort_attributes(self, normalized: ZomatoNormalized) -> Tuple[Optional[str], ...]:
        order_count, gmv = self.order_totals(normalized)
        city_cluster, _, _ = anonymizer.resolve_city(normalized.city, normalized.restaurants)
        return (
            "zomato",
            city_cluster,
            anonymizer.spend_bracket(gmv),
            anonymizer.frequency_tier(order_count, self.data_window_days),
        )

    # ------------------------------------------------------------------
    # Order analytics
    # ------------------------------------------------------------------

    def temporal_behavior(self, orders: List[ZomatoOrder]) -> Dict[str, Any]:
        day_counts = Counter({day: 0 for day in DAY_NAMES})
        buckets = Counter({b: 0 for b in ("morning", "afternoon", "evening", "dinner", "late_night")})
        months: Dict[str, int] = {}
        weekday = weekend = 0
        start_spend = end_spend = 0.0
        start_orders = end_orders = 0

        for order in orders:
            ordered = order.ordered_at
            if ordered is None:
                continue
            day_counts[DAY_NAMES[ordered.weekday()]] += 1
            if ordered.weekday() >= 5:
                weekend += 1
            else:
                weekday += 1
            buckets[time_bucket(ordered.hour)] += 1
            month_key = ordered.strftime("%Y-%m")
            months[month_key] = months.get(month_key, 0) + 1

            if ordered.day <= 10:
                start_spend += order.price or 0
                start_orders += 1
            elif ordered.day >= 20:
                end_spend += order.price or 0
                end_orders += 1

        counts = [day_counts[day] for day in DAY_NAMES]
        mean = sum(counts) / 7
        variance = sum((c - mean) ** 2 for c in counts) / 7
        consistency = int(round(max(0.0, 100 - math.sqrt(variance) * 10)))
        dated = weekday + weekend

        if start_orders > end_orders * 1.3:
            salary_sensitivity = "high"
        elif start_orders > end_orders:
            salary_sensitivity = "moderate"
        else:
            salary_sensitivity = "low"

        return {
            "day_of_week_distribution": {day: day_counts[day] for day in DAY_NAMES},
            "time_of_day_curve": dict(buckets),
            "peak_ordering_day": day_counts.most_common(1)[0][0] if dated else None,
            "peak_ordering_time": buckets.most_common(1)[0][0] if dated else None,
            "weekday_vs_weekend_ratio": round(weekend / weekday, 2) if weekday else 0,
            "weekly_consistency_score": consistency,
            "month_spend_pattern": {
                "month_start_avg_spend": int(round(start_spend / start_orders)) if start_orders else 0,
                "month_end_avg_spend": int(round(end_spend / end_orders)) if end_orders else 0,
                "salary_cycle_sensitivity": salary_sensitivity,
            },
            "late_night_eater": buckets["late_night"] > len(orders) * 0.1,
            "monthly_ordering_pattern": dict(sorted(months.items())),
        }

    def price_sensitivity(self, orders: List[ZomatoOrder]) -> Dict[str, Any]:
        prices = [o.price for o in orders if o.price is not None and o.price > 0]
        buckets = Counter({b: 0 for b in ("budget", "mid_range", "premium", "luxury")})
        for price in prices:
            buckets[price_bucket(price)] += 1
        discount_orders = sum(1 for o in orders if o.items and DISCOUNT_PATTERN.search(o.items))

        cv = 0.0
        if prices:
            mean = sum(prices) / len(prices)
            std_dev = math.sqrt(sum((p - mean) ** 2 for p in prices) / len(prices))
            cv = std_dev / mean if mean > 0 else 0.0

        if cv > 0.5:
            elasticity = "price_elastic"
        elif cv > 0.3:
            elasticity = "moderately_elastic"
        else:
            elasticity = "price_inelastic"

        ratio = None
        if prices:
            if buckets["budget"]:
                ratio = f"{(buckets['premium'] + buckets['luxury']) / buckets['budget']:.2f}"
            else:
                ratio = "premium_focused"

        priced = len(prices)
        return {
            "price_bucket_distribution": {
                "budget_pct": pct(buckets["budget"], priced),
                "mid_range_pct": pct(buckets["mid_range"], priced),
                "premium_pct": pct(buckets["premium"], priced),
                "luxury_pct": pct(buckets["luxury"], priced),
            },
            "dominant_price_segment": buckets.most_common(1)[0][0] if priced else None,
            "discount_usage_rate": pct(discount_orders, len(orders)),
            "offer_dependent": discount_orders > len(orders) * 0.3,
            "price_sensitivity_index": int(round(min(100.0, max(0.0, cv * 150)))),
            "elasticity_score": elasticity,
            "premium_vs_budget_ratio": ratio,
        }

    def repeat_patterns(self, orders: List[ZomatoOrder]) -> Dict[str, Any]:
        dishes = Counter()
        restaurants = Counter()
        cuisines = []
        for order in orders:
            for dish in order.dishes:
                name = BRACKETED.sub("", dish.lower()).strip()
                if name:
                    dishes[name] += 1
            cuisines.append(infer_cuisine(order.items))
            if order.restaurant:
                restaurants[order.restaurant] += 1

        total_dishes = sum(dishes.values())
        unique_dishes = len(dishes)
        repeat_rate = (total_dishes - unique_dishes) / total_dishes * 100 if total_dishes else 0

        dominant_share = max(Counter(cuisines).values()) / len(cuisines) if cuisines else 0
        if dominant_share > 0.5:
            fatigue = "low_variety"
        elif dominant_share > 0.3:
            fatigue = "moderate_variety"
        else:
            fatigue = "high_variety"

        switches = sum(1 for i in range(1, len(cuisines)) if cuisines[i] != cuisines[i - 1])
        switch_rate = switches / (len(cuisines) - 1) * 100 if len(cuisines) > 1 else 0

        return {
            "frequent_dishes": [
                {"dish_name": dish, "order_count": count, "repeat_rate": pct(count, len(orders))}
                for dish, count in dishes.most_common()
                if count > 1
            ][:10],
            "dish_repeat_rate": int(round(repeat_rate)),
            "unique_dishes_tried": unique_dishes,
            "cuisine_fatigue_score": fatigue,
            "dish_switching_rate": int(round(switch_rate)),
            "variety_seeker_score": int(round(switch_rate)),
            "stable_routine_score": int(round(100 - switch_rate)),
            "favorite_restaurants": [
                {"name": name, "visits": count, "loyalty_pct": pct(count, len(orders))}
                for name, count in restaurants.most_common(5)
            ],
        }

    def behavioral_traits(
        self,
        orders: List[ZomatoOrder],
        temporal: Dict[str, Any],
        repeat: Dict[str, Any]
    ) -> Dict[str, Any]:
        n = len(orders)
        spicy = sum(1 for o in orders if o.items and SPICY_PATTERN.search(o.items))
        healthy = sum(1 for o in orders if o.items and HEALTHY_PATTERN.search(o.items))

        if spicy > n * 0.4:
            spice = "spice_lover"
        elif spicy > n * 0.2:
            spice = "moderate_spice"
        else:
            spice = "mild_preference"

        per_brand: Dict[str, Any] = {}
        for brand, count in Counter(infer_brand(o.restaurant) for o in orders).most_common():
            if count >= 3:
                per_brand[brand] = {
                    "order_count": count,
                    "loyalty_score": min(100, count * 10),
                    "tier": "loyal" if count >= 10 else "regular" if count >= 5 else "occasional",
                }

        weekend_ratio = temporal["weekday_vs_weekend_ratio"] or 0
        return {
            "late_night_eater": temporal["late_night_eater"],
            "late_night_score": pct(temporal["time_of_day_curve"]["late_night"], n),
            "spice_preference": spice,
            "health_orientation_score": pct(healthy, n),
            "health_conscious": healthy > n * 0.2,
            "variety_seeker_score": repeat["variety_seeker_score"],
            "variety_seeker": repeat["variety_seeker_score"] > 60,
            "impulsive_buyer_score": int(round(
                weekend_ratio * 30 + (100 - temporal["weekly_consistency_score"]) * 0.7
            )),
            "stable_routine_buyer": temporal["weekly_consistency_score"] > 60,
            "per_brand_loyalty": per_brand,
        }

    def competitor_mapping(self, orders: List[ZomatoOrder]) -> Dict[str, Any]:
        sequence = [(infer_brand(o.restaurant), infer_cuisine(o.items)) for o in orders]
        by_category: Dict[str, Counter] = {}
        for brand, cuisine in sequence:
            by_category.setdefault(cuisine, Counter())[brand] += 1

        pairs = Counter()
        switches = repeats = 0
        for (prev_brand, prev_cuisine), (brand, cuisine) in zip(sequence, sequence[1:]):
            if brand != prev_brand:
                switches += 1
                if cuisine == prev_cuisine:
                    pairs[" vs ".join(sorted([prev_brand, brand]))] += 1
            else:
                repeats += 1

        return {
            "substitution_chains": [
                {"brands": pair, "switch_count": count} for pair, count in pairs.most_common(5)
            ],
            "brand_switching_probability": pct(switches, len(sequence) - 1) if len(sequence) > 1 else 0,
            "brand_loyalty_vs_switching": "loyal" if repeats > switches else "switcher",
            "competitor_overlap_by_category": {
                cuisine: [{"brand": b, "orders": c} for b, c in brands.most_common(3)]
                for cuisine, brands in by_category.items()
                if len(brands) > 1
            },
            "category_exploration_score": len(by_category) * 10,
        }

    def basket_intelligence(self, orders: List[ZomatoOrder]) -> Dict[str, Any]:
        n = len(orders)
        sizes = [len(o.dishes) for o in orders]
        drinks = sides = desserts = combos = 0
        baskets = Counter()
        bundles: Dict[str, Dict[str, Any]] = {}

        for order in orders:
            for dish in order.dishes:
                if DRINK_PATTERN.search(dish):
                    drinks += 1
                elif SIDE_PATTERN.search(dish):
                    sides += 1
                elif DESSERT_PATTERN.search(dish):
                    desserts += 1
            if order.items and COMBO_PATTERN.search(order.items):
                combos += 1
            if order.dishes:
                baskets["|".join(sorted(d.lower() for d in order.dishes))] += 1

            bundle = bundles.setdefault(infer_cuisine(order.items), {"count": 0, "total_items": 0})
            bundle["count"] += 1
            bundle["total_items"] += len(order.dishes)

        return {
            "average_basket_size": round1(sum(sizes) / n) if n else 0,
            "basket_diversity_score": pct(len(set(sizes)), n),
            "add_ons_analysis": {
                "drinks_pct": pct(drinks, n),
                "sides_pct": pct(sides, n),
                "desserts_pct": pct(desserts, n),
                "add_on_propensity": "high" if n and (drinks + sides + desserts) / n > 0.5 else "low",
            },
            "combo_preference": pct(combos, n),
            "cuisine_bundles": {
                cuisine: {"count": b["count"], "avg_items": round1(b["total_items"] / b["count"])}
                for cuisine, b in bundles.items()
            },
            "repeat_baskets": [
                {"items": basket.split("|"), "repeat_count": count}
                for basket, count in baskets.most_common()
                if count > 1
            ][:5],
            "upsell_receptivity": "high" if drinks + desserts > n * 0.3 else "moderate",
        }

    @staticmethod
    def propensity_predictions(
        order_count: int,
        temporal: Dict[str, Any],
        price: Dict[str, Any],
        repeat: Dict[str, Any],
        basket: Dict[str, Any]
    ) -> Dict[str, Any]:
        distribution = price["price_bucket_distribution"]
        add_ons = basket["add_ons_analysis"]
        if order_count < 5:
            churn = 70
        elif order_count < 10:
            churn = 40
        elif order_count < 30:
            churn = 20
        else:
            churn = 10

        return {
            "repeat_purchase_probability": min(100, order_count * 2),
            "churn_risk": churn,
            "new_category_adoption": "high" if repeat["variety_seeker_score"] > 50 else "moderate",
            "premium_tier_probability": distribution["premium_pct"] + distribution["luxury_pct"],
            "dessert_cross_sell": "high_potential" if add_ons["desserts_pct"] < 20 else "saturated",
            "beverage_cross_sell": "high_potential" if add_ons["drinks_pct"] < 30 else "saturated",
            "upsell_receptivity_score": 80 if price["price_sensitivity_index"] < 50 else 40,
            "combo_upsell_probability": 70 if basket["combo_preference"] < 30 else 30,
            "win_back_probability": 80 if temporal["weekly_consistency_score"] > 60 else 50,
            "referral_propensity": (
                "high" if order_count > 30 and repeat["dish_repeat_rate"] > 50 else "moderate"
            ),
            "weekend_activation_probability": 70 if temporal["weekday_vs_weekend_ratio"] < 0.5 else 30,
            "late_night_activation": 80 if temporal["late_night_eater"] else 20,
        }

    @staticmethod
    def basket_samples(orders: List[ZomatoOrder]) -> List[Dict[str, Any]]:
        """Category-level view of the first baskets; restaurant and dish names never appear"""
        samples = []
        for order in orders[:BASKET_SAMPLE_SIZE]:
            cuisine = infer_cuisine(order.items)
            category = categorize(cuisine)
            samples.append({
                "category_l1": category["l1"],
                "category_l2": category["l2"],
                "brand": infer_brand(order.restaurant),
                "price_bucket": sample_price_bucket(order.price),
                "inferred_cuisine": cuisine,
            })
        return samples

    # ------------------------------------------------------------------
    # Builder interface
    # ------------------------------------------------------------------

    def build(
        self,
        normalized: ZomatoNormalized,
        cohort: CohortAssignment,
        generated_at: datetime
    ) -> BuiltRecord:
        orders = normalized.orders
        n = len(orders)
        order_count, total_gmv = self.order_totals(normalized)
        bracket = anonymizer.spend_bracket(total_gmv)
        frequency = anonymizer.frequency_tier(order_count, self.data_window_days)
        lifestyle = anonymizer.lifestyle_segment(bracket)
        avg_order_value = (
            round(total_gmv / order_count, 2) if total_gmv is not None and order_count else None
        )

        cuisines = Counter(infer_cuisine(o.items) for o in orders)
        brands = Counter(infer_brand(o.restaurant) for o in orders)
        top_cuisines = [c for c, _ in cuisines.most_common(3)]

        # Data window from parsed timestamps only
        dates = sorted(o.ordered_at for o in orders if o.ordered_at is not None)
        first_order = dates[0] if dates else None
        last_order = dates[-1] if dates else None
        actual_window = (last_order - first_order).days if dates else None

        avg_days_between = None
        if len(dates) > 1:
            diffs = [(b - a).days for a, b in zip(dates, dates[1:])]
            avg_days_between = int(round(sum(diffs) / len(diffs)))
        elif order_count and order_count > 1:
            avg_days_between = int(round((actual_window or self.data_window_days) / order_count))

        window_for_rate = actual_window or self.data_window_days
        orders_per_month = round1(order_count / window_for_rate * 30) if order_count is not None else None
        estimated_monthly_spend = None
        if avg_order_value is not None:
            estimated_monthly_spend = int(round(avg_order_value * (30 / (avg_days_between or 30))))

        days_since_last = max(0, (generated_at - last_order).days) if last_order else None
        if days_since_last is None:
            recency_score = 1
        elif days_since_last < 7:
            recency_score = 5
        elif days_since_last < 30:
            recency_score = 4
        elif days_since_last < 90:
            recency_score = 3
        else:
            recency_score = 2

        city_cluster, city_tier, geo_method = anonymizer.resolve_city(
            normalized.city, normalized.restaurants
        )

        temporal = price = repeat = traits = competitors = basket = propensity = samples = None
        brand_intelligence = category_insights = None
        if orders:
            temporal = self.temporal_behavior(orders)
            price = self.price_sensitivity(orders)
            repeat = self.repeat_patterns(orders)
            traits = self.behavioral_traits(orders, temporal, repeat)
            competitors = self.competitor_mapping(orders)
            basket = self.basket_intelligence(orders)
            propensity = self.propensity_predictions(n, temporal, price, repeat, basket)
            samples = self.basket_samples(orders)

            top_brands = brands.most_common(5)
            brand_intelligence = {
                "top_brands": [
                    {
                        "brand_name": brand,
                        "rank": rank,
                        "is_chain": brand != LOCAL_RESTAURANT,
                        "order_share_pct": pct(count, n),
                    }
                    for rank, (brand, count) in enumerate(top_brands, start=1)
                ],
                "brand_loyalty_score": pct(top_brands[0][1], n),
                "chain_vs_local_preference": (
                    "chain_preferred" if top_brands[0][0] != LOCAL_RESTAURANT else "local_preferred"
                ),
                "competitor_exposure": [b for b, _ in top_brands if b != LOCAL_RESTAURANT],
            }
            category_insights = {
                "top_categories": [
                    {
                        "category_name": cuisine,
                        "iab_code": iab_code(cuisine),
                        "gs1_code": GS1_CATEGORIES.get(cuisine, "GS1-10000000"),
                        "order_count": count,
                        "share_of_wallet": round1(count / n * 100),
                        "rank": rank,
                    }
                    for rank, (cuisine, count) in enumerate(cuisines.most_common(8), start=1)
                ],
                "dietary_signals": {
                    "preference": "health_oriented" if traits["health_conscious"] else "mixed",
                    "health_conscious": traits["health_conscious"],
                    "variety_seeker": traits["variety_seeker"],
                    "spice_preference": traits["spice_preference"],
                },
            }

        if order_count is None:
            loyalty = None
        elif order_count >= 50:
            loyalty = "platinum"
        elif order_count >= 20:
            loyalty = "gold"
        elif order_count >= 10:
            loyalty = "silver"
        else:
            loyalty = "bronze"

        total_dishes = sum(len(o.dishes) for o in orders)
        quality = self.quality_score(
            {
                "price_coverage": sum(1 for o in orders if o.price and o.price > 0) / n if n else 0.0,
                "category_mapping": (n - cuisines[UNKNOWN_CUISINE]) / n if n else 0.0,
                "brand_matching": (n - brands[LOCAL_RESTAURANT]) / n if n else 0.0,
                "timestamp_coverage": len(dates) / n if n else 0.0,
                "data_window_span": actual_window / self.data_window_days if actual_window else 0.0,
                "parsing_success": total_dishes / n / 1.5 if n else 0.0,
                "summary_coverage": ((order_count is not None) + (total_gmv is not None)) / 2,
                "geo_coverage": 1.0 if city_cluster else 0.0,
            },
            QUALITY_WEIGHTS,
            has_data=bool(
                n or order_count is not None or total_gmv is not None
                or normalized.city or normalized.pincode
            ),
        )

        sellable = {
            **self.envelope(generated_at),
            "audience_segment": {
                "segment_id": cohort.cohort_id,
                "iab_categories": [iab_code(c) for c in top_cuisines],
                "dmp_attributes": {
                    "interest_food_delivery": True,
                    "interest_dining_out": True,
                    "interest_cuisine_types": top_cuisines,
                    "lifestyle_segment": lifestyle,
                },
            },
            "transaction_data": {
                "summary": {
                    "total_orders": order_count,
                    "total_gmv": total_gmv,
                    "avg_order_value": avg_order_value,
                    "currency": "INR",
                    "data_window_days": actual_window if actual_window else self.data_window_days,
                    "data_window_start": first_order.date().isoformat() if first_order else None,
                    "data_window_end": last_order.date().isoformat() if last_order else None,
                    "platform": self.platform,
                },
                "frequency_metrics": {
                    "orders_per_month": orders_per_month,
                    "avg_days_between_orders": avg_days_between,
                    "avg_days_computed_from": "inter_order_diffs" if len(dates) > 1 else "estimated",
                    "estimated_monthly_spend": estimated_monthly_spend,
                    "frequency_tier": frequency,
                },
                "recency": {
                    "last_order_date": last_order.strftime("%Y-%m-%d %H:%M") if last_order else None,
                    "days_since_last_order": days_since_last,
                    "rfm_recency_score": recency_score,
                },
            },
            "brand_intelligence": brand_intelligence,
            "category_insights": category_insights,
            "consumer_profile": {
                "spend_tier": bracket,
                "loyalty_tier": loyalty,
                "engagement_level": frequency,
                "timing_preferences": {
                    "peak_order_day": temporal["peak_ordering_day"],
                    "peak_order_time": temporal["peak_ordering_time"],
                    "weekend_preference": (
                        "weekend_heavy" if temporal["weekday_vs_weekend_ratio"] > 0.5 else "weekday_focused"
                    ),
                } if temporal else None,
            },
            "temporal_behavior": temporal,
            "price_sensitivity": price,
            "repeat_patterns": repeat,
            "behavioral_traits": traits,
            "competitor_mapping": competitors,
            "basket_intelligence": basket,
            "propensity_predictions": propensity,
            "geo_data": {
                "geo_bucket": anonymizer.anonymize_location(normalized.pincode, normalized.city),
                "country": "IN",
                "city_tier": city_tier,
                "city_cluster": city_cluster,
                "geo_inference_method": geo_method,
                "neighborhood_affluence_index": anonymizer.neighborhood_affluence(bracket),
            },
            "basket_samples": samples,
            "metadata": self.metadata(
                cohort,
                quality,
                [
                    "cuisine_inference",
                    "brand_matching",
                    "temporal_analytics",
                    "price_sensitivity",
                    "basket_intelligence",
                    "audience_segmentation",
                ],
            ),
        }

        insights = {
            "order_count": order_count,
            "total_spend": total_gmv,
            "avg_order_value": avg_order_value,
            "top_cuisines": top_cuisines,
            "top_brands": [b for b, _ in brands.most_common(5)],
            "monthly_ordering_pattern": temporal["monthly_ordering_pattern"] if temporal else {},
        }

        return BuiltRecord(sellable_data=sellable, behavioral_insights=insights)
