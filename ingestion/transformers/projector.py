"""
Indexed-field projection.

Each provider declares which paths of its sellable record are copied into
queryable columns. `project()` walks those paths and coerces the values;
it reads nothing but the tree it is given, so the backfill script can
re-run it over stored records and get the same columns back.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from models.base import DataType
import math

PathPart = Union[str, int]


def to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(round(number))


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def to_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return None


def as_json(value: Any) -> Any:
    """Lists and dicts only; anything else is not a JSON column value"""
    if isinstance(value, (list, dict)):
        return value
    return None


def names_of(key: str) -> Callable[[Any], Optional[List[Any]]]:
    """Collect `key` from a list of dicts, e.g. brand names from top_brands"""
    def coerce(value: Any) -> Optional[List[Any]]:
        if not isinstance(value, list):
            return None
        return [item[key] for item in value if isinstance(item, dict) and item.get(key) is not None]
    return coerce


@dataclass(frozen=True)
class FieldRule:
    column: str
    path: Sequence[PathPart]
    coerce: Callable[[Any], Any]


def resolve(tree: Any, path: Sequence[PathPart]) -> Any:
    node = tree
    for part in path:
        if isinstance(part, int):
            if not isinstance(node, list) or part >= len(node):
                return None
            node = node[part]
        else:
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        if node is None:
            return None
    return node


def _rule(column: str, dotted: str, coerce: Callable[[Any], Any]) -> FieldRule:
    path: List[PathPart] = [int(p) if p.isdigit() else p for p in dotted.split(".")]
    return FieldRule(column=column, path=tuple(path), coerce=coerce)


# Columns shared by every provider
COMMON_RULES = [
    _rule("cohort_id", "metadata.privacy_compliance.cohort_id", to_str),
    _rule("data_quality_score", "metadata.data_quality.score", to_int),
]

ZOMATO_RULES = COMMON_RULES + [
    _rule("total_orders", "transaction_data.summary.total_orders", to_int),
    _rule("total_gmv", "transaction_data.summary.total_gmv", to_float),
    _rule("avg_order_value", "transaction_data.summary.avg_order_value", to_float),
    _rule("frequency_tier", "transaction_data.frequency_metrics.frequency_tier", to_str),
    _rule("lifestyle_segment", "audience_segment.dmp_attributes.lifestyle_segment", to_str),
    _rule("city_cluster", "geo_data.city_cluster", to_str),
    _rule("segment_id", "audience_segment.segment_id", to_str),
    _rule("top_cuisines", "audience_segment.dmp_attributes.interest_cuisine_types", as_json),
    _rule("top_brands", "brand_intelligence.top_brands", names_of("brand_name")),
    _rule("chain_vs_local_preference", "brand_intelligence.chain_vs_local_preference", to_str),
    _rule("day_of_week_distribution", "temporal_behavior.day_of_week_distribution", as_json),
    _rule("time_of_day_curve", "temporal_behavior.time_of_day_curve", as_json),
    _rule("peak_ordering_day", "temporal_behavior.peak_ordering_day", to_str),
    _rule("peak_ordering_time", "temporal_behavior.peak_ordering_time", to_str),
    _rule("late_night_eater", "temporal_behavior.late_night_eater", to_bool),
    _rule("price_bucket_distribution", "price_sensitivity.price_bucket_distribution", as_json),
    _rule("dominant_price_segment", "price_sensitivity.dominant_price_segment", to_str),
    _rule("discount_usage_rate", "price_sensitivity.discount_usage_rate", to_float),
    _rule("offer_dependent", "price_sensitivity.offer_dependent", to_bool),
    _rule("premium_vs_budget_ratio", "price_sensitivity.premium_vs_budget_ratio", to_str),
    _rule("frequent_dishes", "repeat_patterns.frequent_dishes", as_json),
    _rule("favorite_restaurants", "repeat_patterns.favorite_restaurants", as_json),
    _rule("competitor_mapping", "competitor_mapping", as_json),
    _rule("repeat_baskets", "basket_intelligence.repeat_baskets", as_json),
    _rule("geo_data", "geo_data", as_json),
]

GITHUB_RULES = COMMON_RULES + [
    _rule("follower_count", "social_metrics.follower_count", to_int),
    _rule("contribution_count", "activity_metrics.yearly_contributions", to_int),
    _rule("developer_tier", "developer_profile.tier", to_str),
    _rule("follower_tier", "social_metrics.follower_tier", to_str),
    _rule("activity_level", "activity_metrics.activity_level", to_str),
    _rule("is_influencer", "social_metrics.is_influencer", to_bool),
    _rule("is_active_contributor", "activity_metrics.is_active_contributor", to_bool),
]

NETFLIX_RULES = COMMON_RULES + [
    _rule("total_titles_watched", "viewing_summary.total_titles_watched", to_int),
    _rule("total_watch_hours", "viewing_summary.total_watch_hours", to_float),
    _rule("binge_score", "viewing_behavior.binge_score", to_int),
    _rule("engagement_tier", "viewing_summary.engagement_tier", to_str),
    _rule("segment_id", "audience_segment.segment_id", to_str),
    _rule("top_genres", "content_preferences.top_genres", names_of("genre")),
    _rule("genre_diversity_score", "content_preferences.genre_diversity_score", to_int),
    _rule("dominant_content_type", "content_preferences.content_type_preference.dominant_type", to_str),
    _rule("primary_language", "content_preferences.language_preferences.0.language", to_str),
    _rule("peak_viewing_day", "viewing_behavior.peak_viewing_day", to_str),
    _rule("peak_viewing_time", "viewing_behavior.peak_viewing_time", to_str),
    _rule("late_night_viewer", "viewing_behavior.late_night_viewer", to_bool),
    _rule("is_binge_watcher", "viewing_behavior.is_binge_watcher", to_bool),
    _rule("day_of_week_distribution", "viewing_behavior.day_of_week_distribution", as_json),
    _rule("time_of_day_curve", "viewing_behavior.time_of_day_curve", as_json),
    _rule("subscription_tier", "subscription_data.tier", to_str),
    _rule("account_age_years", "subscription_data.account_age_years", to_float),
    _rule("member_since_year", "subscription_data.member_since_year", to_int),
    _rule("loyalty_tier", "subscription_data.loyalty_tier", to_str),
    _rule("churn_risk", "subscription_data.churn_risk", to_str),
    _rule("kids_content_pct", "content_preferences.maturity_profile.kids_content_pct", to_int),
    _rule("mature_content_pct", "content_preferences.maturity_profile.mature_content_pct", to_int),
    _rule("primary_audience", "content_preferences.maturity_profile.primary_audience", to_str),
]

PROJECTIONS: Dict[DataType, List[FieldRule]] = {
    DataType.ZOMATO_ORDER_HISTORY: ZOMATO_RULES,
    DataType.GITHUB_PROFILE: GITHUB_RULES,
    DataType.NETFLIX_WATCH_HISTORY: NETFLIX_RULES,
}


def apply_rules(rules: Sequence[FieldRule], sellable_data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy each rule's path out of the tree; a missing path yields None."""
    return {rule.column: rule.coerce(resolve(sellable_data, rule.path)) for rule in rules}


def project(data_type: DataType, sellable_data: Dict[str, Any]) -> Dict[str, Any]:
    """Indexed columns for one provider's sellable record"""
    return apply_rules(PROJECTIONS[DataType(data_type)], sellable_data)
