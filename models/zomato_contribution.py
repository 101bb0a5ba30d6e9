from sqlalchemy import Column, String, Integer, Float, Boolean, Index
from models.base import Base, ContributionMixin, JSONType


class ZomatoContribution(ContributionMixin, Base):
    """
    Zomato order-history contributions.

    Indexed columns are projections of the sellable record:
    - transaction_data.summary.*        -> total_orders, total_gmv, avg_order_value
    - transaction_data.frequency_metrics -> frequency_tier
    - audience_segment.*                -> segment_id, lifestyle_segment, top_cuisines
    - temporal_behavior / price_sensitivity / repeat_patterns -> analytics columns
    """
    __tablename__ = "zomato_contributions"

    total_orders = Column(Integer, nullable=True, index=True)
    total_gmv = Column(Float, nullable=True)
    avg_order_value = Column(Float, nullable=True)
    frequency_tier = Column(String(50), nullable=True)
    lifestyle_segment = Column(String(50), nullable=True, index=True)
    city_cluster = Column(String(50), nullable=True, index=True)
    segment_id = Column(String(64), nullable=True)

    top_cuisines = Column(JSONType, nullable=True)
    top_brands = Column(JSONType, nullable=True)
    chain_vs_local_preference = Column(String(50), nullable=True)

    day_of_week_distribution = Column(JSONType, nullable=True)
    time_of_day_curve = Column(JSONType, nullable=True)
    peak_ordering_day = Column(String(20), nullable=True)
    peak_ordering_time = Column(String(20), nullable=True)
    late_night_eater = Column(Boolean, nullable=True)

    price_bucket_distribution = Column(JSONType, nullable=True)
    dominant_price_segment = Column(String(20), nullable=True)
    discount_usage_rate = Column(Float, nullable=True)
    offer_dependent = Column(Boolean, nullable=True)
    premium_vs_budget_ratio = Column(String(20), nullable=True)

    frequent_dishes = Column(JSONType, nullable=True)
    favorite_restaurants = Column(JSONType, nullable=True)
    competitor_mapping = Column(JSONType, nullable=True)
    repeat_baskets = Column(JSONType, nullable=True)
    geo_data = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("idx_zomato_user_created", "user_id", "created_at"),
        Index("idx_zomato_cohort_quality", "cohort_id", "data_quality_score"),
    )
