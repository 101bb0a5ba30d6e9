from sqlalchemy import Column, String, Integer, Float, Boolean, Index
from models.base import Base, ContributionMixin, JSONType


class NetflixContribution(ContributionMixin, Base):
    """Netflix watch-history contributions."""
    __tablename__ = "netflix_contributions"

    total_titles_watched = Column(Integer, nullable=True, index=True)
    total_watch_hours = Column(Float, nullable=True)
    binge_score = Column(Integer, nullable=True)
    engagement_tier = Column(String(50), nullable=True, index=True)
    segment_id = Column(String(64), nullable=True)

    top_genres = Column(JSONType, nullable=True)
    genre_diversity_score = Column(Integer, nullable=True)
    dominant_content_type = Column(String(50), nullable=True)
    primary_language = Column(String(50), nullable=True)

    peak_viewing_day = Column(String(20), nullable=True)
    peak_viewing_time = Column(String(20), nullable=True)
    late_night_viewer = Column(Boolean, nullable=True)
    is_binge_watcher = Column(Boolean, nullable=True)
    day_of_week_distribution = Column(JSONType, nullable=True)
    time_of_day_curve = Column(JSONType, nullable=True)

    subscription_tier = Column(String(50), nullable=True, index=True)
    account_age_years = Column(Float, nullable=True)
    member_since_year = Column(Integer, nullable=True)
    loyalty_tier = Column(String(50), nullable=True)
    churn_risk = Column(String(20), nullable=True)

    kids_content_pct = Column(Integer, nullable=True)
    mature_content_pct = Column(Integer, nullable=True)
    primary_audience = Column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_netflix_user_created", "user_id", "created_at"),
    )
