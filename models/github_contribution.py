from sqlalchemy import Column, String, Integer, Boolean, Index
from models.base import Base, ContributionMixin


class GithubContribution(ContributionMixin, Base):
    """GitHub developer-profile contributions."""
    __tablename__ = "github_contributions"

    follower_count = Column(Integer, nullable=True, index=True)
    contribution_count = Column(Integer, nullable=True)
    developer_tier = Column(String(50), nullable=True, index=True)
    follower_tier = Column(String(50), nullable=True)
    activity_level = Column(String(50), nullable=True)
    is_influencer = Column(Boolean, nullable=True)
    is_active_contributor = Column(Boolean, nullable=True)

    __table_args__ = (
        Index("idx_github_user_created", "user_id", "created_at"),
    )
