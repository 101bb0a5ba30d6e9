"""
Typed normalized records produced by the field extractors.

Every numeric and date field is either a parsed value or None; raw strings
from the proof never reach the builders. Only the fields declared here
survive extraction, which keeps personal data out of everything downstream.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ============================================================================
# Zomato
# ============================================================================

class ZomatoOrder(BaseModel):
    """Single order from a Zomato order history"""
    restaurant: Optional[str] = None
    items: Optional[str] = None
    dishes: List[str] = Field(default_factory=list)
    price: Optional[float] = None
    ordered_at: Optional[datetime] = None


class ZomatoNormalized(BaseModel):
    """Zomato order history with any totals the proof declared"""
    orders: List[ZomatoOrder] = Field(default_factory=list)
    declared_total_orders: Optional[int] = None
    declared_total_gmv: Optional[float] = None
    city: Optional[str] = None
    pincode: Optional[str] = None

    @property
    def restaurants(self) -> List[str]:
        return [o.restaurant for o in self.orders if o.restaurant]


# ============================================================================
# GitHub
# ============================================================================

class GithubNormalized(BaseModel):
    """GitHub profile metrics; the username itself is never kept"""
    has_username: bool = False
    followers: Optional[int] = None
    contributions: Optional[int] = None
    created_at: Optional[datetime] = None


# ============================================================================
# Netflix
# ============================================================================

class NetflixTitle(BaseModel):
    """Single watch-history entry"""
    title: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    content_type: Optional[str] = None
    language: Optional[str] = None
    maturity_rating: Optional[str] = None
    watched_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None


class NetflixMembership(BaseModel):
    plan: Optional[str] = None
    member_since: Optional[datetime] = None


class NetflixNormalized(BaseModel):
    """Netflix watch history, ratings and membership"""
    titles: List[NetflixTitle] = Field(default_factory=list)
    ratings: List[float] = Field(default_factory=list)
    ratings_count: int = 0
    membership: Optional[NetflixMembership] = None
