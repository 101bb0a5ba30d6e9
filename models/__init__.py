"""
SQLAlchemy ORM models for database tables.

One table per provider; every table shares the contribution columns from
`ContributionMixin` and adds its own indexed columns:

Models:
    base: Base declarative class, shared enums (DataType, ContributionStatus)
          and the shared contribution columns
    zomato_contribution: Zomato order-history contributions
    github_contribution: GitHub developer-profile contributions
    netflix_contribution: Netflix watch-history contributions
    proof_registry: one row per reclaim proof id, owned by one data type

Database Schema:
    JSON columns use JSONB on PostgreSQL and plain JSON elsewhere, so the
    same models run against SQLite in tests.

Usage:
    from models.zomato_contribution import ZomatoContribution
    from models.base import DataType, ContributionStatus

Invariants:
    - reclaim_proof_id is unique per table, and the persistence layer keeps
      it unique across all three tables through the proof_registry primary key
    - indexed columns are derived from sellable_data only
"""

__all__ = [
    "Base",
    "DataType",
    "ContributionStatus",
    "ContributionMixin",
    "ZomatoContribution",
    "GithubContribution",
    "NetflixContribution",
    "ProofRegistry",
]
