"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from datetime import datetime
from unittest.mock import Mock
from core.database import ConnectionPool
from ingestion.loaders.json_loader import JsonFileLoader
from ingestion.loaders.postgres_loader import PostgresLoader
from ingestion.runner import ContributionPipeline
from models.base import Base
# Import all models to ensure they are registered
from models.zomato_contribution import ZomatoContribution
from models.github_contribution import GithubContribution
from models.netflix_contribution import NetflixContribution
from models.proof_registry import ProofRegistry
from schemas.contribution import ContributionSubmission

GENERATED_AT = datetime(2025, 12, 15, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def pool(tmp_path):
    """File-backed SQLite pool with every contribution table created"""
    pool = ConnectionPool(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        pool_size=5,
    )
    await pool.create_all(Base.metadata)

    yield pool

    await pool.dispose()


@pytest_asyncio.fixture(scope="function")
async def postgres_store(pool):
    """Relational store running on the SQLite pool"""
    return PostgresLoader(pool)


@pytest.fixture
def json_store(tmp_path):
    return JsonFileLoader(str(tmp_path / "store"))


@pytest_asyncio.fixture(scope="function", params=["postgres", "json"])
async def store(request, tmp_path):
    """Each storage backend in turn, behind the same interface"""
    if request.param == "json":
        yield JsonFileLoader(str(tmp_path / "store"))
        return

    pool = ConnectionPool(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        pool_size=5,
    )
    await pool.create_all(Base.metadata)

    yield PostgresLoader(pool)

    await pool.dispose()


# ============================================================================
# Sample payloads
# ============================================================================

@pytest.fixture
def zomato_summary_payload():
    """Declared totals only, no order lines"""
    return {"total_orders": 42, "total_gmv": 1530.50, "city": "Mumbai"}


@pytest.fixture
def zomato_orders_payload():
    return {
        "orders": [
            {
                "restaurant": "Domino's Pizza",
                "items": "1 x Farmhouse Pizza, 1 x Coke",
                "price": "₹450",
                "timestamp": "December 01, 2025 at 08:15 PM",
            },
            {
                "restaurant": "Behrouz Biryani",
                "items": "2 x Chicken Biryani",
                "price": 520,
                "timestamp": "2025-12-03 13:30:00",
            },
            {
                "restaurantName": "Local Dhaba",
                "items": [
                    {"name": "Paneer Tikka", "quantity": 1},
                    {"name": "Butter Naan", "quantity": 2},
                ],
                "price": "₹ 1,250.00",
                "timestamp": "2025-12-06T23:45:00Z",
            },
            {
                "restaurant": "Domino's Pizza",
                "items": "1 x Farmhouse Pizza, 1 x Coke",
                "price": 450,
                "timestamp": "2025-12-10 20:00:00",
            },
        ]
    }


@pytest.fixture
def github_payload():
    return {
        "username": "octocat",
        "followers": 250,
        "contributions": 820,
        "created_at": "2018-03-01T00:00:00Z",
    }


@pytest.fixture
def netflix_payload():
    return {
        "watchHistory": [
            {
                "title": "Stranger Things: Season 4",
                "genres": ["Sci-Fi", "Horror"],
                "type": "series",
                "language": "English",
                "maturityRating": "TV-MA",
                "watchedAt": "2025-11-01T20:00:00Z",
                "duration": "1h 10m",
            },
            {
                "title": "Stranger Things: Season 4",
                "genres": ["Sci-Fi"],
                "type": "series",
                "language": "English",
                "watchedAt": "2025-11-01T21:15:00Z",
                "duration": "1:15",
            },
            {
                "title": "Stranger Things: Season 4",
                "genres": ["Sci-Fi"],
                "type": "series",
                "language": "English",
                "watchedAt": "2025-11-01T22:30:00Z",
                "duration": 75,
            },
            {
                "title": "Brooklyn Nine-Nine",
                "genres": ["Comedy"],
                "type": "series",
                "language": "English",
                "watchedAt": "2025-11-08T19:00:00Z",
                "duration": "22m",
            },
        ],
        "ratings": [{"rating": 5}, 4],
        "membership": {"plan": "Premium", "memberSince": "2019-05-01"},
    }


@pytest.fixture
def rp001_submission(zomato_summary_payload):
    return ContributionSubmission(
        dataType="zomato_order_history",
        anonymizedData=zomato_summary_payload,
        reclaimProofId="rp-001",
        userId="u-123",
    )


@pytest.fixture
def make_submission():
    """Factory for submissions with camelCase field names"""
    def _make(data_type, payload, proof_id, user_id="u-123"):
        return ContributionSubmission(
            dataType=data_type,
            anonymizedData=payload,
            reclaimProofId=proof_id,
            userId=user_id,
        )
    return _make


@pytest.fixture
def make_record(make_submission):
    """Factory for fully built records that have not been stored"""
    pipeline = ContributionPipeline(Mock())

    def _make(data_type, payload, proof_id, user_id="u-123", generated_at=GENERATED_AT):
        return pipeline.prepare(make_submission(data_type, payload, proof_id, user_id), generated_at)
    return _make
