"""
Unit tests for the storage backends
"""

import asyncio
import os
import pytest
from datetime import datetime, timedelta
from sqlalchemy import update
from core.exceptions import (
    ConstraintViolationError, PersistenceError, ProofConflictError, RetryableError
)
from ingestion.loaders.base import compare, target_providers
from ingestion.loaders.factory import create_fallback_store, create_store
from ingestion.loaders.json_loader import JsonFileLoader
from ingestion.loaders.postgres_loader import PostgresLoader
from core.config import Settings
from core.database import ConnectionPool
from models.zomato_contribution import ZomatoContribution
from schemas.contribution import ContributionFilters, SellableRecord

T0 = datetime(2025, 12, 15, 12, 0, 0)


class TestContributionStore:
    """Behaviour shared by every backend"""

    @pytest.mark.asyncio
    async def test_upsert_and_get(self, store, make_record, zomato_summary_payload):
        record = make_record("zomato_order_history", zomato_summary_payload, "rp-001")

        stored = await store.upsert(record)
        fetched = await store.get("rp-001")

        assert stored.reclaim_proof_id == "rp-001"
        assert fetched is not None
        assert fetched.id == record.id
        assert fetched.sellable_data["transaction_data"] == record.sellable_data["transaction_data"]
        assert fetched.indexed_fields["total_orders"] == 42
        assert fetched.indexed_fields["city_cluster"] == "mumbai"
        assert fetched.metadata["order_count"] == 42

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("rp-missing") is None

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, store, make_record, zomato_summary_payload):
        """Resubmitting a proof updates the row and keeps identity and creation time"""
        first = make_record("zomato_order_history", zomato_summary_payload, "rp-001", generated_at=T0)
        later = T0 + timedelta(hours=3)
        changed = dict(zomato_summary_payload, total_orders=60)
        second = make_record("zomato_order_history", changed, "rp-001", user_id="u-999", generated_at=later)

        await store.upsert(first)
        await store.upsert(second)

        fetched = await store.get("rp-001")
        records, total = await store.query(ContributionFilters())

        assert total == 1
        assert len(records) == 1
        assert fetched.id == first.id
        assert fetched.user_id == "u-123"
        assert fetched.created_at == T0
        assert fetched.updated_at == later
        assert fetched.indexed_fields["total_orders"] == 60

    @pytest.mark.asyncio
    async def test_proof_id_unique_across_providers(self, store, make_record,
                                                    zomato_summary_payload, github_payload):
        await store.upsert(make_record("zomato_order_history", zomato_summary_payload, "rp-shared"))

        with pytest.raises(ProofConflictError):
            await store.upsert(make_record("github_profile", github_payload, "rp-shared"))

        fetched = await store.get("rp-shared")
        assert fetched.data_type.value == "zomato_order_history"

    @pytest.mark.asyncio
    async def test_racing_providers_cannot_share_a_proof(self, store, make_record,
                                                        zomato_summary_payload, github_payload):
        """Two providers submitting the same proof at once: exactly one wins"""
        results = await asyncio.gather(
            store.upsert(make_record("zomato_order_history", zomato_summary_payload, "rp-race")),
            store.upsert(make_record("github_profile", github_payload, "rp-race")),
            return_exceptions=True,
        )

        stored = [r for r in results if isinstance(r, SellableRecord)]
        conflicts = [r for r in results if isinstance(r, ProofConflictError)]
        assert len(stored) == 1
        assert len(conflicts) == 1

        _, total = await store.query(ContributionFilters())
        fetched = await store.get("rp-race")
        assert total == 1
        assert fetched.data_type == stored[0].data_type

    @pytest.mark.asyncio
    async def test_ping(self, store):
        assert await store.ping() is True


class TestQuery:
    """Filtering, ordering and paging"""

    @pytest.fixture
    def seeded(self, store, make_record, zomato_summary_payload, zomato_orders_payload, github_payload):
        async def _seed():
            await store.upsert(make_record(
                "zomato_order_history", zomato_summary_payload, "rp-1", user_id="u-1", generated_at=T0
            ))
            await store.upsert(make_record(
                "zomato_order_history", zomato_orders_payload, "rp-2", user_id="u-2",
                generated_at=T0 + timedelta(hours=1)
            ))
            await store.upsert(make_record(
                "github_profile", github_payload, "rp-3", user_id="u-1",
                generated_at=T0 + timedelta(hours=2)
            ))
            return store
        return _seed

    @pytest.mark.asyncio
    async def test_newest_first(self, seeded):
        store = await seeded()
        records, total = await store.query(ContributionFilters())

        assert total == 3
        assert [r.reclaim_proof_id for r in records] == ["rp-3", "rp-2", "rp-1"]

    @pytest.mark.asyncio
    async def test_limit_and_offset(self, seeded):
        store = await seeded()
        records, total = await store.query(ContributionFilters(limit=1, offset=1))

        assert total == 3
        assert [r.reclaim_proof_id for r in records] == ["rp-2"]

    @pytest.mark.asyncio
    async def test_provider_filter_restricts_providers(self, seeded):
        store = await seeded()
        records, total = await store.query(ContributionFilters(minOrders=10))

        assert total == 1
        assert records[0].reclaim_proof_id == "rp-1"

    @pytest.mark.asyncio
    async def test_common_filters(self, seeded):
        store = await seeded()

        records, _ = await store.query(ContributionFilters(userId="u-1"))
        assert [r.reclaim_proof_id for r in records] == ["rp-3", "rp-1"]

        records, _ = await store.query(ContributionFilters(startDate=T0 + timedelta(minutes=30)))
        assert [r.reclaim_proof_id for r in records] == ["rp-3", "rp-2"]

        records, _ = await store.query(ContributionFilters(dataType="github_profile"))
        assert [r.reclaim_proof_id for r in records] == ["rp-3"]

    @pytest.mark.asyncio
    async def test_equality_filters(self, seeded):
        store = await seeded()

        records, _ = await store.query(ContributionFilters(cityCluster="mumbai"))
        assert [r.reclaim_proof_id for r in records] == ["rp-1"]

        records, _ = await store.query(ContributionFilters(developerTier="expert"))
        assert [r.reclaim_proof_id for r in records] == ["rp-3"]

    @pytest.mark.asyncio
    async def test_filter_for_other_provider_matches_nothing(self, seeded):
        store = await seeded()
        records, total = await store.query(ContributionFilters(dataType="github_profile", minOrders=1))

        assert records == []
        assert total == 0


class TestAggregates:

    @pytest.mark.asyncio
    async def test_cohort_size_and_aggregate(self, store, make_record, zomato_summary_payload):
        first = make_record("zomato_order_history", zomato_summary_payload, "rp-1", user_id="u-1")
        second = make_record("zomato_order_history", zomato_summary_payload, "rp-2", user_id="u-2")
        await store.upsert(first)
        await store.upsert(second)

        assert first.cohort_id == second.cohort_id
        assert await store.cohort_size(first.cohort_id) == 2
        assert await store.cohort_size("cohort_unknown") == 0

        summary = await store.aggregate("zomato_order_history", first.cohort_id)
        assert summary["member_count"] == 2
        assert summary["unique_users"] == 2
        assert summary["metrics"]["avg_total_orders"] == 42
        assert summary["metrics"]["sum_total_orders"] == 84
        assert summary["metrics"]["avg_total_gmv"] == 1530.5

    @pytest.mark.asyncio
    async def test_aggregate_empty_provider(self, store):
        summary = await store.aggregate("netflix_watch_history")

        assert summary["member_count"] == 0
        assert summary["metrics"]["avg_total_titles_watched"] is None

    @pytest.mark.asyncio
    async def test_reindex_up_to_date_store(self, store, make_record, github_payload):
        await store.upsert(make_record("github_profile", github_payload, "rp-gh"))
        assert await store.reindex("github_profile") == 0


class TestPostgresLoader:
    """Relational backend specifics"""

    @pytest.mark.asyncio
    async def test_reindex_restores_drifted_columns(self, pool, make_record, zomato_summary_payload):
        store = PostgresLoader(pool)
        record = make_record("zomato_order_history", zomato_summary_payload, "rp-001", generated_at=T0)
        await store.upsert(record)

        table = ZomatoContribution.__table__
        async with pool.session() as session:
            async with session.begin():
                await session.execute(
                    update(table)
                    .where(table.c.reclaim_proof_id == "rp-001")
                    .values(total_orders=None, city_cluster="stale", updated_at=T0)
                )

        assert await store.reindex("zomato_order_history") == 1

        fetched = await store.get("rp-001")
        assert fetched.indexed_fields["total_orders"] == 42
        assert fetched.indexed_fields["city_cluster"] == "mumbai"
        assert fetched.updated_at == T0

    @pytest.mark.asyncio
    async def test_unreachable_database_surfaces_persistence_error(self, make_record,
                                                                   zomato_summary_payload, tmp_path):
        pool = ConnectionPool(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}",
            pool_size=1,
        )
        store = PostgresLoader(pool)

        with pytest.raises(PersistenceError):
            await store.upsert(make_record("zomato_order_history", zomato_summary_payload, "rp-001"))

        await pool.dispose()

    @pytest.mark.asyncio
    async def test_integrity_violation_is_not_retryable(self, pool, make_record, zomato_summary_payload):
        store = PostgresLoader(pool)
        first = make_record("zomato_order_history", zomato_summary_payload, "rp-001")
        await store.upsert(first)

        clash = make_record("zomato_order_history", zomato_summary_payload, "rp-002")
        clash = clash.model_copy(update={"id": first.id})

        with pytest.raises(ConstraintViolationError) as exc_info:
            await store.upsert(clash)

        assert not isinstance(exc_info.value, RetryableError)
        assert exc_info.value.context["reclaim_proof_id"] == "rp-002"
        assert await store.get("rp-002") is None

    @pytest.mark.asyncio
    async def test_query_error_context_omits_user_id(self, tmp_path):
        pool = ConnectionPool(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}",
            pool_size=1,
        )
        store = PostgresLoader(pool)

        with pytest.raises(PersistenceError) as exc_info:
            await store.query(ContributionFilters(userId="u-secret", cityCluster="mumbai"))

        assert exc_info.value.context["filters"] == {"cityCluster": "mumbai"}
        assert "u-secret" not in str(exc_info.value.to_dict())

        await pool.dispose()


class TestJsonFileLoader:
    """JSON-file backend specifics"""

    @pytest.mark.asyncio
    async def test_records_survive_new_instance(self, tmp_path, make_record, github_payload):
        await JsonFileLoader(str(tmp_path)).upsert(make_record("github_profile", github_payload, "rp-gh"))

        fetched = await JsonFileLoader(str(tmp_path)).get("rp-gh")
        assert fetched is not None
        assert fetched.indexed_fields["developer_tier"] == "expert"

    @pytest.mark.asyncio
    async def test_atomic_write_leaves_no_temp_files(self, tmp_path, make_record, github_payload):
        store = JsonFileLoader(str(tmp_path))
        await store.upsert(make_record("github_profile", github_payload, "rp-gh"))

        assert os.listdir(tmp_path) == ["contributions.json"]

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_persistence_error(self, tmp_path):
        (tmp_path / "contributions.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await JsonFileLoader(str(tmp_path)).get("rp-001")


class TestStoreHelpers:

    def test_compare(self):
        assert compare(42, ">=", 10) is True
        assert compare(None, ">=", 0) is False
        assert compare("mumbai", "==", "mumbai") is True
        with pytest.raises(ValueError):
            compare(1, "<", 2)

    def test_target_providers(self):
        names = [b.data_type.value for b in target_providers(ContributionFilters(minFollowers=1))]
        assert names == ["github_profile"]

        assert len(target_providers(ContributionFilters())) == 3

    def test_factory_rejects_json_in_production(self):
        with pytest.raises(ValueError):
            create_store(Settings(STORAGE_BACKEND="json", ENVIRONMENT="production"))

    def test_fallback_only_outside_production(self, tmp_path):
        dev = Settings(JSON_FALLBACK_ENABLED=True, JSON_STORAGE_DIR=str(tmp_path))
        prod = Settings(JSON_FALLBACK_ENABLED=True, ENVIRONMENT="production")

        assert isinstance(create_fallback_store(dev), JsonFileLoader)
        assert create_fallback_store(prod) is None
