"""
Integration tests for failure scenarios
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock
from core.config import settings
from core.exceptions import (
    ConstraintViolationError, DatabaseConnectionError, MalformedInputError,
    PersistenceError, ProofConflictError, RetryableError, UnknownDataTypeError
)
from ingestion.loaders.json_loader import JsonFileLoader
from ingestion.runner import ContributionPipeline
from schemas.contribution import ContributionFilters


def failing_store(error=None):
    """Store whose writes fail the way an unreachable database does"""
    store = Mock()
    store.name = "postgres"
    store.upsert = AsyncMock(side_effect=error or DatabaseConnectionError(
        "Datastore unavailable during UPSERT",
        context={"operation": "UPSERT"},
    ))
    return store


class TestRejectedInput:
    """Bad input is rejected before anything is written"""

    @pytest.mark.asyncio
    async def test_unknown_data_type(self, make_submission, github_payload):
        store = Mock()
        store.upsert = AsyncMock()
        pipeline = ContributionPipeline(store)

        with pytest.raises(UnknownDataTypeError) as exc_info:
            await pipeline.process(make_submission("twitter_profile", github_payload, "rp-x"))

        store.upsert.assert_not_called()
        assert exc_info.value.context["data_type"] == "twitter_profile"
        assert "github_profile" in exc_info.value.context["supported"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, [], "", "not json", "[1, 2]", None, 42])
    async def test_malformed_payload(self, make_submission, payload):
        store = Mock()
        store.upsert = AsyncMock()
        pipeline = ContributionPipeline(store)

        with pytest.raises(MalformedInputError):
            await pipeline.process(make_submission("zomato_order_history", payload, "rp-x"))

        store.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_type_leaves_store_empty(self, postgres_store, make_submission, github_payload):
        pipeline = ContributionPipeline(postgres_store)

        with pytest.raises(UnknownDataTypeError):
            await pipeline.process(make_submission("spotify_history", github_payload, "rp-x"))

        _, total = await postgres_store.query(ContributionFilters())
        assert total == 0


class TestPersistenceFailures:
    """Storage failures surface to the caller"""

    @pytest.mark.asyncio
    async def test_database_down_propagates(self, rp001_submission):
        pipeline = ContributionPipeline(failing_store())

        with pytest.raises(DatabaseConnectionError) as exc_info:
            await pipeline.process(rp001_submission)

        assert isinstance(exc_info.value, PersistenceError)
        assert isinstance(exc_info.value, RetryableError)

    @pytest.mark.asyncio
    async def test_fallback_store_used_in_development(self, monkeypatch, tmp_path, rp001_submission):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        fallback = JsonFileLoader(str(tmp_path))
        pipeline = ContributionPipeline(failing_store(), fallback)

        record = await pipeline.process(rp001_submission)

        assert record.processing_method == "fallback"
        stored = await fallback.get("rp-001")
        assert stored is not None
        assert stored.processing_method == "fallback"
        assert stored.indexed_fields["total_orders"] == 42

    @pytest.mark.asyncio
    async def test_fallback_ignored_in_production(self, monkeypatch, tmp_path, rp001_submission):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        fallback = JsonFileLoader(str(tmp_path))
        pipeline = ContributionPipeline(failing_store(), fallback)

        with pytest.raises(DatabaseConnectionError):
            await pipeline.process(rp001_submission)

        assert await fallback.get("rp-001") is None

    @pytest.mark.asyncio
    async def test_batch_all_failed(self, make_submission, github_payload):
        pipeline = ContributionPipeline(failing_store())
        submissions = [make_submission("github_profile", github_payload, f"rp-{i}") for i in range(3)]

        result = await pipeline.process_batch(submissions)

        assert result["status"] == "failed"
        assert result["records_failed"] == 3
        assert {d["error_type"] for d in result["error_details"]} == {"DatabaseConnectionError"}

    @pytest.mark.asyncio
    async def test_constraint_violation_skips_fallback(self, monkeypatch, tmp_path, rp001_submission):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        fallback = JsonFileLoader(str(tmp_path))
        error = ConstraintViolationError("UPSERT violated a datastore constraint", context={"operation": "UPSERT"})
        pipeline = ContributionPipeline(failing_store(error), fallback)

        with pytest.raises(ConstraintViolationError) as exc_info:
            await pipeline.process(rp001_submission)

        assert not isinstance(exc_info.value, RetryableError)
        assert await fallback.get("rp-001") is None


class TestConcurrentSubmissions:
    """Racing submissions of one proof id"""

    @pytest.mark.asyncio
    async def test_same_proof_two_providers(self, postgres_store, make_submission,
                                            zomato_summary_payload, netflix_payload):
        pipeline = ContributionPipeline(postgres_store)

        results = await asyncio.gather(
            pipeline.process(make_submission("zomato_order_history", zomato_summary_payload, "rp-dup")),
            pipeline.process(make_submission("netflix_watch_history", netflix_payload, "rp-dup")),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ProofConflictError) for r in results) == 1
        _, total = await postgres_store.query(ContributionFilters())
        assert total == 1

    @pytest.mark.asyncio
    async def test_same_proof_same_provider(self, postgres_store, make_submission, github_payload):
        pipeline = ContributionPipeline(postgres_store)
        submission = make_submission("github_profile", github_payload, "rp-gh")

        first, second = await asyncio.gather(pipeline.process(submission), pipeline.process(submission))

        _, total = await postgres_store.query(ContributionFilters())
        assert total == 1
        assert (await postgres_store.get("rp-gh")).id in {first.id, second.id}
