"""
Unit tests for the query/export facade
"""

import io
import json
import pandas as pd
import pytest
from datetime import datetime
from ingestion.exporter import RECORD_COLUMNS, ContributionExporter
from models.base import DataType
from schemas.contribution import ContributionFilters, SellableRecord, SuppressedAggregate


def tricky_record():
    """A record whose text needs CSV quoting"""
    now = datetime(2025, 12, 15, 12, 0, 0)
    return SellableRecord(
        id="a1b2",
        user_id="u-1",
        reclaim_proof_id="rp-csv",
        data_type=DataType.ZOMATO_ORDER_HISTORY,
        sellable_data={
            "repeat_patterns": {
                "favorite_restaurants": ['Joe\'s "Best", Diner\nBranch 2'],
            },
            "transaction_data": {"summary": {"total_orders": 3}},
        },
        indexed_fields={
            "total_orders": 3,
            "frequency_tier": "occasional",
            "favorite_restaurants": ['Joe\'s "Best", Diner\nBranch 2'],
        },
        created_at=now,
        updated_at=now,
    )


class TestCsvExport:
    """CSV output must survive a round trip through a standard reader"""

    def test_round_trip_with_quotes_commas_newlines(self, json_store):
        record = tricky_record()
        content = ContributionExporter(json_store).to_csv([record])

        df = pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False)

        assert len(df) == 1
        row = df.iloc[0]
        assert row["reclaim_proof_id"] == "rp-csv"
        assert row["data_type"] == "zomato_order_history"
        assert row["status"] == "verified"
        assert row["created_at"] == "2025-12-15T12:00:00"
        assert json.loads(row["sellable_data_json"]) == record.sellable_data
        assert json.loads(row["favorite_restaurants"]) == ['Joe\'s "Best", Diner\nBranch 2']

    def test_columns(self, json_store):
        content = ContributionExporter(json_store).to_csv([tricky_record()])
        header = content.splitlines()[0].split(",")

        assert header[:len(RECORD_COLUMNS)] == RECORD_COLUMNS
        assert "total_orders" in header
        assert "follower_count" not in header
        assert header[-1] == "sellable_data_json"

    def test_empty_result_has_header_only(self, json_store):
        content = ContributionExporter(json_store).to_csv([])
        assert content.strip() == ",".join(RECORD_COLUMNS + ["sellable_data_json"])


class TestJsonExport:

    def test_jsonl_one_sellable_record_per_line(self):
        record = tricky_record()
        lines = ContributionExporter.to_jsonl([record, record]).splitlines()

        assert len(lines) == 2
        assert json.loads(lines[0]) == record.sellable_data

    def test_json_array(self):
        records = json.loads(ContributionExporter.to_json([tricky_record()]))

        assert records[0]["reclaim_proof_id"] == "rp-csv"
        assert records[0]["data_type"] == "zomato_order_history"

    @pytest.mark.asyncio
    async def test_export_result(self, json_store, make_record, github_payload):
        await json_store.upsert(make_record("github_profile", github_payload, "rp-gh"))
        result = await ContributionExporter(json_store).export(ContributionFilters(), "jsonl")

        assert result.media_type == "application/x-ndjson"
        assert result.filename.endswith(".jsonl")
        assert result.record_count == 1
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_unknown_format(self, json_store):
        with pytest.raises(ValueError):
            await ContributionExporter(json_store).export(ContributionFilters(), "xml")


class TestCohortAggregate:
    """k-anonymity gating"""

    @pytest.fixture
    def seed_cohort(self, json_store, make_record, zomato_summary_payload):
        async def _seed(members):
            cohort_id = None
            for i in range(members):
                record = make_record(
                    "zomato_order_history", zomato_summary_payload, f"rp-{i}", user_id=f"u-{i}"
                )
                cohort_id = record.cohort_id
                await json_store.upsert(record)
            return cohort_id
        return _seed

    @pytest.mark.asyncio
    async def test_below_threshold_is_suppressed(self, json_store, seed_cohort):
        cohort_id = await seed_cohort(3)
        result = await ContributionExporter(json_store).cohort_aggregate(cohort_id)

        assert isinstance(result, SuppressedAggregate)
        assert result.suppressed is True
        assert result.k_anonymity_threshold == 10
        assert "member_count" not in result.model_dump()

    @pytest.mark.asyncio
    async def test_at_threshold_returns_metrics(self, json_store, seed_cohort):
        cohort_id = await seed_cohort(3)
        result = await ContributionExporter(json_store, k_anonymity_threshold=3).cohort_aggregate(cohort_id)

        assert result.suppressed is False
        assert result.member_count == 3
        assert result.unique_users == 3
        assert result.data_type == "zomato_order_history"
        assert result.metrics["avg_total_gmv"] == 1530.5

    @pytest.mark.asyncio
    async def test_unknown_cohort(self, json_store):
        assert await ContributionExporter(json_store).cohort_aggregate("cohort_missing") is None


class TestStats:

    @pytest.mark.asyncio
    async def test_provider_totals(self, json_store, make_record, github_payload, zomato_summary_payload):
        await json_store.upsert(make_record("github_profile", github_payload, "rp-1", user_id="u-1"))
        await json_store.upsert(make_record("github_profile", github_payload, "rp-2", user_id="u-1"))
        await json_store.upsert(make_record("zomato_order_history", zomato_summary_payload, "rp-3"))

        stats = {s.data_type: s for s in await ContributionExporter(json_store).stats()}

        assert stats["github_profile"].total_contributions == 2
        assert stats["github_profile"].unique_users == 1
        assert stats["zomato_order_history"].total_contributions == 1
        assert stats["netflix_watch_history"].total_contributions == 0

    def test_export_metadata(self):
        metadata = ContributionExporter.export_metadata()

        assert metadata["formats"] == ["csv", "json", "jsonl"]
        assert "minOrders" in metadata["filters"]["provider_specific"]["zomato_order_history"]
        assert "dataType" in metadata["filters"]["common"]
        assert metadata["max_limit"] == 1000
