"""
Query and export facade over a ContributionStore.

Buyers read through here: filtered pages, file exports (json, csv, jsonl),
k-anonymity gated cohort aggregates, and provider-wide statistics.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from core.config import settings
from ingestion.loaders.base import ContributionStore
from ingestion.registry import PROVIDER_FILTER_KEYS, all_providers, get_provider
from schemas.contribution import (
    CohortAggregate, ContributionFilters, ProviderStats, SellableRecord, SuppressedAggregate
)
import json
import logging
import pandas as pd

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "json": "application/json",
    "csv": "text/csv",
    "jsonl": "application/x-ndjson",
}

RECORD_COLUMNS = [
    "id", "user_id", "reclaim_proof_id", "data_type", "status", "created_at", "updated_at",
]


@dataclass
class ExportResult:
    content: str
    media_type: str
    filename: str
    record_count: int
    total: int


def _cell(value: Any) -> Any:
    """Flatten one value into something a CSV cell can hold"""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class ContributionExporter:

    def __init__(self, store: ContributionStore, k_anonymity_threshold: Optional[int] = None):
        self.store = store
        self.k_anonymity_threshold = k_anonymity_threshold or settings.MIN_K_ANONYMITY

    async def query(self, filters: ContributionFilters) -> Tuple[List[SellableRecord], int]:
        records, total = await self.store.query(filters)
        logger.info(f"Query matched {total} records, returning {len(records)}")
        return records, total

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(self, filters: ContributionFilters, export_format: str = "json") -> ExportResult:
        export_format = export_format.lower()
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {export_format}")

        records, total = await self.query(filters)
        if export_format == "csv":
            content = self.to_csv(records)
        elif export_format == "jsonl":
            content = self.to_jsonl(records)
        else:
            content = self.to_json(records)

        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        logger.info(f"Exported {len(records)} records as {export_format}")
        return ExportResult(
            content=content,
            media_type=EXPORT_FORMATS[export_format],
            filename=f"myrad_export_{stamp}.{export_format}",
            record_count=len(records),
            total=total,
        )

    @staticmethod
    def to_json(records: List[SellableRecord]) -> str:
        return json.dumps(
            [r.model_dump(mode="json") for r in records],
            ensure_ascii=False,
            indent=2,
        )

    @staticmethod
    def to_jsonl(records: List[SellableRecord]) -> str:
        return "".join(json.dumps(r.sellable_data, ensure_ascii=False) + "\n" for r in records)

    @staticmethod
    def csv_columns(records: List[SellableRecord]) -> List[str]:
        """Record columns, the union of indexed columns in provider order, then the payload"""
        present = {r.data_type for r in records}
        indexed: List[str] = []
        for bundle in all_providers():
            if bundle.data_type not in present:
                continue
            for column in bundle.indexed_columns:
                if column not in indexed:
                    indexed.append(column)
        return RECORD_COLUMNS + indexed + ["sellable_data_json"]

    def to_csv(self, records: List[SellableRecord]) -> str:
        columns = self.csv_columns(records)
        rows = []
        for record in records:
            row = {c: _cell(getattr(record, c)) for c in RECORD_COLUMNS}
            for column in columns[len(RECORD_COLUMNS):-1]:
                row[column] = _cell(record.indexed_fields.get(column))
            row["sellable_data_json"] = json.dumps(record.sellable_data, ensure_ascii=False)
            rows.append(row)

        df = pd.DataFrame(rows, columns=columns, dtype=object)
        return df.to_csv(index=False, lineterminator="\n")

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def cohort_aggregate(
        self,
        cohort_id: str
    ) -> Optional[Union[CohortAggregate, SuppressedAggregate]]:
        """
        None for an unknown cohort; a suppressed result below the
        k-anonymity threshold; otherwise counts and metrics.
        """
        size = await self.store.cohort_size(cohort_id)
        if size == 0:
            return None

        if size < self.k_anonymity_threshold:
            logger.info(f"Cohort {cohort_id} below k={self.k_anonymity_threshold}, suppressed")
            return SuppressedAggregate(
                cohort_id=cohort_id,
                k_anonymity_threshold=self.k_anonymity_threshold,
            )

        for bundle in all_providers():
            summary = await self.store.aggregate(bundle.data_type.value, cohort_id)
            if summary["member_count"]:
                return CohortAggregate(
                    cohort_id=cohort_id,
                    data_type=bundle.data_type,
                    member_count=summary["member_count"],
                    unique_users=summary["unique_users"],
                    k_anonymity_threshold=self.k_anonymity_threshold,
                    metrics=summary["metrics"],
                )
        return None

    async def stats(self, data_type: Optional[str] = None) -> List[ProviderStats]:
        bundles = [get_provider(data_type)] if data_type else all_providers()
        results = []
        for bundle in bundles:
            summary = await self.store.aggregate(bundle.data_type.value)
            results.append(ProviderStats(
                data_type=bundle.data_type,
                total_contributions=summary["member_count"],
                unique_users=summary["unique_users"],
                metrics=summary["metrics"],
            ))
        return results

    @staticmethod
    def export_metadata() -> Dict[str, Any]:
        fields = ContributionFilters.model_fields
        provider_filters = {
            bundle.data_type.value: sorted(fields[key].alias for key in bundle.filters)
            for bundle in all_providers()
        }
        common = [
            fields[name].alias or name
            for name in fields
            if name not in PROVIDER_FILTER_KEYS
        ]
        return {
            "formats": sorted(EXPORT_FORMATS),
            "data_types": [b.data_type.value for b in all_providers()],
            "filters": {
                "common": common,
                "provider_specific": provider_filters,
            },
            "default_limit": fields["limit"].default,
            "max_limit": 1000,
            "csv_columns": RECORD_COLUMNS + ["<indexed columns>", "sellable_data_json"],
            "k_anonymity_threshold": settings.MIN_K_ANONYMITY,
        }
