"""
Storage interface shared by the relational and JSON-file backends
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple
from ingestion.registry import ProviderBundle, all_providers, get_provider
from schemas.contribution import ContributionFilters, SellableRecord


class ContributionStore(ABC):
    """
    Persistence gateway for sellable records.

    Upserts are keyed by `reclaim_proof_id`: a repeated proof overwrites
    status, payload, metadata, indexed fields and `updated_at`, and keeps
    `id`, `user_id` and `created_at`. Failures surface as PersistenceError;
    stores never retry.
    """

    name: str

    @abstractmethod
    async def upsert(self, record: SellableRecord) -> SellableRecord:
        pass

    @abstractmethod
    async def get(self, reclaim_proof_id: str) -> Optional[SellableRecord]:
        pass

    @abstractmethod
    async def query(self, filters: ContributionFilters) -> Tuple[List[SellableRecord], int]:
        """Page of records newest first, plus the total matching count"""
        pass

    @abstractmethod
    async def cohort_size(self, cohort_id: str) -> int:
        pass

    @abstractmethod
    async def aggregate(self, data_type: str, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Counts and numeric summaries for one provider.

        Returns {"member_count", "unique_users", "metrics"} where metrics
        holds avg_<column> and sum_<column> for each aggregate column.
        """
        pass

    @abstractmethod
    async def reindex(self, data_type: str) -> int:
        """Recompute indexed fields from stored sellable_data"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass


def target_providers(filters: ContributionFilters) -> List[ProviderBundle]:
    """
    Providers a filter set can match.

    An explicit data type narrows to that provider; each provider-specific
    filter drops the providers that do not define it.
    """
    if filters.data_type:
        bundles = [get_provider(filters.data_type)]
    else:
        bundles = all_providers()

    for key in provider_filters_set(filters):
        bundles = [b for b in bundles if key in b.filters]
    return bundles


def provider_filters_set(filters: ContributionFilters) -> List[str]:
    keys = {key for bundle in all_providers() for key in bundle.filters}
    return sorted(k for k in keys if getattr(filters, k) is not None)


def compare(value: Any, op: str, expected: Any) -> bool:
    if value is None:
        return False
    if op == ">=":
        return value >= expected
    if op == "==":
        return value == expected
    raise ValueError(f"Unsupported filter operator: {op}")


def summarize(columns: Iterable[str], rows: List[Dict[str, Any]]) -> Dict[str, Optional[float]]:
    """avg_/sum_ for each column over the non-null values"""
    metrics: Dict[str, Optional[float]] = {}
    for column in columns:
        values = [row[column] for row in rows if row.get(column) is not None]
        metrics[f"avg_{column}"] = round(sum(values) / len(values), 2) if values else None
        metrics[f"sum_{column}"] = round(sum(values), 2) if values else None
    return metrics


def page(records: List[SellableRecord], filters: ContributionFilters) -> List[SellableRecord]:
    """Newest first, then slice to the requested window"""
    ordered = sorted(records, key=lambda r: (r.created_at, r.reclaim_proof_id), reverse=True)
    return ordered[filters.offset:filters.offset + filters.limit]
