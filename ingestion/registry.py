"""
Provider dispatch table.

Every layer looks a provider up here instead of branching on the data type
string: the pipeline for its extractor and builder, the stores for the
table and filter columns, the exporter for aggregate columns.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Type, Union
from core.config import settings
from core.exceptions import UnknownDataTypeError
from ingestion.extractors.base import FieldExtractor
from ingestion.extractors.github_extractor import GithubExtractor
from ingestion.extractors.netflix_extractor import NetflixExtractor
from ingestion.extractors.zomato_extractor import ZomatoExtractor
from ingestion.transformers.builder import SellableRecordBuilder
from ingestion.transformers.github_builder import GithubBuilder
from ingestion.transformers.netflix_builder import NetflixBuilder
from ingestion.transformers.projector import PROJECTIONS, FieldRule
from ingestion.transformers.zomato_builder import ZomatoBuilder
from models.base import Base, DataType
from models.github_contribution import GithubContribution
from models.netflix_contribution import NetflixContribution
from models.zomato_contribution import ZomatoContribution

# Filter attribute -> (column, operator)
FilterSpec = Dict[str, Tuple[str, str]]


@dataclass(frozen=True)
class ProviderBundle:
    data_type: DataType
    extractor: FieldExtractor
    builder: SellableRecordBuilder
    model: Type[Base]
    projection: List[FieldRule]
    filters: FilterSpec = field(default_factory=dict)
    aggregate_columns: Tuple[str, ...] = ()

    @property
    def indexed_columns(self) -> List[str]:
        return [rule.column for rule in self.projection]


def _build_registry() -> Dict[DataType, ProviderBundle]:
    return {
        DataType.ZOMATO_ORDER_HISTORY: ProviderBundle(
            data_type=DataType.ZOMATO_ORDER_HISTORY,
            extractor=ZomatoExtractor(),
            builder=ZomatoBuilder(settings.ZOMATO_SCHEMA_VERSION),
            model=ZomatoContribution,
            projection=PROJECTIONS[DataType.ZOMATO_ORDER_HISTORY],
            filters={
                "min_orders": ("total_orders", ">="),
                "min_gmv": ("total_gmv", ">="),
                "lifestyle_segment": ("lifestyle_segment", "=="),
                "city_cluster": ("city_cluster", "=="),
            },
            aggregate_columns=("total_orders", "total_gmv", "avg_order_value", "data_quality_score"),
        ),
        DataType.GITHUB_PROFILE: ProviderBundle(
            data_type=DataType.GITHUB_PROFILE,
            extractor=GithubExtractor(),
            builder=GithubBuilder(settings.GITHUB_SCHEMA_VERSION),
            model=GithubContribution,
            projection=PROJECTIONS[DataType.GITHUB_PROFILE],
            filters={
                "min_followers": ("follower_count", ">="),
                "min_contributions": ("contribution_count", ">="),
                "developer_tier": ("developer_tier", "=="),
            },
            aggregate_columns=("follower_count", "contribution_count", "data_quality_score"),
        ),
        DataType.NETFLIX_WATCH_HISTORY: ProviderBundle(
            data_type=DataType.NETFLIX_WATCH_HISTORY,
            extractor=NetflixExtractor(),
            builder=NetflixBuilder(settings.NETFLIX_SCHEMA_VERSION),
            model=NetflixContribution,
            projection=PROJECTIONS[DataType.NETFLIX_WATCH_HISTORY],
            filters={
                "min_titles": ("total_titles_watched", ">="),
                "min_watch_hours": ("total_watch_hours", ">="),
                "engagement_tier": ("engagement_tier", "=="),
                "subscription_tier": ("subscription_tier", "=="),
            },
            aggregate_columns=(
                "total_titles_watched", "total_watch_hours", "binge_score", "data_quality_score"
            ),
        ),
    }


PROVIDERS = _build_registry()

# Every provider-specific filter attribute, across all bundles
PROVIDER_FILTER_KEYS = sorted({key for bundle in PROVIDERS.values() for key in bundle.filters})


def get_provider(data_type: Union[str, DataType]) -> ProviderBundle:
    try:
        return PROVIDERS[DataType(data_type)]
    except ValueError as e:
        raise UnknownDataTypeError(
            f"Unsupported data type: {data_type}",
            context={
                "data_type": str(data_type),
                "supported": [t.value for t in DataType],
            },
            original_exception=e,
        )


def all_providers() -> List[ProviderBundle]:
    return list(PROVIDERS.values())
