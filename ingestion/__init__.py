"""
Contribution pipeline components.

This package turns a verified proof into a stored, sellable record:

Modules:
    registry: Provider dispatch table (extractor, builder, table, filters)
    runner: Pipeline orchestrator that coordinates every phase
    exporter: Query/export facade with k-anonymity gated aggregates

Subpackages:
    extractors: Per-provider field extractors with tolerant parsing
    transformers: Anonymization, cohort assignment, record builders and
                  the indexed-field projector
    loaders: PostgreSQL and JSON-file stores with idempotent upserts

Architecture:
    Each submission runs through seven phases:

    1. Resolve the provider from the declared data type
    2. Validate that the payload is a non-empty JSON object
    3. Extract a typed normalized record
    4. Assign a deterministic cohort from bucketed attributes
    5. Build the sellable record
    6. Project indexed fields from the sellable record
    7. Upsert keyed by the proof id

    Everything up to the build is pure and synchronous; only the store is
    async.

Usage:
    from ingestion.runner import ContributionPipeline
    from ingestion.loaders.postgres_loader import PostgresLoader
    from ingestion.exporter import ContributionExporter

Example:
    pool = ConnectionPool()
    pipeline = ContributionPipeline(PostgresLoader(pool))

    record = await pipeline.process(ContributionSubmission(
        dataType="zomato_order_history",
        anonymizedData={"total_orders": 42, "total_gmv": 1530.50, "city": "Mumbai"},
        reclaimProofId="rp-001",
        userId="u-123",
    ))

    print(record.cohort_id, record.data_quality_score)

Error Handling:
    Unknown data types, malformed payloads and storage failures propagate
    as typed exceptions from core.exceptions. Nothing retries internally;
    resubmitting the same proof id is always safe.
"""

__all__ = [
    "ContributionPipeline",
    "ContributionExporter",
    "ProviderBundle",
    "get_provider",
    "ContributionStore",
    "PostgresLoader",
    "JsonFileLoader",
]
