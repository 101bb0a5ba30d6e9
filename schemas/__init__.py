"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models for the pipeline's input contract,
its intermediate records and the API surface:

Schemas:
    normalized: Typed per-provider records produced by the extractors
    contribution: Submission contract, cohort assignment, sellable record,
                  query filters and aggregate results
    api: API endpoint request/response schemas

Features:
    - camelCase aliases on the input contract, snake_case also accepted
    - Type coercion (numeric user ids become strings)
    - JSON serialization for the JSON store and exports
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.contribution import ContributionSubmission, ContributionFilters
    from schemas.api import IngestResponse, HealthCheckResponse

Example:
    submission = ContributionSubmission(
        dataType="github_profile",
        anonymizedData={"followers": 120, "contributions": 340},
        reclaimProofId="rp-gh-1",
        userId=42,
    )

    assert submission.user_id == "42"
"""

__all__ = [
    "ContributionSubmission",
    "ContributionFilters",
    "SellableRecord",
    "CohortAssignment",
    "CohortAggregate",
    "SuppressedAggregate",
    "IngestResponse",
    "HealthCheckResponse",
]
