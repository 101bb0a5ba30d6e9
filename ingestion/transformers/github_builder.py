"""
GitHub developer-profile builder
"""

from typing import Optional, Tuple
from datetime import datetime
from ingestion.transformers.builder import SellableRecordBuilder
from ingestion.transformers import anonymizer
from schemas.contribution import BuiltRecord, CohortAssignment
from schemas.normalized import GithubNormalized

QUALITY_WEIGHTS = {
    "username_present": 0.25,
    "follower_data": 0.25,
    "contribution_data": 0.25,
    "account_age_data": 0.25,
}


class GithubBuilder(SellableRecordBuilder):
    dataset_id = "myrad_github_v1"
    record_type = "developer_profile"
    schema_standard = "myrad_developer_intelligence_v1"

    def _developer_tier(self, normalized: GithubNormalized, age_years: Optional[float]) -> Optional[str]:
        if normalized.followers is None and normalized.contributions is None:
            return None
        return anonymizer.developer_tier(
            normalized.followers or 0,
            normalized.contributions or 0,
            age_years or 0.0,
        )

    def cohort_attributes(self, normalized: GithubNormalized) -> Tuple[Optional[str], ...]:
        # Account age is excluded: cohort ids never depend on the clock
        return (
            "github",
            self._developer_tier(normalized, None),
            anonymizer.contribution_tier(normalized.contributions),
            anonymizer.follower_tier(normalized.followers),
        )

    def build(
        self,
        normalized: GithubNormalized,
        cohort: CohortAssignment,
        generated_at: datetime
    ) -> BuiltRecord:
        followers = normalized.followers
        contributions = normalized.contributions

        age_years = self.years_between(normalized.created_at, generated_at)
        if age_years is not None:
            age_years = max(0.0, age_years)
        tier = self._developer_tier(normalized, age_years)

        quality = self.quality_score(
            {
                "username_present": 1.0 if normalized.has_username else 0.0,
                "follower_data": 1.0 if followers is not None else 0.0,
                "contribution_data": 1.0 if contributions is not None else 0.0,
                "account_age_data": 1.0 if normalized.created_at is not None else 0.0,
            },
            QUALITY_WEIGHTS,
            has_data=any([
                normalized.has_username,
                followers is not None,
                contributions is not None,
                normalized.created_at is not None,
            ]),
        )
        present = sum(1 for v in quality["score_breakdown"].values() if v)
        quality["field_completeness"] = f"{present}/{len(QUALITY_WEIGHTS)}"

        sellable = {
            **self.envelope(generated_at),
            "developer_profile": {
                "account_age_years": age_years,
                "creation_year": normalized.created_at.year if normalized.created_at else None,
                "tier": tier,
                "has_username": normalized.has_username,
            },
            "social_metrics": {
                "follower_count": followers,
                "follower_tier": anonymizer.follower_tier(followers),
                "follower_count_range": anonymizer.follower_range(followers),
                "is_influencer": followers >= 1000 if followers is not None else None,
            },
            "activity_metrics": {
                "yearly_contributions": contributions,
                "contribution_tier": anonymizer.contribution_tier(contributions),
                "is_active_contributor": contributions >= 100 if contributions is not None else None,
                "activity_level": anonymizer.activity_level(contributions),
            },
            "audience_segment": {
                "segment_id": cohort.cohort_id,
                "dmp_attributes": {
                    "interest_software_development": True,
                    "interest_open_source": bool(contributions and contributions >= 100),
                    "developer_tier": tier,
                    "influence_level": anonymizer.follower_tier(followers),
                },
            },
            "metadata": self.metadata(
                cohort,
                quality,
                ["developer_tiering", "social_bucketing", "activity_classification"],
            ),
        }

        insights = {
            "followers": followers,
            "contributions": contributions,
            "account_age_years": age_years,
            "developer_tier": tier,
        }

        return BuiltRecord(sellable_data=sellable, behavioral_insights=insights)
