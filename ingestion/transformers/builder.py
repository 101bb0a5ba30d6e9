"""
Base class for sellable-record builders.

A builder is a pure function of (normalized record, cohort, generated_at):
the same inputs always produce the same tree. `generated_at` is the only
clock value a builder sees; ages and recency are measured against it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from datetime import datetime
from pydantic import BaseModel
from core.config import settings
from schemas.contribution import BuiltRecord, CohortAssignment


def completeness_tier(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "partial"
    return "limited"


def round1(value: float) -> float:
    return round(value * 10) / 10


def pct(part: float, whole: float) -> int:
    """Integer percentage, 0 when the whole is empty"""
    if not whole:
        return 0
    return int(round(part / whole * 100))


class SellableRecordBuilder(ABC):
    """
    Common envelope for every provider's sellable record.

    Subclasses supply the provider sections, the cohort attributes and the
    quality signals; this class owns the metadata block and the 0-100
    quality scale.
    """

    dataset_id: str
    record_type: str
    schema_standard: str

    def __init__(
        self,
        schema_version: str,
        k_anonymity_threshold: Optional[int] = None,
        data_window_days: Optional[int] = None
    ):
        self.schema_version = schema_version
        self.k_anonymity_threshold = k_anonymity_threshold or settings.MIN_K_ANONYMITY
        self.data_window_days = data_window_days or settings.DATA_WINDOW_DAYS

    @abstractmethod
    def cohort_attributes(self, normalized: BaseModel) -> Tuple[Optional[str], ...]:
        """Bucketed attributes that define the record's cohort"""
        pass

    @abstractmethod
    def build(
        self,
        normalized: BaseModel,
        cohort: CohortAssignment,
        generated_at: datetime
    ) -> BuiltRecord:
        pass

    # ------------------------------------------------------------------
    # Shared sections
    # ------------------------------------------------------------------

    def envelope(self, generated_at: datetime) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "dataset_id": self.dataset_id,
            "record_type": self.record_type,
            "generated_at": generated_at.isoformat(),
        }

    def metadata(
        self,
        cohort: CohortAssignment,
        quality: Dict[str, Any],
        enrichment_applied: Optional[list] = None
    ) -> Dict[str, Any]:
        return {
            "source": "reclaim_protocol",
            "schema_standard": self.schema_standard,
            "verification": {
                "status": "zk_verified",
                "proof_type": "zero_knowledge",
                "attestor": "reclaim_network",
            },
            "privacy_compliance": {
                "pii_stripped": True,
                "k_anonymity_threshold": cohort.k_anonymity_threshold,
                "k_anonymity_compliant": None,
                "gdpr_compatible": True,
                "ccpa_compatible": True,
                "cohort_id": cohort.cohort_id,
            },
            "data_quality": {
                **quality,
                "schema_version": self.schema_version,
                "enrichment_applied": enrichment_applied or [],
            },
        }

    @staticmethod
    def quality_score(
        signals: Dict[str, float],
        weights: Dict[str, float],
        has_data: bool = True
    ) -> Dict[str, Any]:
        """
        Weighted coverage score on the canonical 0-100 integer scale.

        Each signal is a coverage ratio in [0, 1]; a missing section
        contributes 0, so dropping one can only lower the score.
        """
        if not has_data:
            return {
                "score": 0,
                "score_breakdown": {},
                "weights": weights,
                "completeness": "empty",
            }

        clamped = {k: min(1.0, max(0.0, signals.get(k, 0.0))) for k in weights}
        weighted = sum(clamped[k] * w for k, w in weights.items())
        score = int(round(weighted * 100))

        return {
            "score": score,
            "score_breakdown": {k: int(round(v * 100)) for k, v in clamped.items()},
            "weights": weights,
            "completeness": completeness_tier(score),
        }

    @staticmethod
    def years_between(start: Optional[datetime], end: datetime) -> Optional[float]:
        if start is None:
            return None
        return round1((end - start).days / 365.25)
