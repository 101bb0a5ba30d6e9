# ============================================================================
# File: ingestion/runner.py
# Description: Contribution pipeline orchestrator with typed error handling
# ============================================================================
"""
Contribution Pipeline - turns one verified proof into a stored sellable record.

This module provides the orchestration with:
- Provider dispatch before any parsing or write
- Tolerant extraction (gaps degrade to nulls, never abort)
- Deterministic cohort assignment and record building
- Idempotent upsert keyed by the proof id
- Optional dev-only JSON fallback when the primary store fails
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import uuid4
import json
import logging

from core.config import settings
from core.exceptions import (
    MalformedInputError, NonRetryableError, PersistenceError, PipelineException
)
from ingestion.loaders.base import ContributionStore
from ingestion.registry import get_provider
from ingestion.transformers.anonymizer import assign_cohort, strip_pii
from ingestion.transformers.projector import apply_rules
from schemas.contribution import ContributionSubmission, SellableRecord

logger = logging.getLogger(__name__)


class ContributionPipeline:
    """
    Contribution orchestrator

    Responsibilities:
    - Resolve provider → validate → extract → cohort → build → project → upsert
    - Propagate unknown types, malformed payloads and storage failures as
      typed exceptions
    - Never retry; a retry by the caller with the same proof id is safe
    """

    def __init__(
        self,
        store: ContributionStore,
        fallback_store: Optional[ContributionStore] = None
    ):
        self.store = store
        self.fallback_store = fallback_store
        if fallback_store is not None and settings.is_production:
            logger.warning("Fallback store ignored in production")
            self.fallback_store = None

    @staticmethod
    def _payload(submission: ContributionSubmission) -> Dict[str, Any]:
        payload = submission.anonymized_data
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise MalformedInputError(
                    "anonymizedData is not valid JSON",
                    context={"data_type": submission.data_type, "payload_type": "str"},
                    original_exception=e,
                )

        if not isinstance(payload, dict) or not payload:
            raise MalformedInputError(
                "anonymizedData must be a non-empty JSON object",
                context={
                    "data_type": submission.data_type,
                    "payload_type": type(payload).__name__,
                },
            )
        return payload

    def prepare(
        self,
        submission: ContributionSubmission,
        generated_at: Optional[datetime] = None
    ) -> SellableRecord:
        """
        Run the pure phases: everything up to, but not including, the write.

        Args:
            submission: Validated input contract
            generated_at: Clock value for the record; defaults to now (UTC)

        Raises:
            UnknownDataTypeError: data type has no provider
            MalformedInputError: payload is not a usable JSON object
        """
        now = generated_at or datetime.utcnow()

        # --------------------------------------------------
        # PHASE 1: RESOLVE PROVIDER
        # --------------------------------------------------
        bundle = get_provider(submission.data_type)
        logger.info(f"Processing {bundle.data_type.value} contribution")

        # --------------------------------------------------
        # PHASE 2: VALIDATE PAYLOAD
        # --------------------------------------------------
        payload = self._payload(submission)

        # --------------------------------------------------
        # PHASE 3: EXTRACTION
        # --------------------------------------------------
        normalized = bundle.extractor.extract(payload)

        # --------------------------------------------------
        # PHASE 4: COHORT ASSIGNMENT
        # --------------------------------------------------
        cohort = assign_cohort(
            bundle.builder.cohort_attributes(normalized),
            bundle.builder.k_anonymity_threshold,
        )
        logger.info(f"Assigned cohort {cohort.cohort_id}")

        # --------------------------------------------------
        # PHASE 5: BUILD SELLABLE RECORD
        # --------------------------------------------------
        built = bundle.builder.build(normalized, cohort, now)

        # --------------------------------------------------
        # PHASE 6: PROJECT INDEXED FIELDS
        # --------------------------------------------------
        indexed = apply_rules(bundle.projection, built.sellable_data)

        return SellableRecord(
            id=str(uuid4()),
            user_id=submission.user_id,
            reclaim_proof_id=submission.reclaim_proof_id,
            data_type=bundle.data_type,
            sellable_data=built.sellable_data,
            metadata=strip_pii(built.behavioral_insights),
            indexed_fields=indexed,
            created_at=now,
            updated_at=now,
        )

    async def process(
        self,
        submission: ContributionSubmission,
        generated_at: Optional[datetime] = None
    ) -> SellableRecord:
        """
        Run one submission through every phase.

        Returns:
            The stored record as the store returned it

        Raises:
            UnknownDataTypeError: data type has no provider
            MalformedInputError: payload is not a usable JSON object
            PersistenceError: the store failed and no fallback applied
        """
        try:
            record = self.prepare(submission, generated_at)

            # --------------------------------------------------
            # PHASE 7: UPSERT
            # --------------------------------------------------
            return await self._store(record)

        except PipelineException as e:
            logger.error(
                f"Contribution processing failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            raise

    async def _store(self, record: SellableRecord) -> SellableRecord:
        try:
            stored = await self.store.upsert(record)
            logger.info(f"Stored contribution in {self.store.name} store")
            return stored

        except NonRetryableError:
            # Conflicts and constraint violations would fail the same way in the fallback
            raise

        except PersistenceError as e:
            if self.fallback_store is None:
                raise

            logger.warning(
                f"Primary store failed, writing to {self.fallback_store.name} fallback: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return await self.fallback_store.upsert(
                record.model_copy(update={"processing_method": "fallback"})
            )

    async def process_batch(self, submissions: List[ContributionSubmission]) -> Dict[str, Any]:
        """
        Process submissions one by one; a failing record does not stop the
        batch.

        Returns:
            Dictionary with run statistics:
            - status: "success", "partial_success" or "failed"
            - records_processed / records_failed
            - error_details: one entry per failed submission
        """
        processed = 0
        error_details = []

        for index, submission in enumerate(submissions):
            try:
                await self.process(submission)
                processed += 1
            except PipelineException as e:
                error_details.append({
                    "index": index,
                    "reclaim_proof_id": submission.reclaim_proof_id,
                    "error_type": type(e).__name__,
                    "error_message": e.message,
                })

        failed = len(error_details)
        if failed == 0:
            status = "success"
        elif processed:
            status = "partial_success"
        else:
            status = "failed"

        result = {
            "status": status,
            "records_processed": processed,
            "records_failed": failed,
        }
        if error_details:
            result["error_details"] = error_details

        logger.info(f"Batch completed: {status} - Processed: {processed}, Failed: {failed}")
        return result
