"""
JSON-file store for local development.

All records live in one `contributions.json` keyed by proof id. Writes go
through a temp file and os.replace so a crash never leaves a half-written
file; an asyncio lock serializes read-modify-write cycles in-process.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from core.config import settings
from core.exceptions import PersistenceError, ProofConflictError, UpsertError
from ingestion.loaders.base import (
    ContributionStore, compare, page, provider_filters_set, summarize, target_providers
)
from ingestion.registry import get_provider
from ingestion.transformers.projector import apply_rules
from schemas.contribution import ContributionFilters, SellableRecord
import asyncio
import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

STORE_FILENAME = "contributions.json"


class JsonFileLoader(ContributionStore):
    name = "json"

    def __init__(self, storage_dir: Optional[str] = None):
        self.storage_dir = Path(storage_dir or settings.JSON_STORAGE_DIR)
        self.path = self.storage_dir / STORE_FILENAME
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data.get("contributions", {})

    def _write(self, contributions: Dict[str, Dict[str, Any]]) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, prefix=".contributions-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"contributions": contributions}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                "Failed to read JSON store",
                context={"operation": "SELECT", "storage_path": str(self.path)},
                original_exception=e,
            )

    async def _records(self) -> List[SellableRecord]:
        return [SellableRecord.model_validate(r) for r in (await self._load()).values()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, record: SellableRecord) -> SellableRecord:
        async with self._lock:
            contributions = await self._load()
            existing = contributions.get(record.reclaim_proof_id)

            if existing is not None:
                if existing["data_type"] != record.data_type.value:
                    raise ProofConflictError(
                        "Proof id already stored under another data type",
                        context={
                            "reclaim_proof_id": record.reclaim_proof_id,
                            "storage_path": str(self.path),
                        },
                    )
                record = record.model_copy(update={
                    "id": existing["id"],
                    "user_id": existing["user_id"],
                    "created_at": SellableRecord.model_validate(existing).created_at,
                })

            contributions[record.reclaim_proof_id] = record.model_dump(mode="json")
            try:
                await asyncio.to_thread(self._write, contributions)
            except OSError as e:
                raise UpsertError(
                    "Failed to write JSON store",
                    context={
                        "operation": "UPSERT",
                        "storage_path": str(self.path),
                        "reclaim_proof_id": record.reclaim_proof_id,
                    },
                    original_exception=e,
                )

        logger.info(f"Upserted proof into {self.path}")
        return record

    async def reindex(self, data_type: str) -> int:
        bundle = get_provider(data_type)
        updated = 0
        async with self._lock:
            contributions = await self._load()
            for key, raw in contributions.items():
                if raw["data_type"] != bundle.data_type.value:
                    continue
                projected = apply_rules(bundle.projection, raw.get("sellable_data") or {})
                if raw.get("indexed_fields") != projected:
                    raw["indexed_fields"] = projected
                    updated += 1
            if updated:
                try:
                    await asyncio.to_thread(self._write, contributions)
                except OSError as e:
                    raise PersistenceError(
                        "Failed to write JSON store",
                        context={"operation": "REINDEX", "storage_path": str(self.path)},
                        original_exception=e,
                    )

        logger.info(f"Reindexed {updated} {bundle.data_type.value} records in {self.path}")
        return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, reclaim_proof_id: str) -> Optional[SellableRecord]:
        raw = (await self._load()).get(reclaim_proof_id)
        return SellableRecord.model_validate(raw) if raw is not None else None

    @staticmethod
    def _matches(record: SellableRecord, filters: ContributionFilters) -> bool:
        if filters.user_id and record.user_id != filters.user_id:
            return False
        if filters.start_date and record.created_at < filters.start_date:
            return False
        if filters.end_date and record.created_at > filters.end_date:
            return False

        bundle = get_provider(record.data_type)
        for key in provider_filters_set(filters):
            column, op = bundle.filters[key]
            if not compare(record.indexed_fields.get(column), op, getattr(filters, key)):
                return False
        return True

    async def query(self, filters: ContributionFilters) -> Tuple[List[SellableRecord], int]:
        types = {b.data_type for b in target_providers(filters)}
        matched = [
            r for r in await self._records()
            if r.data_type in types and self._matches(r, filters)
        ]
        return page(matched, filters), len(matched)

    async def cohort_size(self, cohort_id: str) -> int:
        return sum(1 for r in await self._records() if r.cohort_id == cohort_id)

    async def aggregate(self, data_type: str, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        bundle = get_provider(data_type)
        members = [
            r for r in await self._records()
            if r.data_type == bundle.data_type and (cohort_id is None or r.cohort_id == cohort_id)
        ]
        return {
            "member_count": len(members),
            "unique_users": len({r.user_id for r in members}),
            "metrics": summarize(bundle.aggregate_columns, [r.indexed_fields for r in members]),
        }

    async def ping(self) -> bool:
        await self._load()
        return True
