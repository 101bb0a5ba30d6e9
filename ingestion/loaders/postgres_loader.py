"""
Load sellable records into PostgreSQL with upsert logic (idempotency)
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from sqlalchemy import Table, and_, func, select, true, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from core.database import ConnectionPool
from core.exceptions import (
    ConstraintViolationError, DatabaseConnectionError, PersistenceError,
    PipelineException, ProofConflictError, UpsertError
)
from ingestion.loaders.base import (
    ContributionStore, page, provider_filters_set, target_providers
)
from ingestion.registry import ProviderBundle, all_providers, get_provider
from ingestion.transformers.projector import apply_rules
from models.proof_registry import ProofRegistry
from schemas.contribution import ContributionFilters, SellableRecord
import asyncio
import logging

logger = logging.getLogger(__name__)

# Columns an upsert never overwrites
PRESERVED_COLUMNS = {"id", "user_id", "reclaim_proof_id", "created_at"}

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class PostgresLoader(ContributionStore):
    """
    Relational store, one table per provider.

    Ensures:
    - No duplicate rows on repeated submissions of a proof
    - Updates existing records when the proof is resubmitted
    - One transaction per record
    """

    name = "postgres"

    def __init__(self, pool: ConnectionPool):
        self.pool = pool
        try:
            self._insert = _INSERTS[pool.dialect_name]
        except KeyError:
            raise ValueError(f"No upsert support for dialect '{pool.dialect_name}'")

    @staticmethod
    def _table(bundle: ProviderBundle) -> Table:
        return bundle.model.__table__

    @asynccontextmanager
    async def _guard(self, operation: str, **context: Any) -> AsyncIterator[None]:
        """Translate driver and pool failures into PersistenceError"""
        context["operation"] = operation
        try:
            yield
        except PipelineException:
            raise
        except (
            sa_exc.TimeoutError, sa_exc.OperationalError, sa_exc.InterfaceError,
            OSError, asyncio.TimeoutError
        ) as e:
            raise DatabaseConnectionError(
                f"Datastore unavailable during {operation}",
                context=context,
                original_exception=e,
            )
        except sa_exc.IntegrityError as e:
            raise ConstraintViolationError(
                f"{operation} violated a datastore constraint",
                context=context,
                original_exception=e,
            )
        except sa_exc.SQLAlchemyError as e:
            error_class = UpsertError if operation == "UPSERT" else PersistenceError
            raise error_class(
                f"{operation} failed",
                context=context,
                original_exception=e,
            )

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _values(self, bundle: ProviderBundle, record: SellableRecord) -> Dict[str, Any]:
        values = {
            "id": record.id,
            "user_id": record.user_id,
            "reclaim_proof_id": record.reclaim_proof_id,
            "status": record.status,
            "processing_method": record.processing_method,
            "sellable_data": record.sellable_data,
            "metadata": record.metadata,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
        for column in bundle.indexed_columns:
            values[column] = record.indexed_fields.get(column)
        return values

    @staticmethod
    def _to_record(bundle: ProviderBundle, row: Any) -> SellableRecord:
        return SellableRecord(
            id=row["id"],
            user_id=row["user_id"],
            reclaim_proof_id=row["reclaim_proof_id"],
            data_type=bundle.data_type,
            status=row["status"],
            processing_method=row["processing_method"],
            sellable_data=row["sellable_data"],
            metadata=row["metadata"],
            indexed_fields={c: row[c] for c in bundle.indexed_columns},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, record: SellableRecord) -> SellableRecord:
        """
        INSERT ... ON CONFLICT (reclaim_proof_id) DO UPDATE, in one
        transaction.

        The proof id is claimed in proof_registry first, within the same
        transaction. Its primary key serializes racing submissions, so a
        proof owned by another provider is rejected even under concurrency.
        """
        bundle = get_provider(record.data_type)
        table = self._table(bundle)
        registry = ProofRegistry.__table__
        values = self._values(bundle, record)

        claim = self._insert(registry).values(
            reclaim_proof_id=record.reclaim_proof_id,
            data_type=bundle.data_type,
            created_at=record.created_at,
        ).on_conflict_do_nothing(index_elements=["reclaim_proof_id"])

        stmt = self._insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["reclaim_proof_id"],
            set_={
                name: stmt.excluded[name]
                for name in values
                if name not in PRESERVED_COLUMNS
            },
        ).returning(*table.c)

        async with self._guard("UPSERT", table_name=table.name, reclaim_proof_id=record.reclaim_proof_id):
            async with self.pool.session() as session:
                async with session.begin():
                    # The claim must be the first statement: it takes the write lock
                    await session.execute(claim)
                    owner = await session.scalar(
                        select(registry.c.data_type).where(
                            registry.c.reclaim_proof_id == record.reclaim_proof_id
                        )
                    )
                    if owner != bundle.data_type:
                        raise ProofConflictError(
                            "Proof id already stored under another data type",
                            context={
                                "reclaim_proof_id": record.reclaim_proof_id,
                                "table_name": table.name,
                                "existing_data_type": getattr(owner, "value", owner),
                            },
                        )

                    result = await session.execute(stmt)
                    row = result.mappings().one()

        logger.info(f"Upserted proof into {table.name}")
        return self._to_record(bundle, row)

    async def reindex(self, data_type: str) -> int:
        """Recompute every indexed column from stored sellable_data"""
        bundle = get_provider(data_type)
        table = self._table(bundle)
        updated = 0

        async with self._guard("REINDEX", table_name=table.name):
            async with self.pool.session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(
                            table.c.id, table.c.updated_at, table.c.sellable_data,
                            *[table.c[c] for c in bundle.indexed_columns]
                        )
                    )
                    for row in result.mappings().all():
                        projected = apply_rules(bundle.projection, row["sellable_data"] or {})
                        if all(row[c] == v for c, v in projected.items()):
                            continue
                        await session.execute(
                            update(table)
                            .where(table.c.id == row["id"])
                            .values(updated_at=row["updated_at"], **projected)
                        )
                        updated += 1

        logger.info(f"Reindexed {updated} rows in {table.name}")
        return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, reclaim_proof_id: str) -> Optional[SellableRecord]:
        async with self._guard("SELECT", reclaim_proof_id=reclaim_proof_id):
            async with self.pool.session() as session:
                for bundle in all_providers():
                    table = self._table(bundle)
                    result = await session.execute(
                        select(table).where(table.c.reclaim_proof_id == reclaim_proof_id)
                    )
                    row = result.mappings().first()
                    if row is not None:
                        return self._to_record(bundle, row)
        return None

    def _conditions(self, bundle: ProviderBundle, filters: ContributionFilters) -> List[Any]:
        table = self._table(bundle)
        conditions = []
        if filters.user_id:
            conditions.append(table.c.user_id == filters.user_id)
        if filters.start_date:
            conditions.append(table.c.created_at >= filters.start_date)
        if filters.end_date:
            conditions.append(table.c.created_at <= filters.end_date)

        for key in provider_filters_set(filters):
            column_name, op = bundle.filters[key]
            column = table.c[column_name]
            expected = getattr(filters, key)
            if op == ">=":
                conditions.append(column >= expected)
            else:
                conditions.append(column == expected)
        return conditions

    async def query(self, filters: ContributionFilters) -> Tuple[List[SellableRecord], int]:
        """
        Each provider table contributes at most offset+limit rows; the
        merged list is ordered by created_at desc and sliced.
        """
        bundles = target_providers(filters)
        records: List[SellableRecord] = []
        total = 0

        # User ids stay out of error context and logs
        context = {k: v for k, v in filters.applied().items() if k != "userId"}
        async with self._guard("SELECT", filters=context):
            async with self.pool.session() as session:
                for bundle in bundles:
                    table = self._table(bundle)
                    where = and_(true(), *self._conditions(bundle, filters))

                    total += await session.scalar(
                        select(func.count()).select_from(table).where(where)
                    )
                    result = await session.execute(
                        select(table)
                        .where(where)
                        .order_by(table.c.created_at.desc(), table.c.reclaim_proof_id.desc())
                        .limit(filters.offset + filters.limit)
                    )
                    records.extend(self._to_record(bundle, row) for row in result.mappings().all())

        return page(records, filters), total

    async def cohort_size(self, cohort_id: str) -> int:
        size = 0
        async with self._guard("AGGREGATE", cohort_id=cohort_id):
            async with self.pool.session() as session:
                for bundle in all_providers():
                    table = self._table(bundle)
                    size += await session.scalar(
                        select(func.count()).select_from(table).where(table.c.cohort_id == cohort_id)
                    )
        return size

    async def aggregate(self, data_type: str, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        bundle = get_provider(data_type)
        table = self._table(bundle)
        columns = [
            func.count().label("member_count"),
            func.count(func.distinct(table.c.user_id)).label("unique_users"),
        ]
        for name in bundle.aggregate_columns:
            columns.append(func.avg(table.c[name]).label(f"avg_{name}"))
            columns.append(func.sum(table.c[name]).label(f"sum_{name}"))

        stmt = select(*columns).select_from(table)
        if cohort_id is not None:
            stmt = stmt.where(table.c.cohort_id == cohort_id)

        async with self._guard("AGGREGATE", table_name=table.name, cohort_id=cohort_id):
            async with self.pool.session() as session:
                row = (await session.execute(stmt)).mappings().one()

        metrics = {}
        for name in bundle.aggregate_columns:
            for prefix in ("avg", "sum"):
                value = row[f"{prefix}_{name}"]
                metrics[f"{prefix}_{name}"] = round(float(value), 2) if value is not None else None

        return {
            "member_count": row["member_count"],
            "unique_users": row["unique_users"],
            "metrics": metrics,
        }

    async def ping(self) -> bool:
        async with self._guard("PING"):
            return await self.pool.ping()

    async def close(self) -> None:
        await self.pool.dispose()
