from datetime import datetime
from sqlalchemy import Column, String, DateTime, Enum
from models.base import Base, DataType


class ProofRegistry(Base):
    """
    One row per reclaim proof id across all provider tables.

    The primary key makes the database itself reject a second provider
    claiming a proof, even when two submissions race.
    """
    __tablename__ = "proof_registry"

    reclaim_proof_id = Column(String(255), primary_key=True)
    data_type = Column(Enum(DataType), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
