"""
CarbonLedger - ORM Models
=========================
SQLAlchemy ORM models per lo stato persistito del ledger.

Gli account sono persistiti come testo: solo id di tipo str sono ammessi.
"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LedgerMetaORM(Base):
    """Scalari di stato (admin, paused, fee, contatori, supply)"""
    __tablename__ = 'ledger_meta'

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)


class BalanceORM(Base):
    """Balance CCT per account"""
    __tablename__ = 'balances'

    account = Column(String(256), primary_key=True)
    amount = Column(BigInteger, nullable=False)


class OffsetterORM(Base):
    """Whitelist offsetter (enabled=False = revocato)"""
    __tablename__ = 'offsetters'

    account = Column(String(256), primary_key=True)
    enabled = Column(Boolean, nullable=False)


class OffsetRecordORM(Base):
    """Offset record"""
    __tablename__ = 'offset_records'

    offset_id = Column(Integer, primary_key=True)
    owner = Column(String(256), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    pool = Column(String(256), nullable=False)
    # amount * fee può superare int64
    payment = Column(String(40), nullable=False)
    metadata_text = Column('metadata', String(512), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    status = Column(String(16), nullable=False)
    verified = Column(Boolean, nullable=False)

    __table_args__ = (
        Index('idx_offset_records_status', 'status'),
    )


class UserAggregateORM(Base):
    """Rollup per account"""
    __tablename__ = 'user_aggregates'

    account = Column(String(256), primary_key=True)
    total_offset = Column(BigInteger, nullable=False)
    active_offset = Column(BigInteger, nullable=False)
    retired_offset = Column(BigInteger, nullable=False)
    last_offset_time = Column(BigInteger, nullable=False)


class OffsetVersionORM(Base):
    __tablename__ = 'offset_versions'

    offset_id = Column(Integer, primary_key=True)
    version = Column(Integer, primary_key=True)
    updated_amount = Column(BigInteger, nullable=False)
    notes = Column(String(256), nullable=False)
    timestamp = Column(BigInteger, nullable=False)


class OffsetLicenseORM(Base):
    __tablename__ = 'offset_licenses'

    offset_id = Column(Integer, primary_key=True)
    licensee = Column(String(256), primary_key=True)
    expiry = Column(BigInteger, nullable=False)
    terms = Column(String(256), nullable=False)
    active = Column(Boolean, nullable=False)


class OffsetCategoryORM(Base):
    __tablename__ = 'offset_categories'

    offset_id = Column(Integer, primary_key=True)
    category = Column(String(64), nullable=False)
    tags = Column(JSON, nullable=False)


class CollaboratorORM(Base):
    __tablename__ = 'collaborators'

    offset_id = Column(Integer, primary_key=True)
    collaborator = Column(String(256), primary_key=True)
    role = Column(String(64), nullable=False)
    permissions = Column(JSON, nullable=False)
    added_at = Column(BigInteger, nullable=False)


class RevenueShareORM(Base):
    __tablename__ = 'revenue_shares'

    offset_id = Column(Integer, primary_key=True)
    participant = Column(String(256), primary_key=True)
    percentage = Column(Integer, nullable=False)
    total_received = Column(BigInteger, nullable=False)


# Ordine di cancellazione/scrittura in save_state
ALL_MODELS = (
    LedgerMetaORM,
    BalanceORM,
    OffsetterORM,
    OffsetRecordORM,
    UserAggregateORM,
    OffsetVersionORM,
    OffsetLicenseORM,
    OffsetCategoryORM,
    CollaboratorORM,
    RevenueShareORM,
)


__all__ = [
    'Base',
    'LedgerMetaORM',
    'BalanceORM',
    'OffsetterORM',
    'OffsetRecordORM',
    'UserAggregateORM',
    'OffsetVersionORM',
    'OffsetLicenseORM',
    'OffsetCategoryORM',
    'CollaboratorORM',
    'RevenueShareORM',
    'ALL_MODELS',
]
