"""SQLAlchemy models for coarecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChartOfAccount(Base):
    """Chart of Accounts entry; master accounts have no shop_id."""

    __tablename__ = "chart_of_accounts"

    id = Column(Integer, primary_key=True)
    program_id = Column(Integer, nullable=False, index=True)
    shop_id = Column(Integer, nullable=True, index=True)
    account_number = Column(String, nullable=False)
    account_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    account_type = Column(String, nullable=True)
    dr_cr_default = Column(String, nullable=True)
    line_type = Column(String, nullable=True)
    sequence_number = Column(Integer, nullable=True)
    indent_level = Column(Integer, nullable=True)
    parent_account = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_master_account = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    modified_at = Column(DateTime, nullable=True, onupdate=_utcnow)

    # Unique account number per program/shop scope (shop_id NULL = master chart)
    __table_args__ = (
        UniqueConstraint("program_id", "shop_id", "account_number", name="uq_coa_scope_number"),
    )

    # Relationships
    shop_matchings = relationship(
        "AccountMatching",
        back_populates="shop_account",
        foreign_keys="AccountMatching.shop_account_id",
    )


class AccountMatching(Base):
    """Match candidate between a shop account and a master account."""

    __tablename__ = "account_matchings"

    id = Column(Integer, primary_key=True)
    shop_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=False)
    master_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=False)
    confidence = Column(Float, nullable=False)
    method = Column(String, nullable=False)
    status = Column(String, nullable=False)
    details = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_matching_shop_status", "shop_account_id", "status"),)

    # Relationships
    shop_account = relationship(
        "ChartOfAccount", back_populates="shop_matchings", foreign_keys=[shop_account_id]
    )
    master_account = relationship("ChartOfAccount", foreign_keys=[master_account_id])


class StagedImportJob(Base):
    """Staged spreadsheet rows awaiting column mapping and import."""

    __tablename__ = "staged_import_jobs"

    job_id = Column(String, primary_key=True)
    file_name = Column(String, nullable=False)
    sheet_name = Column(String, nullable=False)
    program_id = Column(Integer, nullable=False)
    shop_id = Column(Integer, nullable=True)
    import_kind = Column(String, nullable=False)
    detected_columns = Column(JSON, nullable=False)
    rows = Column(JSON, nullable=False)
    row_numbers = Column(JSON, nullable=True)
    job_metadata = Column(JSON, nullable=True)
    status = Column(String, nullable=False)
    result = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed_at = Column(DateTime, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are shared across the matching worker threads
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
