"""
SQLAlchemy models for the sign server. Only the audit log is persisted; issued signatures,
ZAKs and access tokens never are.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class AuditLog(Base):
    """One row per sign request outcome."""
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    uuid: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    meeting_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[int | None] = mapped_column(nullable=True)  # final signed role
    status_code: Mapped[int] = mapped_column(nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)  # success | fail
