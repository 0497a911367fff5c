"""
RefreshToken model: one row per login session on one device.
Fields:
- user_id (String(36)) - FK to users.id
- device_id - caller supplied or server generated
- token_hash - SHA-256 of the raw refresh token (raw value is never stored)
- expires_at, revoked, last_used_at
- version_id - optimistic concurrency counter, bumped on every UPDATE

Rows are revoked, never deleted, so the table doubles as an audit trail.
At most one non-revoked row exists per (user_id, device_id).
"""
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, Integer, text
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, as_naive_utc


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String(128), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    version_id = Column(Integer, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        Index(
            "uq_refresh_tokens_active_device",
            "user_id",
            "device_id",
            unique=True,
            sqlite_where=text("revoked = 0"),
            postgresql_where=text("NOT revoked"),
        ),
    )

    def is_expired(self, now: datetime) -> bool:
        return as_naive_utc(self.expires_at) <= as_naive_utc(now)

    def is_usable(self, now: datetime) -> bool:
        return not self.revoked and not self.is_expired(now)

    def revoke(self, now: datetime):
        self.revoked = True
        self.last_used_at = now

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} device={self.device_id} revoked={self.revoked}>"
