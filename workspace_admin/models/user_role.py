"""UserRole model — global role assignment (superadmin / user)."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workspace_admin.db.session import Base
from workspace_admin.models.enums import GlobalRole


class UserRole(Base):
    """Global role for a user. Read-only to the invitation core."""

    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=GlobalRole.USER)
