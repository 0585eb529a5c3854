"""Workspace model — tenant/organization boundary."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, false, text
from sqlalchemy.orm import Mapped, mapped_column

from workspace_admin.db.session import Base


class Workspace(Base):
    """Workspace (tenant) owning members and invitations."""

    __tablename__ = "workspaces"
    __table_args__ = (
        # Exactly one superadmin home workspace system-wide.
        Index(
            "uq_workspaces_superadmin",
            "is_superadmin_workspace",
            unique=True,
            postgresql_where=text("is_superadmin_workspace"),
            sqlite_where=text("is_superadmin_workspace = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_superadmin_workspace: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_protected(self) -> bool:
        """Default and superadmin workspaces are never deleted."""
        return self.is_default or self.is_superadmin_workspace
