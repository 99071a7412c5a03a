"""Role table.

`permissions` is stored as JSON but historically arrives in several shapes
(a list, a JSON-encoded string, an object, or NULL); the column is kept
untyped on purpose and normalized at the role store boundary.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from authz.core.base import Base, CreatedAtMixin, UpdatedAtMixin, UUIDPrimaryKeyMixin


class RoleRecord(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    permissions: Mapped[Optional[Any]] = mapped_column(JSON(none_as_null=True), nullable=True)
    is_active: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=True)
