"""Employee identity and branch affiliation tables."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authz.core.base import Base, CreatedAtMixin, UpdatedAtMixin, UUIDPrimaryKeyMixin


class Employee(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(64), nullable=False, default="sales")
    # Legacy single-branch assignment; employee_branches is authoritative.
    branch_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    branches = relationship(
        "EmployeeBranch",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="EmployeeBranch.created_at",
    )


class EmployeeBranch(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    __tablename__ = "employee_branches"

    employee_id: Mapped[str] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(String(36), nullable=False)

    employee = relationship("Employee", back_populates="branches")
