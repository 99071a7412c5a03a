"""SQLAlchemy models package.

All mapped classes are imported here so `Base.metadata` is complete no matter
which module is imported first (Alembic, tests, application start-up).
"""

from authz.models import employee, role  # noqa: F401
