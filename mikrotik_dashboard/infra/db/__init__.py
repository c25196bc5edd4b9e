"""Database infrastructure module.

Key components:
- models: SQLAlchemy ORM models
- session: Database session management with connection pooling
"""

from mikrotik_dashboard.infra.db.models import Base, MikrotikDevice
from mikrotik_dashboard.infra.db.session import (
    DatabaseSessionManager,
    get_session_manager,
    reset_session_manager,
)

__all__ = [
    # Models
    "Base",
    "MikrotikDevice",
    # Session management
    "DatabaseSessionManager",
    "get_session_manager",
    "reset_session_manager",
]
