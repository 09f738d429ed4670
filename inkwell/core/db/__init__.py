from inkwell.core.db.config import (
    async_engine,
    AsyncSessionLocal,
    Base,
    create_engine,
    create_session_factory,
    dispose_db,
    init_db,
)

__all__ = [
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "create_engine",
    "create_session_factory",
    "dispose_db",
    "init_db",
]
