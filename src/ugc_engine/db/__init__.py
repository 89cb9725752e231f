"""Database layer."""

from ugc_engine.db.models import (
    Base,
    BriefModel,
    CostLogModel,
    GenerationModel,
    VideoModel,
)
from ugc_engine.db.session import (
    SessionLocal,
    get_session,
    get_session_context,
    init_db,
    session_scope,
)

__all__ = [
    "Base",
    "SessionLocal",
    "get_session",
    "get_session_context",
    "init_db",
    "session_scope",
    # Models
    "BriefModel",
    "CostLogModel",
    "GenerationModel",
    "VideoModel",
]
