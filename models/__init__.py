"""
CupTally Database Models

SQLAlchemy ORM models and pydantic schemas for recorded matches.
"""

from models.base import Base, engine, SessionLocal, get_session, init_db, make_engine, make_session_factory
from models.match import Match, MatchParticipant, GameType
from models.shot import MadeShot
from models.schemas import PlayerIn, MatchCreate, MatchResponse, MadeShotResponse

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_session",
    "init_db",
    "make_engine",
    "make_session_factory",
    "Match",
    "MatchParticipant",
    "GameType",
    "MadeShot",
    "PlayerIn",
    "MatchCreate",
    "MatchResponse",
    "MadeShotResponse",
]
