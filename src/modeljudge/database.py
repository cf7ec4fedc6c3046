"""
Database entities and session management
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from .errors import PersistenceError

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(128), index=True)
    verification_expires_at = Column(DateTime)
    reset_token = Column(String(128), index=True)
    reset_expires_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    conversations = relationship("Conversation", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = {"sqlite_autoincrement": True}


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    best_answer = Column(Text, nullable=False)
    model_used = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    # id of the first record in the thread; equals id for thread heads
    root_conversation_id = Column(Integer, nullable=True)

    user = relationship("User", back_populates="conversations")

    __table_args__ = (
        Index("ix_conversations_user_root", "user_id", "root_conversation_id"),
        # deleted thread ids must never be handed out again
        {"sqlite_autoincrement": True},
    )


class Database:
    """Owns the SQLAlchemy engine and hands out short-lived sessions"""

    def __init__(self, url: str, echo: bool = False):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.url = url
        self.engine = create_engine(url, echo=echo, connect_args=connect_args, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self):
        Base.metadata.create_all(self.engine)
        logger.info(f"Database schema ready ({self.engine.url.render_as_string(hide_password=True)})")

    def dispose(self):
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Transactional scope: commit on success, roll back and wrap DB errors"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database operation failed: {e}")
            raise PersistenceError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
