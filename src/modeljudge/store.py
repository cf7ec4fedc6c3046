"""
Stores - persistence for conversation threads and user accounts
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from .database import Conversation, Database, User
from .errors import ConflictError, NotFoundError, PersistenceError
from .models import ConversationRecord

logger = logging.getLogger(__name__)


def _to_record(row: Conversation) -> ConversationRecord:
    return ConversationRecord(
        id=row.id,
        owner_id=row.user_id,
        question=row.question,
        best_answer=row.best_answer,
        model=row.model_used,
        created_at=row.created_at,
        root_id=row.root_conversation_id,
    )


class ThreadStore(ABC):
    """Append-only log of question/answer records grouped into threads.

    A thread is identified by the id of its first record; that record is
    the thread head (``root_id == id``). Every operation is scoped to the
    owning user.
    """

    @abstractmethod
    def append(self, owner_id: int, question: str, best_answer: str, model: str,
               root_id: Optional[int] = None) -> int:
        """Insert a record; with no root_id it becomes its own root.

        A given root_id must be a thread head owned by owner_id, otherwise
        NotFoundError is raised and nothing is written.
        """
        pass

    @abstractmethod
    def get_root(self, owner_id: int, root_id: int) -> Optional[ConversationRecord]:
        pass

    @abstractmethod
    def list_roots(self, owner_id: int, limit: int) -> List[ConversationRecord]:
        """Thread heads, newest first"""
        pass

    @abstractmethod
    def list_thread(self, owner_id: int, root_id: int) -> List[ConversationRecord]:
        """All records of one thread, oldest first"""
        pass

    @abstractmethod
    def delete_thread(self, owner_id: int, root_id: int) -> bool:
        """Delete a whole thread; False when no such root exists for the owner"""
        pass

    @abstractmethod
    def repair_orphans(self, owner_id: Optional[int] = None) -> int:
        """Point records with a null root at themselves; returns the count"""
        pass


class SqlThreadStore(ThreadStore):
    """ThreadStore backed by the ``conversations`` table"""

    def __init__(self, database: Database):
        self.db = database

    def append(self, owner_id: int, question: str, best_answer: str, model: str,
               root_id: Optional[int] = None) -> int:
        with self.db.session_scope() as session:
            if root_id is not None and not self._root_exists(session, owner_id, root_id):
                raise NotFoundError(f"Thread {root_id} not found")

            row = Conversation(
                user_id=owner_id,
                question=question,
                best_answer=best_answer,
                model_used=model,
                root_conversation_id=root_id,
            )
            session.add(row)
            if root_id is None:
                # flush assigns the id; the self-reference commits with the insert
                session.flush()
                row.root_conversation_id = row.id
            session.flush()
            record_id = row.id

        logger.debug(f"Appended conversation {record_id} (owner={owner_id}, root={root_id or record_id})")
        return record_id

    @staticmethod
    def _root_exists(session, owner_id: int, root_id: int) -> bool:
        return session.execute(
            select(Conversation.id).where(
                Conversation.id == root_id,
                Conversation.user_id == owner_id,
                Conversation.root_conversation_id == Conversation.id,
            )
        ).first() is not None

    def get_root(self, owner_id: int, root_id: int) -> Optional[ConversationRecord]:
        with self.db.session_scope() as session:
            row = session.execute(
                select(Conversation).where(
                    Conversation.id == root_id,
                    Conversation.user_id == owner_id,
                    Conversation.root_conversation_id == Conversation.id,
                )
            ).scalar_one_or_none()
            return _to_record(row) if row else None

    def list_roots(self, owner_id: int, limit: int) -> List[ConversationRecord]:
        with self.db.session_scope() as session:
            rows = session.execute(
                select(Conversation)
                .where(
                    Conversation.user_id == owner_id,
                    Conversation.root_conversation_id == Conversation.id,
                )
                .order_by(Conversation.created_at.desc(), Conversation.id.desc())
                .limit(limit)
            ).scalars().all()
            return [_to_record(r) for r in rows]

    def list_thread(self, owner_id: int, root_id: int) -> List[ConversationRecord]:
        with self.db.session_scope() as session:
            rows = session.execute(
                select(Conversation)
                .where(
                    Conversation.user_id == owner_id,
                    Conversation.root_conversation_id == root_id,
                )
                .order_by(Conversation.created_at.asc(), Conversation.id.asc())
            ).scalars().all()
            return [_to_record(r) for r in rows]

    def delete_thread(self, owner_id: int, root_id: int) -> bool:
        with self.db.session_scope() as session:
            root = session.execute(
                select(Conversation.id)
                .where(
                    Conversation.id == root_id,
                    Conversation.user_id == owner_id,
                    Conversation.root_conversation_id == Conversation.id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if root is None:
                return False

            result = session.execute(
                delete(Conversation).where(
                    Conversation.user_id == owner_id,
                    Conversation.root_conversation_id == root_id,
                )
            )
            deleted = result.rowcount

        logger.info(f"Deleted thread {root_id} for owner {owner_id} ({deleted} records)")
        return True

    def repair_orphans(self, owner_id: Optional[int] = None) -> int:
        stmt = (
            update(Conversation)
            .where(Conversation.root_conversation_id.is_(None))
            .values(root_conversation_id=Conversation.id)
        )
        if owner_id is not None:
            stmt = stmt.where(Conversation.user_id == owner_id)

        with self.db.session_scope() as session:
            repaired = session.execute(stmt).rowcount

        if repaired:
            logger.warning(f"Repaired {repaired} conversation records with a null root")
        return repaired


class SqlUserStore:
    """User account persistence backed by the ``users`` table"""

    def __init__(self, database: Database):
        self.db = database

    def create(self, name: str, email: str, password_hash: str,
               verification_token: str, verification_expires_at: datetime) -> int:
        try:
            with self.db.session_scope() as session:
                user = User(
                    name=name,
                    email=email.lower(),
                    password_hash=password_hash,
                    is_verified=False,
                    verification_token=verification_token,
                    verification_expires_at=verification_expires_at,
                )
                session.add(user)
                session.flush()
                return user.id
        except PersistenceError as e:
            # unique(email) violation from a concurrent signup
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError("Email already registered") from e
            raise

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self.db.session_scope() as session:
            return session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        with self.db.session_scope() as session:
            return session.execute(
                select(User).where(func.lower(User.email) == email.strip().lower())
            ).scalar_one_or_none()

    def get_by_verification_token(self, token: str) -> Optional[User]:
        with self.db.session_scope() as session:
            return session.execute(
                select(User).where(User.verification_token == token)
            ).scalar_one_or_none()

    def get_by_reset_token(self, token: str) -> Optional[User]:
        with self.db.session_scope() as session:
            return session.execute(
                select(User).where(User.reset_token == token)
            ).scalar_one_or_none()

    def mark_verified(self, user_id: int, token: str) -> bool:
        """Consume a verification token; False if it was already used"""
        with self.db.session_scope() as session:
            result = session.execute(
                update(User)
                .where(User.id == user_id, User.verification_token == token)
                .values(is_verified=True, verification_token=None, verification_expires_at=None)
            )
            return result.rowcount == 1

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime):
        with self.db.session_scope() as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(reset_token=token, reset_expires_at=expires_at)
            )

    def reset_password(self, user_id: int, token: str, password_hash: str) -> bool:
        """Consume a reset token and store the new hash; False if already used"""
        with self.db.session_scope() as session:
            result = session.execute(
                update(User)
                .where(User.id == user_id, User.reset_token == token)
                .values(password_hash=password_hash, reset_token=None, reset_expires_at=None)
            )
            return result.rowcount == 1
