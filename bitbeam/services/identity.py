from __future__ import annotations

import logging

from passlib.context import CryptContext
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from bitbeam.core.errors import AuthorizationError, ConflictError, PersistenceError
from bitbeam.core.identifiers import generate_identifier
from bitbeam.models import User

logger = logging.getLogger("bitbeam.identity")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class IdentityStore:
    """Opaque upload keys mapped to usernames in the ``users`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def register(self, username: str, password: str) -> User:
        """Create an identity with a fresh key.

        Raises ConflictError when ``username`` is taken, including the case
        where a concurrent registration wins the unique constraint.
        """
        try:
            with Session(self.engine) as session:
                taken = session.exec(select(User).where(User.username == username)).first()
                if taken is not None:
                    raise ConflictError("username exists", operation="register", identifier=username)
                user = User(key=generate_identifier(), username=username, password=get_password_hash(password))
                session.add(user)
                session.commit()
                session.refresh(user)
                return user
        except IntegrityError as e:
            raise ConflictError("username exists", operation="register", identifier=username) from e
        except SQLAlchemyError as e:
            raise PersistenceError("user insert failed", operation="register", identifier=username) from e

    def authenticate(self, key: str) -> str:
        """Return the username owning ``key`` or raise AuthorizationError."""
        user = self._get(User.key == key, "authenticate")
        if user is None:
            raise AuthorizationError("unknown key", operation="authenticate")
        return user.username

    def find_by_username(self, username: str) -> User | None:
        return self._get(User.username == username, "find_by_username")

    def _get(self, clause, operation: str) -> User | None:
        try:
            with Session(self.engine) as session:
                return session.exec(select(User).where(clause)).first()
        except SQLAlchemyError as e:
            raise PersistenceError("user lookup failed", operation=operation) from e
