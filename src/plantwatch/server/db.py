"""User persistence for the local server.

Users live in a single ``users`` table managed through SQLAlchemy. The store
is synchronous; SQLite lookups are fast enough to run on the event loop, and
the expensive part of authentication (bcrypt) is offloaded separately.
"""

from __future__ import annotations

import datetime
import enum
import logging
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from ..exceptions import AuthenticationError

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class Base(DeclarativeBase):
    """Declarative base for plantwatch ORM models."""

    pass


class UserRole(str, enum.Enum):
    """Account role."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """Dashboard user account.

    Attributes:
        id: Primary key
        email: Lowercased, unique login email
        password: bcrypt hash
        first_name: Optional first name
        last_name: Optional last name
        role: USER or ADMIN
        is_active: Disabled accounts cannot log in or use tokens
        created_at: Creation time (UTC)
        updated_at: Last modification time (UTC)
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, default=UserRole.USER
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> dict[str, Any]:
        """Public representation (never includes the password hash)."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r}, role={self.role!r})"


class UserStore:
    """CRUD access to user accounts.

    Example:
        ```python
        store = UserStore("sqlite:///plantwatch.db")
        store.create_tables()
        user = store.create_user("a@example.com", password_hash)
        ```
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine = create_engine(database_url)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self._engine)
        _LOGGER.debug("User tables ready at %s", self._engine.url.render_as_string())

    def dispose(self) -> None:
        """Release pooled database connections."""
        self._engine.dispose()

    def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Insert a new user.

        Raises:
            AuthenticationError: If the email is already registered (status 400)
        """
        user = User(
            email=email.lower(),
            password=password_hash,
            first_name=first_name or None,
            last_name=last_name or None,
            role=role,
        )
        with self._sessions() as session:
            session.add(user)
            try:
                session.commit()
            except IntegrityError as err:
                session.rollback()
                raise AuthenticationError(
                    "User with this email already exists", status=400
                ) from err
        _LOGGER.info("Created user %s (id %d)", user.email, user.id)
        return user

    def get_by_id(self, user_id: int) -> User | None:
        with self._sessions() as session:
            return session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        with self._sessions() as session:
            return session.scalars(select(User).where(User.email == email.lower())).first()

    def _update(self, user_id: int, **values: Any) -> User | None:
        with self._sessions() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            for name, value in values.items():
                setattr(user, name, value)
            session.commit()
            return user

    def update_profile(
        self, user_id: int, first_name: str | None, last_name: str | None
    ) -> User | None:
        """Replace a user's names (empty values are stored as NULL)."""
        return self._update(user_id, first_name=first_name or None, last_name=last_name or None)

    def set_password(self, user_id: int, password_hash: str) -> User | None:
        return self._update(user_id, password=password_hash)

    def set_active(self, user_id: int, active: bool) -> User | None:
        return self._update(user_id, is_active=active)


__all__ = ["Base", "User", "UserRole", "UserStore"]
