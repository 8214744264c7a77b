"""User service — lookup and creation of user records.

Learn: This is the collaborator the session flows lean on. It knows
about the database and about password hashing; it knows nothing about
tokens or cookies. Emails are stored lower-cased so lookups are
case-insensitive without a functional index; usernames are trimmed.
"""

import uuid
from functools import lru_cache
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.password import hash_password, verify_password
from inkwell.db.models import User
from inkwell.errors import Conflict


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_username(username: str) -> str:
    return username.strip()


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """A real bcrypt hash at the configured cost, never matched by anyone."""
    return hash_password(uuid.uuid4().hex)


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            uid = uuid.UUID(user_id)
        except (ValueError, TypeError):
            return None
        return await self.db.get(User, uid)

    async def check_credentials(self, email: str, password: str) -> Optional[User]:
        """Return the user iff the email exists and the password matches."""
        user = await self.get_by_email(email)
        if user is None:
            # Pay the bcrypt cost anyway so unknown emails are not faster
            verify_password(password, _dummy_hash())
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def find_conflict(self, username: str, email: str) -> Optional[str]:
        """Name the field that is already taken, if any. Email wins ties."""
        email = normalize_email(email)
        username = normalize_username(username)
        result = await self.db.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        existing = result.scalars().all()
        if any(u.email == email for u in existing):
            return "email"
        if existing:
            return "username"
        return None

    async def create_user(self, username: str, email: str, password: str) -> User:
        """Create and commit a user. Raises Conflict on duplicates.

        Learn: The pre-check gives a precise field name; the IntegrityError
        branch covers two registrations racing between check and commit.
        """
        username = normalize_username(username)
        field = await self.find_conflict(username, email)
        if field:
            raise Conflict(field)

        user = User(
            username=username,
            email=normalize_email(email),
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict(await self.find_conflict(username, email) or "username")
        await self.db.refresh(user)
        return user
