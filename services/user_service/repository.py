"""
User Service Repository

Database access layer for user operations using repository pattern.
"""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.user_service.auth_utils import password_hasher
from services.user_service.models import UserModel, UserRole

logger = structlog.get_logger(__name__)


class UserRepository:
    """Repository for user data access."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: Database session
        """
        self.session = session

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.USER,
    ) -> UserModel:
        """
        Create a new user.

        Args:
            email: User email
            password: Plain text password (will be hashed)
            first_name: First name
            last_name: Last name
            role: USER or ADMIN

        Returns:
            UserModel: Created user
        """
        user = UserModel(
            email=email.lower(),
            password_hash=password_hasher.hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )

        self.session.add(user)
        await self.session.flush()

        logger.info("User created", user_id=str(user.id), email=user.email, role=role.value)

        return user

    async def get_user_by_id(self, user_id: UUID) -> UserModel | None:
        """
        Get user by ID.

        Args:
            user_id: User UUID

        Returns:
            UserModel or None
        """
        result = await self.session.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> UserModel | None:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            UserModel or None
        """
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def verify_password(self, email: str, password: str) -> UserModel | None:
        """
        Verify user credentials.

        Args:
            email: User email
            password: Plain text password

        Returns:
            UserModel if credentials are valid, None otherwise
        """
        user = await self.get_user_by_email(email)

        if user is None:
            logger.warning("Login attempt for non-existent user", email=email)
            return None

        if not password_hasher.verify_password(password, user.password_hash):
            logger.warning("Login attempt with invalid password", email=email)
            return None

        logger.info("User authenticated", user_id=str(user.id), email=email)

        return user

    async def update_password(self, user: UserModel, new_password: str) -> UserModel:
        """Replace a user's password hash."""
        user.password_hash = password_hasher.hash_password(new_password)
        user.updated_at = datetime.utcnow()
        await self.session.flush()

        logger.info("Password changed", user_id=str(user.id))

        return user
