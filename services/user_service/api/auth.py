"""
Authentication API Endpoints

Provides registration, login, logout, password change and current-user lookup.
"""

import re
from datetime import datetime
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.user_service.auth_utils import jwt_manager, password_hasher
from services.user_service.dependencies import get_current_user
from services.user_service.models import UserModel, UserRole
from services.user_service.repository import UserRepository
from shared.config import settings
from shared.database import get_db
from shared.domain.exceptions import AuthenticationError, ConflictError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$")


def _check_password_policy(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


StrongPassword = Annotated[
    str, Field(min_length=8, max_length=100), AfterValidator(_check_password_policy)
]


# Request/Response Models
class RegisterRequest(BaseModel):
    """User registration request."""

    email: EmailStr
    password: StrongPassword
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    """Change password request."""

    old_password: str = Field(..., min_length=1)
    new_password: StrongPassword


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    created_at: datetime


class AuthResponse(BaseModel):
    """Authenticated session response."""

    status: str = "success"
    message: str
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


def _issue_session(user: UserModel, message: str) -> AuthResponse:
    access_token = jwt_manager.create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role.value,
    )
    return AuthResponse(
        message=message,
        user=UserResponse.model_validate(user),
        access_token=access_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest, db: AsyncSession = Depends(get_db)
) -> AuthResponse:
    """
    Register a new user.

    Creates the account and issues an access token.

    Raises:
        ValidationError: If the email is outside the institutional domain
        ConflictError: If the email is already registered
    """
    logger.info("Registration attempt", email=request.email)

    domain = request.email.split("@")[1].lower()
    if domain != settings.email_domain.lower():
        raise ValidationError(
            f"Email must end with @{settings.email_domain}",
            field="email",
        )

    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(request.email):
        raise ConflictError("Email is already registered")

    role = (
        UserRole.ADMIN
        if request.email.lower() in {e.lower() for e in settings.admin_emails}
        else UserRole.USER
    )

    try:
        user = await user_repo.create_user(
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
            role=role,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Email already in use", cause=e)

    logger.info("User registered successfully", user_id=str(user.id), email=user.email)

    return _issue_session(user, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """
    Authenticate user and issue a token.

    Raises:
        AuthenticationError: If authentication fails
    """
    logger.info("Login attempt", email=request.email)

    user = await UserRepository(db).verify_password(request.email, request.password)

    if user is None:
        raise AuthenticationError("Invalid credentials")

    logger.info("Login successful", user_id=str(user.id), email=user.email)

    return _issue_session(user, "Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: UserModel = Depends(get_current_user)) -> MessageResponse:
    """
    Log out.

    Tokens are stateless; the client discards its copy.
    """
    logger.info("User logged out", user_id=str(current_user.id))
    return MessageResponse(message="Logged out successfully")


@router.post("/changepass", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Change the caller's password.

    Raises:
        AuthenticationError: If the current password does not verify
    """
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_id(current_user.id)

    if user is None:
        raise AuthenticationError("The user belonging to this token no longer exists.")

    if not password_hasher.verify_password(request.old_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")

    await user_repo.update_password(user, request.new_password)
    await db.commit()

    return MessageResponse(message="Password changed successfully")


@router.get("/me", response_model=UserResponse)
async def me(current_user: UserModel = Depends(get_current_user)) -> UserResponse:
    """Get current authenticated user's profile."""
    return UserResponse.model_validate(current_user)
