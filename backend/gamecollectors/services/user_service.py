"""
GameCollectors Backend: User Service
====================================

What:  Registration of new users.
How:   Validates locally, forwards the credentials to the auth service, and
       records the email in `users` once the auth service has accepted it.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gamecollectors.exceptions import ConflictError, ValidationError
from gamecollectors.models.user import User
from gamecollectors.services.auth_client import AuthServiceClient, UpstreamResponse, auth_client

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 10
PASSWORD_MAX_LENGTH = 1000


class UserService:
    def __init__(self, client: AuthServiceClient = auth_client):
        self.client = client

    async def email_exists(self, db: AsyncSession, email: str) -> bool:
        result = await db.execute(select(User.id).where(User.email == email))
        return result.scalar_one_or_none() is not None

    async def register(self, db: AsyncSession, email: str, password: str) -> UpstreamResponse:
        """
        Register `email` with the auth service.

        Returns:
            The auth service's answer. Only a 2xx answer creates the local record.

        Raises:
            ConflictError: The email is already registered
            ValidationError: Password length outside 10..1000
            UpstreamServiceError / CircuitBreakerOpenError: Auth service unavailable
        """
        if await self.email_exists(db, email):
            raise ConflictError(
                message="That email is already registered.",
                context={"field": "email"},
            )

        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            raise ValidationError(
                message=(
                    f"Password must be between {PASSWORD_MIN_LENGTH} and "
                    f"{PASSWORD_MAX_LENGTH} characters long."
                ),
                field="password",
            )

        upstream = await self.client.register(email, password)
        if not upstream.ok:
            logger.info("Auth service refused registration (HTTP %d)", upstream.status_code)
            return upstream

        db.add(User(email=email))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                message="That email is already registered.",
                context={"field": "email"},
            )

        logger.info("User registered: %s", email)
        return upstream


user_service = UserService()
