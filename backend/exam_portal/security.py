import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users.jwt import generate_jwt

from .config import settings
from .db import get_user_db
from .models.user_model import User
from .services import cascade_service

logger = logging.getLogger(__name__)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.SECRET
    verification_token_secret = settings.SECRET

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User %s registered with role %s", user.id, user.role)

    async def on_after_update(self, user: User, update_dict: dict, request: Optional[Request] = None):
        logger.info("User %s updated fields %s", user.id, sorted(update_dict))

    async def on_after_login(self, user: User, request: Optional[Request] = None, response=None):
        logger.info("User %s logged in", user.id)

    async def delete(self, user: User, request: Optional[Request] = None) -> None:
        # same ordered removal as /api/admin/user/{id}; admins are refused
        await cascade_service.delete_user(self.user_db.session, user.id)


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


class PortalJWTStrategy(JWTStrategy):
    """JWT strategy whose tokens also carry the role and first-login flag."""

    async def write_token(self, user: User) -> str:
        data = {
            "sub": str(user.id),
            "aud": self.token_audience,
            "role": user.role.value if user.role else None,
            "first_login": bool(user.first_login),
        }
        return generate_jwt(data, self.encode_key, self.lifetime_seconds, algorithm=self.algorithm)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return PortalJWTStrategy(secret=settings.SECRET, lifetime_seconds=settings.JWT_LIFETIME_SECONDS)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

app_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = app_users.current_user(active=True)
