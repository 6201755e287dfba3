'''
Login: checks credentials and issues role-bound access tokens.
'''
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from .security import HashedPassword, JWTHandler
from .user_service import UserService
from ..database import models as db_models
from ..models import token as token_models
from ..common.config import settings
from ..common.logger import log


class LoginService:
    """
    Exchanges an email/password pair for a bearer token. The token carries
    the user's role, which verify_token_and_get_user checks on every call.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.user_service = user_service

    async def authenticate(self, email: str, password: str) -> db_models.Users | None:
        """Returns the user when the password matches, otherwise None."""
        user = await self.user_service.get_user_by_email(email)
        if user is None or not HashedPassword.verify(password, user.password):
            return None
        return user

    async def login_user(self, form_data: OAuth2PasswordRequestForm) -> token_models.Token:
        log.info(f"Login attempt for {form_data.username}")

        user = await self.authenticate(form_data.username, form_data.password)
        if user is None:
            log.warning(f"Login refused for {form_data.username}: bad credentials.")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not user.is_active:
            log.warning(f"Login refused for {form_data.username}: account disabled.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inactive user."
            )

        token = JWTHandler.create_access_token(subject=user.email, role=user.role)
        log.info(f"Issued token for {user.email} (Role: {user.role})")
        return token_models.Token(
            access_token=token,
            token_type="bearer",
            role=user.role,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )
