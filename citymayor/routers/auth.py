import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from citymayor.authentication.session_authentication import (
    SessionAuthentication,
    bearer_security,
)
from citymayor.errors import GameError, to_http_exception
from citymayor.models.dc_models import RegisterModel, SessionTokenModel
from citymayor.models.schema_models import AccountSchema
from citymayor.services import player_db

auth_router = APIRouter()
session_auth = SessionAuthentication()


class AuthServer:
    @staticmethod
    @auth_router.post("/register", status_code=status.HTTP_201_CREATED)
    async def register(request: RegisterModel) -> dict:
        """Create an account. The player itself is created on the first login

        Args:
            request (RegisterModel): E-mail and password

        Returns:
            dict: account_id of the new account
        """
        try:
            account = await session_auth.store_account(request.email, request.password)
        except GameError as e:
            raise to_http_exception(e)
        if account is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This e-mail is already registered.",
            )
        logging.info(f"Registered account {account.account_id}")
        return {"account_id": str(account.account_id)}

    @staticmethod
    @auth_router.post("/login", response_model=SessionTokenModel)
    async def login(
        account: AccountSchema = Depends(session_auth.check_user_data),
    ) -> SessionTokenModel:
        """Issue a session token and make sure the account has a player

        Args:
            account (AccountSchema): Account checked with HTTP Basic

        Returns:
            SessionTokenModel: Bearer token to send with every other request
        """
        try:
            await player_db.ensure_player(account)
            auth_session = await session_auth.issue_session(account)
        except GameError as e:
            raise to_http_exception(e)
        return SessionTokenModel(
            access_token=auth_session.token, expires_at=auth_session.expires_at
        )

    @staticmethod
    @auth_router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
    async def logout(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_security),
        account: AccountSchema = Depends(session_auth.current_account),
    ) -> None:
        try:
            await session_auth.logout(credentials.credentials)
        except GameError as e:
            raise to_http_exception(e)
        logging.info(f"Account {account.account_id} logged out")
