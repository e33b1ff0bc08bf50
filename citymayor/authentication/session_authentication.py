import argparse
import asyncio
import logging
import secrets
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)

from citymayor.authentication.authentication_crud import (
    CreateAuthentication,
    DeleteAuthentication,
    ReadAuthentication,
    hash_password,
)
from citymayor.db import Session
from citymayor.errors import GameError, NotAuthenticated, NotAuthorized, to_http_exception
from citymayor.load_settings import session_ttl_hours
from citymayor.models.schema_models import AccountSchema, AuthSessionSchema

basic_security = HTTPBasic()
bearer_security = HTTPBearer(auto_error=False)
create_auth = CreateAuthentication()
read_auth = ReadAuthentication()
delete_auth = DeleteAuthentication()


class SessionAuthentication:
    """Login, logout and current-identity lookup backed by session tokens."""

    def __init__(self, session_ttl: timedelta = timedelta(hours=session_ttl_hours)):
        self.session_ttl = session_ttl

    async def check_user_data(
        self, credentials: HTTPBasicCredentials = Depends(basic_security)
    ) -> AccountSchema:
        """Check the e-mail and password sent with HTTP Basic. Called only by the login route

        Args:
            credentials (HTTPBasicCredentials, optional): E-mail as username and password. Defaults to Depends(basic_security).

        Raises:
            HTTPException: The e-mail is not registered or the password is incorrect

        Returns:
            AccountSchema: Account of the user
        """
        async with Session() as session:
            account = await read_auth.read_account(credentials.username, session)

        # Same message for both failures so the e-mail cannot be probed
        if account is None or not secrets.compare_digest(
            hash_password(credentials.password, account.salt), account.hash_password
        ):
            logging.info(f"Rejected login for {credentials.username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid e-mail or password",
                headers={"WWW-Authenticate": "Basic"},
            )
        return account

    async def current_account(
        self, credentials: HTTPAuthorizationCredentials | None = Depends(bearer_security)
    ) -> AccountSchema:
        """Look up the account of the bearer token sent with the request

        Raises:
            HTTPException: No token, or the token is unknown or expired

        Returns:
            AccountSchema: Account of the caller
        """
        try:
            if credentials is None:
                raise NotAuthenticated("Login required.")
            async with Session() as session:
                account = await read_auth.read_session_account(
                    credentials.credentials, datetime.now(), session
                )
            if account is None:
                raise NotAuthenticated("Session expired. Please log in again.")
        except GameError as e:
            raise to_http_exception(e)
        return account

    async def current_admin(
        self, credentials: HTTPAuthorizationCredentials | None = Depends(bearer_security)
    ) -> AccountSchema:
        account = await self.current_account(credentials)
        if not account.is_admin:
            raise to_http_exception(NotAuthorized("Admin account required."))
        return account

    async def issue_session(self, account: AccountSchema) -> AuthSessionSchema:
        async with Session() as session:
            auth_session = await create_auth.create_session(
                account.account_id, self.session_ttl, session
            )
        logging.info(f"Issued session for account {account.account_id}")
        return auth_session

    async def logout(self, token: str) -> None:
        async with Session() as session:
            await delete_auth.delete_session(token, session)

    async def store_account(self, email: str, password: str, is_admin: bool = False) -> AccountSchema | None:
        async with Session() as session:
            return await create_auth.create_account(email, password, session, is_admin)

    async def delete_expired_sessions(self) -> None:
        async with Session() as session:
            deleted = await delete_auth.delete_expired_sessions(datetime.now(), session)
        logging.info(f"Deleted {deleted} expired sessions")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a City Mayor account")
    parser.add_argument("--email", type=str, help="E-mail used to log in", required=True)
    parser.add_argument("--password", type=str, help="Password", required=True)
    parser.add_argument("--admin", action="store_true", help="Allow catalog management")
    return parser


async def main(email: str, password: str, is_admin: bool):
    from citymayor.db import engine
    from citymayor.models.schemas import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_auth = SessionAuthentication()
    account = await session_auth.store_account(email, password, is_admin)
    if account is None:
        print(f"{email} is already registered")
    else:
        print(account.account_id, account.email, account.is_admin)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.email, args.password, args.admin))
