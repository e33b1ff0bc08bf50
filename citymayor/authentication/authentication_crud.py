import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from citymayor.errors import BackendUnavailable
from citymayor.load_settings import pepper_data
from citymayor.models.schema_models import AccountSchema, AuthSessionSchema
from citymayor.models.schemas import Account, AuthSession


def hash_password(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt + pepper_data).encode()).hexdigest()


class CreateAuthentication:
    @staticmethod
    async def create_account(
        email: str, password: str, session: AsyncSession, is_admin: bool = False
    ) -> AccountSchema | None:
        """Create an account to authenticate the user

        Args:
            email (str): E-mail used as login name
            password (str): Plain password, only its salted hash is stored
            is_admin (bool, optional): Allow catalog management. Defaults to False.

        Returns:
            AccountSchema | None: The new account, None if the e-mail is already registered
        """
        salt = secrets.token_hex(8)
        new_account = Account(
            account_id=uuid4(),
            email=email,
            hash_password=hash_password(password, salt),
            salt=salt,
            is_admin=is_admin,
            created_at=datetime.now(),
        )
        try:
            async with session.begin():
                session.add(new_account)
        except IntegrityError:
            logging.warning(f"Account already exists: {email}")
            return None
        except SQLAlchemyError as e:
            logging.error(f"Error creating account: {e}")
            raise BackendUnavailable("Failed to create account.") from e
        return AccountSchema.model_validate(new_account)

    @staticmethod
    async def create_session(
        account_id: UUID, ttl: timedelta, session: AsyncSession
    ) -> AuthSessionSchema:
        """Issue a new session token for the account

        Args:
            account_id (UUID): Account which logged in
            ttl (timedelta): Lifetime of the token

        Returns:
            AuthSessionSchema: Token and its expiry
        """
        now = datetime.now()
        new_session = AuthSession(
            token=secrets.token_urlsafe(32),
            account_id=account_id,
            created_at=now,
            expires_at=now + ttl,
        )
        try:
            async with session.begin():
                session.add(new_session)
        except SQLAlchemyError as e:
            logging.error(f"Error creating session: {e}")
            raise BackendUnavailable("Failed to create session.") from e
        return AuthSessionSchema.model_validate(new_session)


class ReadAuthentication:
    @staticmethod
    async def read_account(email: str, session: AsyncSession) -> AccountSchema | None:
        """Read account data to get salt and password hash

        Args:
            email (str): E-mail of the account

        Returns:
            AccountSchema | None: Account data, None if not registered
        """
        try:
            stmt = select(Account).where(Account.email == email)
            result = await session.execute(stmt)
            result = result.scalars().first()
            if result is None:
                return None
            return AccountSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Error reading account: {e}")
            raise BackendUnavailable("Failed to read account.") from e

    @staticmethod
    async def read_session_account(token: str, now: datetime, session: AsyncSession) -> AccountSchema | None:
        """Read the account owning a session token which has not expired yet

        Args:
            token (str): Bearer token sent by the client
            now (datetime): Current time

        Returns:
            AccountSchema | None: Account of the token, None if the token is unknown or expired
        """
        try:
            stmt = (
                select(AuthSession)
                .options(joinedload(AuthSession.account))
                .where(AuthSession.token == token, AuthSession.expires_at > now)
            )
            result = await session.execute(stmt)
            result = result.scalars().first()
            if result is None:
                return None
            return AccountSchema.model_validate(result.account)
        except SQLAlchemyError as e:
            logging.error(f"Error reading session: {e}")
            raise BackendUnavailable("Failed to read session.") from e


class DeleteAuthentication:
    @staticmethod
    async def delete_session(token: str, session: AsyncSession) -> None:
        try:
            async with session.begin():
                await session.execute(delete(AuthSession).where(AuthSession.token == token))
        except SQLAlchemyError as e:
            logging.error(f"Error deleting session: {e}")
            raise BackendUnavailable("Failed to delete session.") from e

    @staticmethod
    async def delete_expired_sessions(now: datetime, session: AsyncSession) -> int:
        """Delete every session token which expired before now

        Returns:
            int: Number of deleted sessions
        """
        try:
            async with session.begin():
                result = await session.execute(
                    delete(AuthSession).where(AuthSession.expires_at <= now)
                )
            return result.rowcount
        except SQLAlchemyError as e:
            logging.error(f"Error deleting expired sessions: {e}")
            raise BackendUnavailable("Failed to delete expired sessions.") from e
