# auth_service.py
"""
Registration, login and session-token verification.

Users live in the ``users`` table with a bcrypt hash of their password.
Session tokens are stateless JWTs carrying the user id and email; nothing
about a session is stored server-side, so logging out only means the client
drops its token.
"""
import logging
from typing import Optional, Tuple

from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

import security
from database import classify_integrity_error
from errors import AuthError, ConflictError, InternalError, ValidationError
from models import UserDB
from schemas import UserOut

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "invalid credentials"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def issue_token(user: UserOut) -> str:
    return security.create_access_token(data={"sub": str(user.id), "email": user.email})


def verify_token(token: Optional[str]) -> UserOut:
    if not token:
        raise AuthError("not logged in")
    try:
        payload = security.decode_access_token(token)
    except JWTError:
        raise AuthError("invalid or expired token")

    sub = payload.get("sub")
    email = payload.get("email")
    if sub is None or not email:
        raise AuthError("invalid or expired token")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise AuthError("invalid or expired token")
    return UserOut(id=user_id, email=email)


class AuthService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_email(self, email: str) -> Optional[UserDB]:
        result = await self.session.execute(select(UserDB).where(UserDB.email == email))
        return result.scalar_one_or_none()

    async def register(self, email: Optional[str], password: Optional[str]) -> Tuple[UserOut, str]:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

        try:
            if await self.get_user_by_email(email) is not None:
                raise ConflictError("email already registered")

            new_user = UserDB(email=email, password_hash=security.get_password_hash(password))
            self.session.add(new_user)
            await self.session.commit()
            await self.session.refresh(new_user)
        except IntegrityError as exc:
            await self.session.rollback()
            violation = classify_integrity_error(exc)
            if violation.kind == "unique":
                raise ConflictError("email already registered")
            logger.exception("Unexpected constraint failure while registering %s", email)
            raise InternalError() from violation
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Database error while registering %s", email)
            raise InternalError()

        user = UserOut.model_validate(new_user)
        logger.info("New user registered: %s (id=%s)", user.email, user.id)
        return user, issue_token(user)

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[UserOut, str]:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("email and password are required")

        try:
            user_db = await self.get_user_by_email(email)
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Database error during login for %s", email)
            raise InternalError()

        if user_db is None:
            security.dummy_verify()
            logger.warning("Failed login for %s", email)
            raise AuthError(INVALID_CREDENTIALS)
        if not security.verify_password(password, user_db.password_hash):
            logger.warning("Failed login for %s", email)
            raise AuthError(INVALID_CREDENTIALS)

        user = UserOut.model_validate(user_db)
        logger.info("User %s logged in", user.email)
        return user, issue_token(user)
