"""
Email/password accounts and opaque bearer sessions.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sportreel.core.config import settings
from sportreel.core.errors import AuthenticationError, ConflictError, ValidationError, WriteError
from sportreel.models.user import User, UserSession

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations))
    return hmac.compare_digest(digest.hex(), digest_hex)


def create_user(db: Session, email: str, password: str, confirm_password: str) -> User:
    """Register an account. displayName defaults to the local part of the email."""
    errors = {}
    if len(password) < settings.min_password_length:
        errors["password"] = f"Password must be at least {settings.min_password_length} characters."
    if password != confirm_password:
        errors["confirmPassword"] = "Passwords don't match"
    if errors:
        raise ValidationError(errors)

    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("An account with this email already exists")

    user = User(
        email=email,
        displayName=email.split("@")[0] or "New User",
        role="regular",
        passwordHash=hash_password(password),
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("An account with this email already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating user: {e}")
        raise WriteError("Failed to create account") from e

    logger.info(f"User created: {user.id}")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.passwordHash):
        raise AuthenticationError("Invalid email or password")
    return user


def create_session(db: Session, user: User) -> str:
    token = secrets.token_urlsafe(32)
    try:
        db.add(UserSession(token=token, userId=user.id))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating session: {e}")
        raise WriteError("Failed to start session") from e
    return token


def get_session_user(db: Session, token: str) -> User:
    """Resolve a bearer token to its user. Expired sessions are removed on sight."""
    session = db.query(UserSession).filter(UserSession.token == token).first()
    if not session:
        raise AuthenticationError("Not authenticated")

    created_at = session.createdAt
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) - created_at > timedelta(hours=settings.session_ttl_hours):
        db.delete(session)
        db.commit()
        raise AuthenticationError("Session expired")

    user = db.query(User).filter(User.id == session.userId).first()
    if not user:
        raise AuthenticationError("Not authenticated")
    return user


def revoke_session(db: Session, token: str) -> None:
    db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()
