from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
import structlog
from fastapi import APIRouter, Depends, Header, status
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db, User
from errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from schemas import AuthResponse, UserCreate, UserLogin, UserOut

logger = structlog.get_logger(__name__)

auth_router = APIRouter()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

BEARER_PREFIX = "Bearer "
INVALID_LOGIN = "Invalid email or password"


# ---------- Passwords ----------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unknown or corrupt hash
        return False


# ---------- Tokens ----------
def create_access_token(user_id: int) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(days=settings.access_token_expire_days),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[int]:
    """Return the user id a token was issued for, or None if it can't be trusted."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("token_expired")
        return None
    except jwt.PyJWTError:
        return None

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        return None


def extract_bearer(header_value: Optional[str]) -> Optional[str]:
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    token = header_value[len(BEARER_PREFIX):].strip()
    return token or None


# ---------- Request gate ----------
@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from a bearer token, handed to protected handlers."""

    id: int
    username: str
    email: str


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> CurrentUser:
    token = extract_bearer(authorization)
    if token is None:
        raise AuthenticationError("Missing authorization token")

    user_id = decode_access_token(token)
    if user_id is None:
        raise AuthenticationError("Invalid or expired token")

    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as exc:
        logger.exception("user_lookup_failed", user_id=user_id)
        raise InternalError() from exc

    if user is None:
        logger.info("token_for_missing_user", user_id=user_id)
        raise NotFoundError("User not found")

    return CurrentUser(id=user.id, username=user.username, email=user.email)


# ---------- Service ----------
def _normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(
    db: Session,
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
) -> Tuple[User, str]:
    username = (username or "").strip()
    email = _normalize_email(email or "")
    if not username or not email or not password or not confirm_password:
        raise ValidationError("Missing required fields")

    if password != confirm_password:
        raise ValidationError("Passwords do not match")

    min_length = get_settings().min_password_length
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")

    try:
        existing = (
            db.query(User.id)
            .filter(or_(User.username == username, User.email == email))
            .first()
        )
        if existing:
            raise ConflictError("Username or email already exists")

        new_user = User(
            username=username, email=email, password_hash=hash_password(password)
        )
        db.add(new_user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Username or email already exists")
        db.refresh(new_user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("register_failed")
        raise InternalError() from exc

    logger.info("user_registered", user_id=new_user.id, username=username)
    return new_user, create_access_token(new_user.id)


def login_user(
    db: Session, email: Optional[str], password: Optional[str]
) -> Tuple[User, str]:
    if not email or not password:
        raise ValidationError("Missing email or password")

    try:
        db_user = db.query(User).filter(User.email == _normalize_email(email)).first()
    except SQLAlchemyError as exc:
        logger.exception("login_lookup_failed")
        raise InternalError() from exc

    if not db_user or not verify_password(password, db_user.password_hash):
        logger.info("login_failed")
        raise AuthenticationError(INVALID_LOGIN)

    logger.info("user_logged_in", user_id=db_user.id)
    return db_user, create_access_token(db_user.id)


# ---------- Routes ----------
@auth_router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
def register(user: UserCreate, db: Session = Depends(get_db)):
    new_user, token = register_user(
        db, user.username, user.email, user.password, user.confirm_password
    )
    return AuthResponse(user=UserOut.model_validate(new_user), token=token)


@auth_router.post("/login", response_model=AuthResponse)
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user, token = login_user(db, user.email, user.password)
    return AuthResponse(user=UserOut.model_validate(db_user), token=token)


@auth_router.get("/me", response_model=UserOut)
def me(current_user: CurrentUser = Depends(get_current_user)):
    return UserOut(
        id=current_user.id, username=current_user.username, email=current_user.email
    )
