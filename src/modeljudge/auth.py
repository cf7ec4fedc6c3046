"""
Authentication - password hashing, bearer tokens and the account lifecycle
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from .database import Database, utcnow
from .errors import AuthError, ConflictError, UnverifiedAccountError, ValidationError
from .settings import Settings
from .store import SqlUserStore

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 6


def hash_password(secret: str) -> str:
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(secret: str, digest: str) -> bool:
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), digest.encode("utf-8"))
    except ValueError:
        return False


def _check_password(password: str):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class TokenIssuer:
    """Issues and verifies signed bearer tokens carrying the user id"""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 1440):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, owner_id: int, email: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(owner_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> int:
        if not token:
            raise AuthError("Missing token")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthError("Invalid token") from e

        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError("Invalid token") from e


@dataclass(frozen=True)
class SignupResult:
    user_id: int
    name: str
    email: str
    verify_url: str


@dataclass(frozen=True)
class LoginResult:
    token: str
    name: str
    email: str


@dataclass(frozen=True)
class ResetRequest:
    name: str
    email: str
    reset_url: str


class AuthService:
    """Signup, email verification, login and password reset"""

    def __init__(self, users: SqlUserStore, tokens: TokenIssuer,
                 public_base_url: str = "http://localhost:3000",
                 frontend_url: str = "http://localhost:5500",
                 verification_ttl_minutes: int = 1440,
                 reset_ttl_minutes: int = 60):
        self.users = users
        self.tokens = tokens
        self.public_base_url = public_base_url.rstrip("/")
        self.frontend_url = frontend_url.rstrip("/")
        self.verification_ttl = timedelta(minutes=verification_ttl_minutes)
        self.reset_ttl = timedelta(minutes=reset_ttl_minutes)

    @classmethod
    def from_settings(cls, config: Settings, database: Database) -> "AuthService":
        tokens = TokenIssuer(config.jwt_secret, config.jwt_algorithm, config.access_token_expire_minutes)
        return cls(
            SqlUserStore(database),
            tokens,
            public_base_url=config.public_base_url,
            frontend_url=config.frontend_url,
            verification_ttl_minutes=config.verification_token_ttl_minutes,
            reset_ttl_minutes=config.reset_token_ttl_minutes,
        )

    def signup(self, name: str, email: str, password: str) -> SignupResult:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise ValidationError("Name, email and password are required")
        if "@" not in email:
            raise ValidationError("Invalid email address")
        _check_password(password)

        # create() still raises ConflictError if a concurrent signup wins the race
        if self.users.get_by_email(email) is not None:
            raise ConflictError("Email already registered")

        token = secrets.token_urlsafe(32)
        user_id = self.users.create(
            name, email, hash_password(password), token, utcnow() + self.verification_ttl
        )
        logger.info(f"Created unverified account {user_id}")
        return SignupResult(
            user_id=user_id,
            name=name,
            email=email,
            verify_url=f"{self.public_base_url}/auth/verify?token={token}",
        )

    def verify_email(self, token: str):
        if not token:
            raise ValidationError("Missing verification token")

        user = self.users.get_by_verification_token(token)
        if user is None:
            raise ValidationError("Invalid or already used verification link")
        if user.verification_expires_at is None or user.verification_expires_at < utcnow():
            raise ValidationError("Verification link expired")
        if not self.users.mark_verified(user.id, token):
            raise ValidationError("Invalid or already used verification link")
        logger.info(f"Verified account {user.id}")

    def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("Invalid email or password")
        if not user.is_verified:
            raise UnverifiedAccountError("Please verify your email before logging in")

        return LoginResult(
            token=self.tokens.issue(user.id, user.email),
            name=user.name,
            email=user.email,
        )

    def forgot_password(self, email: str) -> Optional[ResetRequest]:
        """Create a reset token; None when no such account exists"""
        if not email or not email.strip():
            raise ValidationError("Email is required")

        user = self.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token = secrets.token_urlsafe(32)
        self.users.set_reset_token(user.id, token, utcnow() + self.reset_ttl)
        return ResetRequest(
            name=user.name,
            email=user.email,
            reset_url=f"{self.frontend_url}/reset-password.html?token={token}",
        )

    def reset_password(self, token: str, password: str):
        if not token:
            raise ValidationError("Missing reset token")
        _check_password(password)

        user = self.users.get_by_reset_token(token)
        if user is None:
            raise ValidationError("Invalid or already used reset link")
        if user.reset_expires_at is None or user.reset_expires_at < utcnow():
            raise ValidationError("Reset link expired")
        if not self.users.reset_password(user.id, token, hash_password(password)):
            raise ValidationError("Invalid or already used reset link")
        logger.info(f"Password reset for account {user.id}")
