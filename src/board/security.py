"""Password hashing and signed bearer tokens."""

import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from .config import ConfigurationError, Settings
from .errors import ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hashing with a single process-wide cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify(self, plaintext: str, digest: str) -> bool:
        encoded = plaintext.encode("utf-8")
        if not digest or len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("ascii"))
        except ValueError:
            # Malformed digest in storage.
            logger.warning("stored password digest is not a valid bcrypt hash")
            return False


class TokenService:
    """Issue and verify HS256 tokens carrying a ``userId`` claim."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)):
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {"userId": user_id, "iat": now, "exp": now + self.ttl}
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str | None:
        """Return the embedded user id, or None if the token is not acceptable."""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "userId"]},
            )
        except jwt.PyJWTError:
            return None
        user_id = payload.get("userId")
        if not isinstance(user_id, str) or not user_id:
            return None
        return user_id


def resolve_signing_key(config: Settings) -> str:
    """Return the configured secret, or an ephemeral one outside production."""
    if config.jwt_secret:
        return config.jwt_secret
    if config.is_production:
        raise ConfigurationError("JWT_SECRET must be set in production.")
    logger.warning(
        "JWT_SECRET is not set; using a random per-process key. "
        "Issued tokens will not survive a restart."
    )
    return secrets.token_urlsafe(48)


def build_password_hasher(config: Settings) -> PasswordHasher:
    return PasswordHasher(rounds=config.bcrypt_rounds)


def build_token_service(config: Settings) -> TokenService:
    return TokenService(
        resolve_signing_key(config),
        algorithm=config.jwt_algorithm,
        ttl=timedelta(days=config.token_ttl_days),
    )
