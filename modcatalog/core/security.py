
import secrets

from passlib.context import CryptContext

from ..config import settings

TOKEN_BYTES = 32

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__rounds=settings.PASSWORD_HASH_ROUNDS,
)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False

def generate_token() -> str:
    """Opaque bearer token: 32 random bytes, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)

def generate_password(nbytes: int = 12) -> str:
    return secrets.token_urlsafe(nbytes)
