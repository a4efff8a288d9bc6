import logging
import os
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Fall back to pbkdf2 when the installed bcrypt backend does not work with passlib
try:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)
    pwd_context.hash("test")
except (ValueError, RuntimeError, AttributeError) as e:
    logger.warning("bcrypt unavailable (%s), using pbkdf2_sha256", e)
    pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_secret_key():
    env_key = os.getenv("SECRET_KEY")
    if env_key:
        return env_key

    key_file = ".secret_key"
    if os.path.exists(key_file):
        try:
            with open(key_file, "r", encoding="utf-8") as f:
                return f.read().strip()
        except UnicodeDecodeError:
            logger.warning("Unreadable secret key file, generating a new one")
            os.remove(key_file)

    new_key = secrets.token_urlsafe(32)
    with open(key_file, "w", encoding="utf-8") as f:
        f.write(new_key)
    if os.name != "nt":
        os.chmod(key_file, 0o600)
    logger.info("Generated a new SECRET_KEY")
    return new_key


SECRET_KEY = get_secret_key()
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))
REFRESH_TOKEN_EXPIRE_HOURS = int(os.getenv("REFRESH_TOKEN_EXPIRE_HOURS", "168"))


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def generate_all_tokens(email: str, first_name: str, last_name: str, uid: str):
    """Returns (access token, refresh token) for a user"""
    now = datetime.now(timezone.utc)
    claims = {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "uid": uid,
        "exp": now + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS),
    }
    refresh_claims = {
        "uid": uid,
        # unique per issue
        "jti": secrets.token_hex(16),
        "exp": now + timedelta(hours=REFRESH_TOKEN_EXPIRE_HOURS),
    }
    token = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    refresh_token = jwt.encode(refresh_claims, SECRET_KEY, algorithm=ALGORITHM)
    return token, refresh_token


def verify_token(token: str):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
