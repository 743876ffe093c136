import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(hours=1)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # stored value is not a hash passlib recognises
        logger.warning("Unrecognised password hash format")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user_id: int, secret_key: str, expires_delta: Optional[timedelta] = None,
                        algorithm: str = ALGORITHM) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_EXPIRE)
    to_encode = {"id": user_id, "exp": expire}
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = ALGORITHM) -> Optional[int]:
    """Return the user id carried by ``token``, or None if it does not verify.

    Malformed, expired and badly signed tokens all come back as None so
    callers cannot tell the reasons apart.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.debug("Token rejected: %s", e)
        return None
    user_id = payload.get("id")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        logger.debug("Token rejected: missing id claim")
        return None
    return user_id
