from datetime import datetime, timedelta, timezone
import jwt

from marketplace.config import Settings
from marketplace.errors import ServerError


def _secret() -> str:
    if not Settings.JWT_SECRET:
        raise ServerError("Server configuration error")
    return Settings.JWT_SECRET


def create_access_token(email: str, user_id: int, name: str) -> str:
    return jwt.encode(
        {'user_id': user_id, 'email': email, 'name': name, 'exp': datetime.now(timezone.utc) + timedelta(minutes=int(Settings.ACCESS_TOKEN_EXPIRE_MINUTES))},
        _secret(),
        algorithm=Settings.JWT_ALGORITHM
    )


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, _secret(), algorithms=[Settings.JWT_ALGORITHM])
