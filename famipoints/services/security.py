from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..core.config import Settings
from ..errors import AuthenticationError, Forbidden
from ..models.user import UserRole

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: UserRole


class TokenAuthority:
    """Issues and reads actor tokens. The signing key comes from the Settings it is built with."""

    def __init__(self, cfg: Settings):
        self._secret = cfg.SECRET_KEY
        self._lifetime = timedelta(minutes=cfg.ACCESS_TOKEN_MIN)

    def create_access_token(self, user_id: str, role: UserRole, minutes: int | None = None) -> str:
        lifetime = timedelta(minutes=minutes) if minutes is not None else self._lifetime
        expire = datetime.now(timezone.utc) + lifetime
        payload = {"sub": user_id, "role": str(role), "exp": expire}
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def authenticate(self, token: str) -> Actor:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.PyJWTError as e:
            raise AuthenticationError("Invalid token") from e
        user_id = payload.get("sub")
        try:
            role = UserRole(payload.get("role"))
        except ValueError as e:
            raise AuthenticationError("Invalid token payload") from e
        if not user_id:
            raise AuthenticationError("Invalid token payload")
        return Actor(user_id=user_id, role=role)


def require_role(actor: Actor, role: UserRole) -> Actor:
    if actor.role != role:
        raise Forbidden(f"This operation requires the {role} role")
    return actor
