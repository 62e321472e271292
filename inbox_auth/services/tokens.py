from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from inbox_auth.services.errors import TokenError


@dataclass(frozen=True)
class TokenClaims:
    email: str
    role: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._now = now

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def mint(self, email: str, role: str) -> str:
        now = self._now()
        expires_at = now + self._ttl
        payload = {
            "email": email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> TokenClaims:
        if not token:
            raise TokenError()
        try:
            # Time claims are checked against the injected clock below.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenError() from exc

        expires_at = payload.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise TokenError()
        if self._now().timestamp() >= expires_at:
            raise TokenError()

        email = payload.get("email")
        role = payload.get("role")
        if not isinstance(email, str) or not email:
            raise TokenError()
        if not isinstance(role, str) or not role:
            raise TokenError()
        return TokenClaims(email=email, role=role)
