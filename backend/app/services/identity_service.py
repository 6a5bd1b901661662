"""
Shipment Service Backend - Identity Resolver
=============================================

What:  Turns an `Authorization: Bearer <token>` header into an Identity.
How:   Verifies the JWT signature and expiry with PyJWT against the shared
       secret, then reads the owner key (email) and optional role claim.
Who:   Called once per request by the `get_current_identity` dependency.

Failure mapping:
    no header / no token       → AuthMissingError  (401)
    token past its `exp`       → AuthExpiredError  (401)
    anything else              → AuthInvalidError  (403)

The resolver holds only immutable configuration, so one instance serves
every concurrent request.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jwt

from app.config import Settings, settings as default_settings
from app.exceptions import AuthExpiredError, AuthInvalidError, AuthMissingError
from app.schemas.shipment import normalize_email

logger = logging.getLogger(__name__)

# Claims consulted for the owner key, in order. The upstream issuer puts the
# user's email into `name`; tokens minted elsewhere usually carry `email`.
EMAIL_CLAIMS = ("email", "name")


@dataclass(frozen=True)
class Identity:
    """The verified caller: owner key plus optional role."""

    email: str
    role: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class IdentityResolver:
    """Verifies bearer credentials against a single shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", leeway: int = 0):
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "IdentityResolver":
        config = config or default_settings
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            leeway=config.jwt_leeway_seconds,
        )

    @staticmethod
    def extract_bearer_token(authorization: Optional[str]) -> str:
        raw = (authorization or "").strip()
        if not raw:
            raise AuthMissingError("Authorization header missing")

        parts = raw.split(None, 1)
        if len(parts) != 2 or not parts[1].strip():
            raise AuthMissingError("Access token required")

        scheme, token = parts[0].lower(), parts[1].strip()
        if scheme != "bearer":
            raise AuthInvalidError(
                "Invalid access token",
                context={"reason": f"unsupported scheme '{parts[0]}'"},
            )
        return token

    def decode(self, token: str) -> Identity:
        if not self._secret:
            # Misconfiguration must never turn into "accept any signature"
            logger.error("JWT secret is not configured; rejecting credential")
            raise AuthInvalidError(context={"reason": "secret not configured"})

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected access token: %s", type(exc).__name__)
            raise AuthInvalidError(context={"reason": type(exc).__name__}) from exc

        email = self._owner_key(payload)
        if not email:
            raise AuthInvalidError(context={"reason": "no email claim"})

        role = payload.get("role")
        return Identity(
            email=email,
            role=str(role) if role is not None else None,
            claims=payload,
        )

    def resolve(self, authorization: Optional[str]) -> Identity:
        return self.decode(self.extract_bearer_token(authorization))

    @staticmethod
    def _owner_key(payload: Dict[str, Any]) -> str:
        for claim in EMAIL_CLAIMS:
            value = payload.get(claim)
            if isinstance(value, str) and "@" in value:
                return normalize_email(value)
        return ""
