"""Actor extraction from requests - who to record in the audit trail.

Authentication is handled upstream; this only reads the identity the
proxy or client already established.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass

from starlette.requests import Request


logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


@dataclass
class ActorExtractor:
    """
    Resolves the acting user of a request.

    Tried in order:
    1. Explicit user header (X-User)
    2. JWT bearer token claim (not verified here)
    3. Basic auth username
    4. Anonymous
    """
    user_header: str = "X-User"
    jwt_header: str = "Authorization"
    jwt_user_claims: tuple[str, ...] = ("email", "sub")

    def extract(self, request: Request) -> str:
        user = request.headers.get(self.user_header, "").strip()
        if user:
            return user

        auth_header = request.headers.get(self.jwt_header, "")
        if auth_header.startswith("Bearer "):
            user = self._from_jwt(auth_header[7:])
        elif auth_header.startswith("Basic "):
            user = self._from_basic(auth_header[6:])

        return user or ANONYMOUS

    def _from_jwt(self, token: str) -> str | None:
        # JWT format: header.payload.signature
        parts = token.split(".")
        if len(parts) != 3:
            return None

        # Decode payload (add padding if needed)
        payload_b64 = parts[1]
        padding = 4 - len(payload_b64) % 4
        if padding != 4:
            payload_b64 += "=" * padding

        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64))
        except (binascii.Error, ValueError) as e:
            logger.debug(f"Failed to decode JWT payload: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        for claim in self.jwt_user_claims:
            value = payload.get(claim)
            if isinstance(value, str) and value:
                return value
        return None

    @staticmethod
    def _from_basic(credentials: str) -> str | None:
        try:
            decoded = base64.b64decode(credentials).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.debug(f"Failed to decode basic auth: {e}")
            return None
        username, _, _ = decoded.partition(":")
        return username or None


_default_extractor = ActorExtractor()


def extract_actor(request: Request) -> str:
    """Extract the acting user with the default extractor."""
    return _default_extractor.extract(request)
