# identity.py - Bearer credential verification against the identity provider
"""
The identity provider is an external collaborator. The service only needs
one thing from it: turn a bearer token into a verified subject id and email.

JWTIdentityVerifier checks provider-issued JWTs (for example Firebase ID
tokens, which carry ``sub``, ``email`` and ``name`` claims) with python-jose.
Any other provider can be plugged in by implementing ``IdentityVerifier``.
"""
import logging
from typing import Optional, List, Protocol

from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel

from errors import AuthenticationError

logger = logging.getLogger("taskshare.identity")


class VerifiedIdentity(BaseModel):
    subject_id: str
    email: str
    name: Optional[str] = None


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> VerifiedIdentity:
        """Return the verified identity or raise AuthenticationError."""
        ...


class JWTIdentityVerifier:
    """Verifies signed JWTs with a shared secret or the provider's public key"""

    def __init__(
        self,
        key: str,
        algorithms: List[str],
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.key = key
        self.algorithms = algorithms
        self.audience = audience
        self.issuer = issuer

    async def verify(self, token: str) -> VerifiedIdentity:
        if not self.key:
            logger.error("Identity verification key is not configured")
            raise AuthenticationError("Invalid token")

        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except JWTError:
            raise AuthenticationError("Invalid token")

        subject_id = claims.get("sub") or claims.get("uid")
        email = claims.get("email")
        if not subject_id or not email:
            raise AuthenticationError("Invalid token")

        return VerifiedIdentity(subject_id=subject_id, email=email, name=claims.get("name"))
