# auth.py - Request authentication dependencies
# - Bearer token extraction (missing header → 401, not 403)
# - Verification through the configured IdentityVerifier
# - Just-in-time provisioning of the local user record

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from directory import UserDirectory
from errors import AuthenticationError
from identity import IdentityVerifier, VerifiedIdentity
from schemas import UserOut, user_to_out

security = HTTPBearer(auto_error=False)


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> VerifiedIdentity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return await verifier.verify(credentials.credentials)


async def get_current_user(
    identity: VerifiedIdentity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> UserOut:
    user = await UserDirectory(db).resolve_or_create(
        identity.subject_id, identity.email, identity.name,
    )
    return user_to_out(user)
