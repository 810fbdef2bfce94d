import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from dependency_injector.wiring import inject, Provide

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.core.exceptions import AuthenticationError

# Internal bearer scheme for admin/batch endpoints. End-user identity is
# handled by the identity provider in front of this service.
security = HTTPBearer(auto_error=False)


@inject
def require_internal_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(Provide[Container.core.config]),
) -> None:
    expected = settings.AUTH_TOKEN
    if not expected:
        raise AuthenticationError("Internal endpoints are disabled (AUTH_TOKEN not set)")
    if credentials is None or not secrets.compare_digest(
        credentials.credentials, expected
    ):
        raise AuthenticationError("Invalid internal token")
