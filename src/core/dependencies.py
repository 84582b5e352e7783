"""Dependency injection module for FastAPI.

The store, the authorizer and the generation service are created once by
create_app() and kept on app.state; these functions hand them to routes.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings
from utils.authorization import Authorizer
from utils.generation_service import GenerationService
from utils.repository import ClassroomRepository

# auto_error=False: a missing token is a decision for the route, not a 403
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_classroom_manager(request: Request) -> ClassroomRepository:
    """Get the shared classroom store.

    Args:
        request: Incoming request.

    Returns:
        ClassroomRepository instance owned by the application.
    """
    return request.app.state.classroom_manager


def get_authorizer(request: Request) -> Authorizer:
    return request.app.state.authorizer


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation_service


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Return the raw bearer token, or "" when none was sent."""
    if credentials is None:
        return ""
    return credentials.credentials or ""


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
ClassroomManagerDep = Annotated[ClassroomRepository, Depends(get_classroom_manager)]
AuthorizerDep = Annotated[Authorizer, Depends(get_authorizer)]
GenerationServiceDep = Annotated[GenerationService, Depends(get_generation_service)]
BearerTokenDep = Annotated[str, Depends(get_bearer_token)]
