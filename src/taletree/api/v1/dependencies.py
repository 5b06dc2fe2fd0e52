"""Shared API dependencies for authentication, services and error translation."""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taletree.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    TaletreeError,
    TreeLockedError,
    ValidationError,
    WriteFailedError,
)
from taletree.core.security import decode_subject
from taletree.core.settings import settings
from taletree.db.session import SessionLocal
from taletree.services.story_service import StoryService
from taletree.store.base import NodeStore
from taletree.store.sql import SqlNodeStore

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()


def get_store() -> NodeStore:
    """Return the node store backing the API."""
    return SqlNodeStore(SessionLocal, page_size=settings.store_page_size)


def get_story_service(store: Annotated[NodeStore, Depends(get_store)]) -> StoryService:
    """Return a story service bound to the request's store."""
    return StoryService(store)


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the caller's user id from the bearer token subject.

    Raises:
        HTTPException: If the token is invalid, expired or has no subject.
    """
    subject = decode_subject(credentials.credentials)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return subject


def raise_http_error(err: TaletreeError) -> NoReturn:
    """Translate a service error into the matching HTTP error."""
    if isinstance(err, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(err, ValidationError):
        code = 422
    elif isinstance(err, TreeLockedError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(err, PermissionDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(err, WriteFailedError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
            headers={"Retry-After": "1"},
        ) from err
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail=str(err)) from err


# Type aliases for dependencies
StoryServiceDep = Annotated[StoryService, Depends(get_story_service)]
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
