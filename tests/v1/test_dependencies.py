# tests/v1/test_dependencies.py
"""Tests for API dependencies module."""

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from taletree.api.v1.dependencies import get_current_user_id, raise_http_error
from taletree.core.errors import (
    ConflictError,
    EmptyContentError,
    ParentNotFoundError,
    PermissionDeniedError,
    TreeLockedError,
    UnitNotFoundError,
    VoteFailedError,
    WriteFailedError,
)
from taletree.core.security import create_access_token


class TestGetCurrentUserId:
    """Test the bearer token dependency."""

    def test_valid_token(self):
        creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_access_token("u1"))
        assert get_current_user_id(creds) == "u1"

    def test_invalid_token(self):
        creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        with pytest.raises(HTTPException) as exc_info:
            get_current_user_id(creds)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert "Could not validate credentials" in exc_info.value.detail


class TestRaiseHttpError:
    """Service errors map onto HTTP status codes."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (UnitNotFoundError("u"), status.HTTP_404_NOT_FOUND),
            (ParentNotFoundError("u"), status.HTTP_404_NOT_FOUND),
            (EmptyContentError("Comment"), 422),
            (TreeLockedError("t"), status.HTTP_409_CONFLICT),
            (PermissionDeniedError("nope"), status.HTTP_403_FORBIDDEN),
            (WriteFailedError(5), status.HTTP_503_SERVICE_UNAVAILABLE),
            (VoteFailedError(5), status.HTTP_503_SERVICE_UNAVAILABLE),
            (ConflictError("unit", "u"), status.HTTP_500_INTERNAL_SERVER_ERROR),
        ],
    )
    def test_mapping(self, error, code):
        with pytest.raises(HTTPException) as exc_info:
            raise_http_error(error)

        assert exc_info.value.status_code == code
        assert exc_info.value.detail == str(error)
