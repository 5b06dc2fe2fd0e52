"""Unit endpoints: single units, children and comment threads."""

from fastapi import APIRouter, status

from taletree.api.v1.dependencies import CurrentUserDep, StoryServiceDep, raise_http_error
from taletree.core.errors import TaletreeError
from taletree.schemas.comment import CommentCreate, CommentResponse
from taletree.schemas.unit import UnitResponse

router = APIRouter(prefix="/units", tags=["units"])


@router.get("/{unit_id}", response_model=UnitResponse)
def get_unit(unit_id: str, service: StoryServiceDep) -> UnitResponse:
    """Get a single unit with its cached tallies."""
    try:
        unit = service.get_unit(unit_id)
    except TaletreeError as err:
        raise_http_error(err)
    return UnitResponse.model_validate(unit)


@router.get("/{unit_id}/children", response_model=list[UnitResponse])
def get_unit_children(unit_id: str, service: StoryServiceDep) -> list[UnitResponse]:
    """Get the direct branches of a unit, oldest first."""
    try:
        children = service.children_of(unit_id)
    except TaletreeError as err:
        raise_http_error(err)
    return [UnitResponse.model_validate(child) for child in children]


@router.get("/{unit_id}/comments", response_model=list[CommentResponse])
def list_comments(unit_id: str, service: StoryServiceDep) -> list[CommentResponse]:
    """Get the unit's comment thread in chronological order."""
    try:
        comments = list(service.get_comments(unit_id))
    except TaletreeError as err:
        raise_http_error(err)
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.post(
    "/{unit_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    unit_id: str,
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> CommentResponse:
    """Append a comment (or a reply) to a unit."""
    try:
        comment = service.add_comment(
            unit_id,
            current_user,
            comment_data.body,
            reply_to=comment_data.reply_to,
        )
    except TaletreeError as err:
        raise_http_error(err)
    return CommentResponse.model_validate(comment)
