"""Vote-related endpoints for the Taletree API."""

from fastapi import APIRouter, status

from taletree.api.v1.dependencies import CurrentUserDep, StoryServiceDep, raise_http_error
from taletree.core.errors import TaletreeError
from taletree.schemas.vote import MyVoteResponse, VoteCreate, VoteResponse

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
def cast_vote(
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> VoteResponse:
    """Cast, switch or withdraw the caller's vote on a unit."""
    try:
        outcome = service.cast_vote(vote_data.unit_id, current_user, vote_data.direction)
    except TaletreeError as err:
        raise_http_error(err)
    return VoteResponse(
        unit_id=outcome.unit_id,
        upvotes=outcome.tally.up,
        downvotes=outcome.tally.down,
        direction=outcome.direction.value if outcome.direction else None,
    )


@router.get("/{unit_id}/my-vote", response_model=MyVoteResponse)
def get_my_vote(
    unit_id: str,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> MyVoteResponse:
    """Get current user's vote on a specific unit."""
    try:
        direction = service.get_vote(unit_id, current_user)
    except TaletreeError as err:
        raise_http_error(err)
    return MyVoteResponse(direction=direction.value if direction else None)
