"""Story endpoints: creation, reading order, branching and author controls."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from taletree.api.v1.dependencies import CurrentUserDep, StoryServiceDep, raise_http_error
from taletree.core.errors import TaletreeError
from taletree.core.settings import settings
from taletree.schemas.story import (
    AggregateAudit,
    StoryCreate,
    StoryCreated,
    StoryResponse,
    StoryUpdate,
)
from taletree.schemas.unit import (
    AnomalyResponse,
    BranchCreate,
    TraversalEntryResponse,
    TreeResponse,
    UnitResponse,
)

router = APIRouter(prefix="/stories", tags=["stories"])


@router.post("/", response_model=StoryCreated, status_code=status.HTTP_201_CREATED)
def create_story(
    story_data: StoryCreate,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> StoryCreated:
    """Create a story and its root unit in one step."""
    try:
        tree_id, root_unit_id = service.create_tree(
            current_user,
            story_data.body,
            title=story_data.title,
            category=story_data.category,
            tags=story_data.tags,
            status=story_data.status,
        )
    except TaletreeError as err:
        raise_http_error(err)
    return StoryCreated(tree_id=tree_id, root_unit_id=root_unit_id)


@router.get("/{tree_id}", response_model=StoryResponse)
def get_story(tree_id: str, service: StoryServiceDep) -> StoryResponse:
    """Get story metadata and its aggregate counters."""
    try:
        story = service.get_story(tree_id)
    except TaletreeError as err:
        raise_http_error(err)
    return StoryResponse.model_validate(story)


@router.patch("/{tree_id}", response_model=StoryResponse)
def update_story(
    tree_id: str,
    update: StoryUpdate,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> StoryResponse:
    """Apply author-only changes: lock state, publishing, canonical branch."""
    fields: dict[str, Any] = {"is_locked": update.is_locked, "publish": bool(update.publish)}
    if "canonical_unit_id" in update.model_fields_set:
        fields["canonical_unit_id"] = update.canonical_unit_id
    try:
        story = service.update_story(tree_id, current_user, **fields)
    except TaletreeError as err:
        raise_http_error(err)
    return StoryResponse.model_validate(story)


@router.get("/{tree_id}/tree", response_model=TreeResponse)
def get_story_tree(
    tree_id: str,
    service: StoryServiceDep,
    after: str | None = Query(None, description="Resume after this unit id"),
    limit: int | None = Query(None, ge=1, le=settings.traversal_page_limit),
) -> TreeResponse:
    """Get the story's units in depth-first reading order, siblings oldest first.

    Args:
        tree_id: Story to read.
        service: Story service.
        after: Cursor from a previous page.
        limit: Maximum number of entries to return.

    Returns:
        One page of the traversal and any structural anomalies found.
    """
    try:
        traversal = service.get_tree(tree_id)
    except TaletreeError as err:
        raise_http_error(err)

    try:
        page = traversal.after(after, limit)
    except KeyError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unknown cursor",
        ) from err

    next_cursor = None
    if page and page[-1].position + 1 < len(traversal):
        next_cursor = page[-1].unit.id

    return TreeResponse(
        tree_id=tree_id,
        total=len(traversal),
        entries=[TraversalEntryResponse.model_validate(entry) for entry in page],
        anomalies=[AnomalyResponse.model_validate(a) for a in traversal.anomalies],
        next_cursor=next_cursor,
    )


@router.get("/{tree_id}/audit", response_model=AggregateAudit)
def audit_story(tree_id: str, service: StoryServiceDep) -> AggregateAudit:
    """Recount units and comments and compare them with the stored counters."""
    try:
        report = service.verify_aggregates(tree_id)
    except TaletreeError as err:
        raise_http_error(err)
    return AggregateAudit.model_validate(report)


@router.post(
    "/{tree_id}/branches",
    response_model=UnitResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_branch(
    tree_id: str,
    branch_data: BranchCreate,
    current_user: CurrentUserDep,
    service: StoryServiceDep,
) -> UnitResponse:
    """Attach a new unit beneath an existing unit of the story."""
    try:
        unit = service.add_branch(
            tree_id,
            branch_data.parent_unit_id,
            current_user,
            branch_data.body,
        )
    except TaletreeError as err:
        raise_http_error(err)
    return UnitResponse.model_validate(unit)
