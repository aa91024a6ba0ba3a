"""Routes for the dependency endpoints of the Slate HTTP API."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from slate.constants import ACTOR_HEADER
from slate.deps import add_dependency, list_dependencies, remove_dependency
from slate.errors import MissingField, Unauthorized
from slate.storage import JSONLStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_actor(request: Request) -> str:
    """Identify the acting user from the request header or app default."""
    actor = request.headers.get(ACTOR_HEADER) or request.app.state.default_actor
    if not actor:
        msg = "Unauthorized"
        raise Unauthorized(msg)
    return actor


def get_storage(request: Request) -> JSONLStorage:
    """Open the store fresh for each request.

    Synchronous, so FastAPI runs it in its threadpool.
    """
    return JSONLStorage(request.app.state.storage_path)


def _resolve(storage: JSONLStorage, ref: Any) -> Any:
    """Map a ``slug-number`` reference to an issue ID; pass anything else through."""
    if isinstance(ref, str) and ref:
        return storage.resolve_ref(ref) or ref
    return ref


@router.get("/issues/{issue_id}/dependencies")
def get_dependencies(
    issue_id: str,
    _actor: str = Depends(get_actor),
    storage: JSONLStorage = Depends(get_storage),
) -> dict[str, Any]:
    """Get the issues blocking and blocked by an issue."""
    listing = list_dependencies(storage, _resolve(storage, issue_id))
    return listing.to_dict()


@router.post("/issues/{issue_id}/dependencies")
async def post_dependency(
    issue_id: str,
    request: Request,
    actor: str = Depends(get_actor),
    storage: JSONLStorage = Depends(get_storage),
) -> JSONResponse:
    """Add a dependency. Body: ``{target_issue_id, type: blocks|blocked_by}``."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        msg = "Request body must be a JSON object"
        raise MissingField("body", msg)

    # The write lock blocks, so keep it off the event loop
    change = await run_in_threadpool(
        add_dependency,
        storage,
        _resolve(storage, issue_id),
        _resolve(storage, body.get("target_issue_id")),
        body.get("type"),
        actor_id=actor,
    )
    return JSONResponse(
        {"success": True, "dependency": change.to_dict()},
        status_code=201,
    )


@router.delete("/issues/{issue_id}/dependencies")
def delete_dependency(
    issue_id: str,
    request: Request,
    actor: str = Depends(get_actor),
    storage: JSONLStorage = Depends(get_storage),
) -> dict[str, Any]:
    """Remove a dependency. Query: ``target_issue_id``, ``type``."""
    params = request.query_params
    target = params.get("target_issue_id")
    if not target:
        msg = "target_issue_id query parameter is required"
        raise MissingField("target_issue_id", msg)

    change = remove_dependency(
        storage,
        _resolve(storage, issue_id),
        _resolve(storage, target),
        params.get("type"),
        actor_id=actor,
    )
    if not change.changed:
        logger.debug("No dependency to remove for %s", issue_id)
    return {"success": True}
