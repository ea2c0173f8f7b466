import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.auth import get_current_user
from resumeforge.database import get_db
from resumeforge.exceptions import NotFoundError, RenderError, StorageError
from resumeforge.models.user import User
from resumeforge.schemas.resume import (
    GetResumeRequest,
    RenderAcceptedResponse,
    SaveResumeRequest,
    SaveResumeResponse,
)
from resumeforge.services.render_pipeline import RenderPipeline, get_render_pipeline
from resumeforge.services.resume_store import ResumeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/resume", tags=["resume"])


def _ensure_own_email(user: User, email: str) -> None:
    if email != user.email:
        logger.warning("[Request] %s tried to access resume of %s", user.email, email)
        raise HTTPException(status_code=403, detail="You can only access your own resume")


@router.post("/save", response_model=SaveResumeResponse)
async def save_resume(
    request: SaveResumeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the user's resume with the submitted content.

    Requires a valid session token in the Authorization header.
    """
    _ensure_own_email(user, request.user.email)

    try:
        await ResumeStore(db).replace(user.id, request.resume)
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    return SaveResumeResponse()


@router.post("/get")
async def get_resume(
    request: GetResumeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the user's saved resume content, or 204 if nothing is saved yet.

    Requires a valid session token in the Authorization header.
    """
    _ensure_own_email(user, request.email)

    try:
        content = await ResumeStore(db).get(user.id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    if content is None:
        return Response(status_code=204)
    return content


@router.post("/render", response_model=RenderAcceptedResponse, status_code=202)
async def render_resume(
    resume: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    pipeline: RenderPipeline = Depends(get_render_pipeline),
):
    """Render resume content to PDF and return a handle to download it.

    ``skills`` may be a list or a comma-separated string. The artifact
    belongs to the requesting user and expires after a while.
    Requires a valid session token in the Authorization header.
    """
    logger.info("[Request] /render called by user %s", user.email)

    try:
        handle = await pipeline.render(resume, owner=str(user.id))
    except RenderError as exc:
        logger.error("[Render %s] Failed: %s", user.id, exc, exc_info=True)
        if exc.timed_out:
            raise HTTPException(
                status_code=504, detail="Rendering timed out. Please try again."
            )
        raise HTTPException(status_code=500, detail="Internal server error")

    return RenderAcceptedResponse(handle=handle)


@router.get("/artifacts/{handle}")
async def fetch_artifact(
    handle: str,
    user: User = Depends(get_current_user),
    pipeline: RenderPipeline = Depends(get_render_pipeline),
):
    """Download a PDF previously rendered by the same user."""
    try:
        chunks = pipeline.fetch(handle, owner=str(user.id))
    except NotFoundError:
        raise HTTPException(
            status_code=404, detail="Resume has not been rendered or has expired"
        )

    return StreamingResponse(
        chunks,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="Resume.pdf"'},
    )
