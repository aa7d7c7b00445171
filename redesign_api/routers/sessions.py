"""
Redesign session routes: upload, style selection and chat refinement
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from redesign_api.core.config import settings
from redesign_api.core.errors import invalid_request_error
from redesign_api.schemas.redesign import (
    SelectStyleRequest,
    SendMessageRequest,
    SessionImageResponse,
    SessionStateResponse,
)
from redesign_api.services.redesign_session import RedesignSession
from redesign_api.services.session_manager import RedesignSessionManager, session_manager
from redesign_api.utils.images import InlineImage, load_uploaded_image

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_session_manager() -> RedesignSessionManager:
    return session_manager


async def _get_session_or_404(session_id: str, manager: RedesignSessionManager) -> RedesignSession:
    session = await manager.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


def _snapshot(session: RedesignSession, include_original: bool = False) -> SessionStateResponse:
    return SessionStateResponse(**session.to_dict(include_original=include_original))


async def _read_upload(file: UploadFile) -> InlineImage:
    """Read an uploaded room photo fully into memory and validate it"""
    if file.content_type and file.content_type not in settings.allowed_image_types:
        raise invalid_request_error(f"File must be an image ({', '.join(settings.allowed_image_types)})")
    data = await file.read()
    logger.info(f"Received upload {file.filename} ({len(data)} bytes, {file.content_type})")
    return load_uploaded_image(data, settings.max_upload_size, settings.allowed_image_types)


async def _run_upload(session: RedesignSession, image: InlineImage):
    """Run the upload flow and map a first-style failure onto its error status"""
    uploaded = await session.upload(image)
    failure = session.last_failure
    if uploaded or failure is None:
        # failure is None without success when a newer upload superseded this one
        return _snapshot(session)

    content = {"error": session.error, "detail": failure.message, "sessionId": session.session_id}
    headers = {}
    if failure.retry_after_seconds is not None:
        content["retryAfterSeconds"] = failure.retry_after_seconds
        headers["Retry-After"] = str(failure.retry_after_seconds)
    return JSONResponse(status_code=failure.http_status, content=content, headers=headers)


@router.post("", response_model=SessionStateResponse, status_code=201)
async def create_session(file: UploadFile = File(...), manager: RedesignSessionManager = Depends(get_session_manager)):
    """Upload a room photo, wait for the first style and start background generation of the rest"""
    image = await _read_upload(file)
    session = await manager.create_session()
    return await _run_upload(session, image)


@router.put("/{session_id}/image", response_model=SessionStateResponse)
async def replace_image(
    session_id: str, file: UploadFile = File(...), manager: RedesignSessionManager = Depends(get_session_manager)
):
    """Re-upload a photo into an existing session, discarding all derived state"""
    session = await _get_session_or_404(session_id, manager)
    image = await _read_upload(file)
    return await _run_upload(session, image)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_session_state(
    session_id: str, include_original: bool = False, manager: RedesignSessionManager = Depends(get_session_manager)
):
    session = await _get_session_or_404(session_id, manager)
    return _snapshot(session, include_original=include_original)


@router.post("/{session_id}/style", response_model=SessionStateResponse)
async def select_style(
    session_id: str, request: SelectStyleRequest, manager: RedesignSessionManager = Depends(get_session_manager)
):
    """Switch style; generates it on demand if it has not been generated yet"""
    session = await _get_session_or_404(session_id, manager)
    await session.select_style(request.style)
    return _snapshot(session)


@router.post("/{session_id}/messages", response_model=SessionStateResponse)
async def send_message(
    session_id: str, request: SendMessageRequest, manager: RedesignSessionManager = Depends(get_session_manager)
):
    """Chat with the assistant about the current style; edit requests update the current design"""
    session = await _get_session_or_404(session_id, manager)
    await session.send_message(request.message)
    return _snapshot(session)


@router.get("/{session_id}/images/{style}", response_model=SessionImageResponse)
async def get_style_image(session_id: str, style: str, manager: RedesignSessionManager = Depends(get_session_manager)):
    session = await _get_session_or_404(session_id, manager)
    image = session.generated_images.get(style)
    if image is None:
        raise HTTPException(status_code=404, detail=f"{style} has not been generated yet")
    return SessionImageResponse(style=style, image=image.to_data_url())


@router.delete("/{session_id}")
async def delete_session(session_id: str, manager: RedesignSessionManager = Depends(get_session_manager)):
    if not await manager.remove_session(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return {"deleted": session_id}
