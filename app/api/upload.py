"""Upload/status/download API.

  POST /upload              receive a video, register a task, queue it
  GET  /status/{task_id}    poll the task registry
  GET  /download/{file_name} stream a finished output artifact
"""

import logging
import os
import uuid
from typing import Union

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from app.config import Settings
from app.db.task_registry import TaskRegistry
from app.dependencies import get_app_settings, get_dispatcher, get_registry, get_store
from app.jobs.models import QueuedJob
from app.jobs.worker_pool import WorkerPool
from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

router = APIRouter()

_MEDIA_TYPES = {
    ".webm": "video/webm",
    ".mp4": "video/mp4",
}


# ---------------------------------------------------------------------------
# POST /upload
# ---------------------------------------------------------------------------

@router.post("/upload")
async def upload_video(
    video: Union[UploadFile, str, None] = File(None),
    settings: Settings = Depends(get_app_settings),
    registry: TaskRegistry = Depends(get_registry),
    store: ArtifactStore = Depends(get_store),
    dispatcher: WorkerPool = Depends(get_dispatcher),
):
    """Persist an uploaded video and start a background-removal task.

    Returns:
        {taskId}
    """
    if video is None or isinstance(video, str):
        raise HTTPException(status_code=400, detail="No video file provided")

    task_id = str(uuid.uuid4())
    input_path = store.input_path(task_id)
    max_bytes = settings.max_upload_bytes

    total = 0
    try:
        with open(input_path, "wb") as dst:
            while True:
                chunk = await video.read(settings.upload_chunk_bytes)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large (max {max_bytes // (1024 * 1024)} MB)",
                    )
                dst.write(chunk)
    except HTTPException:
        _discard(input_path)
        raise
    except Exception as exc:
        logger.exception("Failed to save upload for task %s", task_id)
        _discard(input_path)
        raise HTTPException(status_code=500, detail="Error processing video") from exc

    try:
        registry.create_or_reset(task_id)
    except Exception as exc:
        logger.exception("Failed to register task %s", task_id)
        _discard(input_path)
        raise HTTPException(status_code=500, detail="Error processing video") from exc

    try:
        dispatcher.submit(
            QueuedJob(task_id=task_id, input_path=input_path, output_path=store.output_path(task_id))
        )
    except RuntimeError as exc:
        # The row stays processing; recovery fails it on the next start
        _discard(input_path)
        raise HTTPException(status_code=503, detail="Service shutting down") from exc
    logger.info("Accepted upload %s (%d bytes) as task %s", video.filename, total, task_id)
    return {"taskId": task_id}


# ---------------------------------------------------------------------------
# GET /status/{task_id}
# ---------------------------------------------------------------------------

@router.get("/status/{task_id}")
async def get_status(task_id: str, registry: TaskRegistry = Depends(get_registry)):
    """Return {status, downloadLink?} for a task."""
    task = registry.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    response = {"status": task.status.value}
    if task.download_link:
        response["downloadLink"] = task.download_link
    return response


# ---------------------------------------------------------------------------
# GET /download/{file_name}
# ---------------------------------------------------------------------------

@router.get("/download/{file_name}")
async def download_output(file_name: str, store: ArtifactStore = Depends(get_store)):
    """Stream a processed video back to the caller."""
    path = store.resolve_download(file_name)
    if path is None:
        raise HTTPException(status_code=404, detail="File not found")

    ext = os.path.splitext(file_name)[1].lower()
    return FileResponse(
        path,
        media_type=_MEDIA_TYPES.get(ext, "application/octet-stream"),
        filename=file_name,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial upload %s: %s", path, exc)
