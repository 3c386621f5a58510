import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from psd_worker.models.render_jobs import RenderJobModel, RenderJobs
from psd_worker.models.renders import ProcessPsdRequest, RenderJobQueuedResponse
from psd_worker.routers.deps import get_browser_manager, get_uploader
from psd_worker.utils.auth import verify_api_key
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader
from psd_worker.utils.tasks import render_job_background

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.post(
    "",
    response_model=RenderJobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def queue_render(
    request: ProcessPsdRequest,
    background_tasks: BackgroundTasks,
    browser_manager: BrowserManager = Depends(get_browser_manager),
    uploader: DriveUploader = Depends(get_uploader),
):
    """
    Queue a render in the background.
    Returns immediately with a job ID to poll at `/api/v1/renders/{job_id}`.
    """
    try:
        job = RenderJobs.create_job(
            psd_url=request.psd_url,
            modifications=[m.to_script_arg() for m in request.modifications],
            output_format=request.format,
        )
    except Exception as e:
        logger.error(f"Error queuing render: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to queue render",
        )

    background_tasks.add_task(
        render_job_background, job.id, request, browser_manager, uploader
    )
    logger.info(f"Render job queued (ID: {job.id})")

    return RenderJobQueuedResponse(
        job_id=job.id,
        status=job.status,
        message="Render queued. Poll the job for the result.",
    )


@router.get("", response_model=List[RenderJobModel])
async def get_render_history(limit: int = Query(default=10, ge=1, le=100)):
    """
    Get recent render jobs, most recent first.

    Query Parameters:
    - limit: Number of jobs to return (default: 10)
    """
    try:
        return RenderJobs.get_job_history(limit=limit)
    except Exception as e:
        logger.error(f"Error fetching render history: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch render history",
        )


@router.get("/{job_id}", response_model=RenderJobModel)
async def get_render_job(job_id: str):
    try:
        job = RenderJobs.get_job_by_id(job_id)
    except Exception as e:
        logger.error(f"Error fetching render job: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch render job",
        )

    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Render job with ID {job_id} not found",
        )
    return job
