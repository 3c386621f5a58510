import logging

from psd_worker.models.render_jobs import RenderJobs, RenderStatusEnum
from psd_worker.models.renders import ProcessPsdRequest
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader
from psd_worker.utils.pipeline import describe_error, process_psd

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


async def render_job_background(
    job_id: str,
    request: ProcessPsdRequest,
    browser_manager: BrowserManager,
    uploader: DriveUploader,
):
    """
    Background task that runs a queued render and records the outcome.

    Args:
        job_id: The ID of the render job record to update
        request: The render request as received
    """
    try:
        logger.info(f"Starting background render (ID: {job_id})")
        RenderJobs.update_job(job_id, status=RenderStatusEnum.PROCESSING.value)

        response = await process_psd(request, browser_manager, uploader)

        RenderJobs.update_job(
            job_id,
            status=RenderStatusEnum.COMPLETED.value,
            file_id=response.file_id,
            url=response.url,
            download_url=response.download_url,
            missing_layers=response.missing_layers,
        )
        logger.info(f"Background render complete (ID: {job_id})")

    except Exception as e:
        error_msg = describe_error(e)
        logger.error(f"Error in background render {job_id}: {error_msg}", exc_info=True)

        RenderJobs.update_job(
            job_id,
            status=RenderStatusEnum.FAILED.value,
            error_message=error_msg,
        )
