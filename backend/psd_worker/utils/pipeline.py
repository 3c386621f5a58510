import logging

from psd_worker.models.renders import ProcessPsdRequest, ProcessPsdResponse
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader
from psd_worker.utils.photopea import PhotopeaSession

logger = logging.getLogger(__name__)


def describe_error(error: BaseException) -> str:
    """Message for API callers, falling back to the exception type."""
    return str(error) or type(error).__name__


async def process_psd(
    request: ProcessPsdRequest,
    browser_manager: BrowserManager,
    uploader: DriveUploader,
) -> ProcessPsdResponse:
    """
    Render a PSD template in Photopea and publish the result to Google Drive.

    Each call uses its own browser context and page, closed even on failure.
    """
    logger.info(f"Processing PSD: {request.psd_url}")

    async with browser_manager.new_context() as context:
        page = await context.new_page()
        try:
            session = PhotopeaSession(page)
            await session.open()
            result = await session.render(
                request.psd_url, request.modifications, request.format
            )
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing page: {e}")

    logger.info("Image rendered. Uploading to Google Drive...")
    uploaded = await uploader.upload(
        result.image, name=request.file_name, mime_type=result.mime_type
    )

    logger.info(f"Done! File ID: {uploaded.id}")
    return ProcessPsdResponse(
        success=True,
        url=uploaded.web_view_link,
        download_url=uploaded.web_content_link,
        file_id=uploaded.id,
        missing_layers=result.missing_layers,
    )
