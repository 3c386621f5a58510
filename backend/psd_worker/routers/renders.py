import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from psd_worker.models.renders import (
    ErrorResponse,
    ProcessPsdRequest,
    ProcessPsdResponse,
)
from psd_worker.routers.deps import get_browser_manager, get_uploader
from psd_worker.utils.auth import verify_api_key
from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader
from psd_worker.utils.pipeline import describe_error, process_psd

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.post(
    "/process-psd",
    response_model=ProcessPsdResponse,
    response_model_by_alias=True,
    responses={500: {"model": ErrorResponse}},
)
async def process_psd_endpoint(
    request: ProcessPsdRequest,
    browser_manager: BrowserManager = Depends(get_browser_manager),
    uploader: DriveUploader = Depends(get_uploader),
):
    """
    Render a PSD template and upload the result.

    This endpoint:
    1. Opens Photopea in a fresh browser context
    2. Loads the template from `psdUrl`
    3. Replaces text and image layers listed in `modifications`
    4. Exports the document and uploads it to Google Drive
    5. Returns the shareable link

    Layers that do not exist in the template are skipped and reported in
    `missingLayers`.
    """
    try:
        return await process_psd(request, browser_manager, uploader)
    except Exception as e:
        logger.error(f"Error processing {request.psd_url}: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=describe_error(e)).model_dump(),
        )
