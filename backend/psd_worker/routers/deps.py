from fastapi import Request

from psd_worker.utils.browser import BrowserManager
from psd_worker.utils.drive import DriveUploader


def get_browser_manager(request: Request) -> BrowserManager:
    return request.app.state.browser_manager


def get_uploader(request: Request) -> DriveUploader:
    return request.app.state.uploader
