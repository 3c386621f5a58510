import asyncio
from contextlib import asynccontextmanager

import pytest

from psd_worker.models.renders import ProcessPsdRequest
from psd_worker.utils.drive import UploadedFile
from psd_worker.utils.photopea import RenderScriptError
from psd_worker.utils import pipeline

from fakes import JPEG_BYTES, FakeContext, FakePage


class StubBrowserManager:
    def __init__(self, page):
        self.page = page
        self.contexts_closed = 0

    @asynccontextmanager
    async def new_context(self):
        try:
            yield FakeContext(self.page)
        finally:
            self.contexts_closed += 1


class RecordingUploader:
    def __init__(self):
        self.calls = []

    async def upload(self, data, name=None, mime_type="image/jpeg"):
        self.calls.append({"data": data, "name": name, "mime_type": mime_type})
        return UploadedFile(
            id="file-123",
            web_view_link="https://drive.google.com/file/d/file-123/view",
            web_content_link="https://drive.google.com/uc?id=file-123",
        )


@pytest.fixture(autouse=True)
def fast_session(monkeypatch):
    session_cls = pipeline.PhotopeaSession

    def factory(page):
        return session_cls(
            page,
            url="https://photopea.test",
            render_timeout_ms=1000,
            blocked_resource_types=[],
        )

    monkeypatch.setattr(pipeline, "PhotopeaSession", factory)


def test_process_psd_renders_and_uploads():
    page = FakePage(missing_layers=["Badge"])
    manager = StubBrowserManager(page)
    uploader = RecordingUploader()
    request = ProcessPsdRequest(
        psdUrl="https://cdn.test/t.psd",
        modifications=[{"layerName": "Title", "text": "Sale"}],
        fileName="promo.jpg",
    )

    response = asyncio.run(pipeline.process_psd(request, manager, uploader))

    assert response.success is True
    assert response.file_id == "file-123"
    assert response.url == "https://drive.google.com/file/d/file-123/view"
    assert response.download_url == "https://drive.google.com/uc?id=file-123"
    assert response.missing_layers == ["Badge"]
    assert uploader.calls == [
        {"data": JPEG_BYTES, "name": "promo.jpg", "mime_type": "image/jpeg"}
    ]
    assert page.closed is True
    assert manager.contexts_closed == 1


def test_process_psd_closes_page_on_failure():
    page = FakePage(script_error="boom")
    manager = StubBrowserManager(page)
    uploader = RecordingUploader()
    request = ProcessPsdRequest(psdUrl="https://cdn.test/t.psd")

    with pytest.raises(RenderScriptError):
        asyncio.run(pipeline.process_psd(request, manager, uploader))

    assert page.closed is True
    assert manager.contexts_closed == 1
    assert uploader.calls == []


def test_page_close_failure_does_not_mask_render_error():
    page = FakePage(
        script_error="Failed to fetch https://cdn.test/t.psd: HTTP 404",
        close_error="Target page, context or browser has been closed",
    )
    manager = StubBrowserManager(page)
    request = ProcessPsdRequest(psdUrl="https://cdn.test/t.psd")

    with pytest.raises(RenderScriptError, match="HTTP 404"):
        asyncio.run(pipeline.process_psd(request, manager, RecordingUploader()))

    assert manager.contexts_closed == 1


def test_describe_error_falls_back_to_type_name():
    assert pipeline.describe_error(TimeoutError()) == "TimeoutError"
    assert pipeline.describe_error(ValueError("bad url")) == "bad url"
