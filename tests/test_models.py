import pytest
from pydantic import ValidationError

from psd_worker.models.renders import (
    LayerModification,
    ProcessPsdRequest,
    ProcessPsdResponse,
)


def test_request_accepts_camel_case_body():
    request = ProcessPsdRequest.model_validate(
        {
            "psdUrl": "https://cdn.test/t.psd",
            "modifications": [
                {"layerName": "Title", "text": "Hi"},
                {"layerName": "Photo", "image": "https://cdn.test/p.jpg"},
            ],
        }
    )
    assert request.psd_url == "https://cdn.test/t.psd"
    assert request.format == "jpg"
    assert request.mime_type == "image/jpeg"
    assert request.modifications[1].image == "https://cdn.test/p.jpg"


def test_empty_text_is_a_valid_modification():
    mod = LayerModification(layerName="Subtitle", text="")
    assert mod.to_script_arg() == {"layerName": "Subtitle", "text": "", "image": None}


def test_modification_needs_text_or_image():
    with pytest.raises(ValidationError):
        LayerModification(layerName="Title")


def test_request_rejects_unknown_format():
    with pytest.raises(ValidationError):
        ProcessPsdRequest(psdUrl="https://cdn.test/t.psd", format="gif")


def test_request_requires_psd_url():
    with pytest.raises(ValidationError):
        ProcessPsdRequest.model_validate({"modifications": []})


def test_response_serializes_with_aliases():
    response = ProcessPsdResponse(
        url="https://view", download_url="https://dl", file_id="f1"
    )
    assert response.model_dump(by_alias=True) == {
        "success": True,
        "url": "https://view",
        "downloadUrl": "https://dl",
        "fileId": "f1",
        "missingLayers": [],
    }
