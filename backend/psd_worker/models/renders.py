from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

OutputFormat = Literal["jpg", "png", "webp"]

MIME_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class LayerModification(BaseModel):
    """A single layer edit applied inside the template document."""

    model_config = ConfigDict(populate_by_name=True)

    layer_name: str = Field(alias="layerName", min_length=1)
    text: Optional[str] = None
    image: Optional[str] = None

    @model_validator(mode="after")
    def check_has_change(self):
        if self.text is None and self.image is None:
            raise ValueError(
                f"Modification for layer '{self.layer_name}' needs 'text' or 'image'"
            )
        return self

    def to_script_arg(self) -> dict:
        """Shape consumed by the in-page edit script."""
        return {"layerName": self.layer_name, "text": self.text, "image": self.image}


class ProcessPsdRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    psd_url: str = Field(alias="psdUrl", min_length=1)
    modifications: List[LayerModification] = Field(default_factory=list)
    format: OutputFormat = "jpg"
    file_name: Optional[str] = Field(default=None, alias="fileName")

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.format]


class ProcessPsdResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    url: Optional[str] = None
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    file_id: Optional[str] = Field(default=None, alias="fileId")
    missing_layers: List[str] = Field(default_factory=list, alias="missingLayers")


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    service: str
    browser_connected: bool = Field(alias="browserConnected")


class RenderJobQueuedResponse(BaseModel):
    job_id: str
    status: str
    message: str
