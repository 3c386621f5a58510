import asyncio
import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from psd_worker.config import (
    BLOCKED_RESOURCE_TYPES,
    NAVIGATION_TIMEOUT_MS,
    PHOTOPEA_URL,
    READY_POLL_INTERVAL_MS,
    READY_TIMEOUT_MS,
    RENDER_TIMEOUT_MS,
)
from psd_worker.models.renders import MIME_TYPES, LayerModification

logger = logging.getLogger(__name__)

CALLBACK_NAME = "sendImageToNode"

DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")

READY_CHECK = "() => window.app && typeof window.app.open === 'function'"

# Runs inside the Photopea tab. `app` and `LayerKind` are Photopea globals.
EDIT_SCRIPT = """
async ({ psdUrl, modifications, format, callbackName }) => {
    async function loadBinary(url) {
        const resp = await fetch(url);
        if (!resp.ok) {
            throw new Error(`Failed to fetch ${url}: HTTP ${resp.status}`);
        }
        return await resp.arrayBuffer();
    }

    function findLayer(layers, name) {
        if (!layers) return null;
        for (let i = 0; i < layers.length; i++) {
            if (layers[i].name === name) return layers[i];
            if (layers[i].layers) {
                const found = findLayer(layers[i].layers, name);
                if (found) return found;
            }
        }
        return null;
    }

    const psdBuffer = await loadBinary(psdUrl);
    await app.open(psdBuffer, "template.psd");
    const doc = app.activeDocument;

    const missingLayers = [];
    for (const mod of modifications) {
        const layer = findLayer(doc.layers, mod.layerName);
        if (!layer) {
            missingLayers.push(mod.layerName);
            continue;
        }
        if (mod.text != null && layer.kind === LayerKind.TEXT) {
            layer.textItem.contents = mod.text;
        } else if (mod.image) {
            doc.activeLayer = layer;
            const imgBuffer = await loadBinary(mod.image);
            await app.open(imgBuffer, "replacement.jpg", true);
        }
    }

    const arrayBuffer = await doc.saveToOE(format);
    const blob = new Blob([arrayBuffer]);
    await new Promise((resolve, reject) => {
        const reader = new FileReader();
        reader.onloadend = async () => {
            await window[callbackName](reader.result);
            resolve();
        };
        reader.onerror = () => reject(reader.error);
        reader.readAsDataURL(blob);
    });

    return { missingLayers };
}
"""


class PhotopeaError(Exception):
    """Base error for anything that goes wrong inside the editor tab."""


class EditorNotReadyError(PhotopeaError):
    pass


class RenderScriptError(PhotopeaError):
    pass


class RenderTimeoutError(PhotopeaError):
    pass


@dataclass
class RenderResult:
    image: bytes
    mime_type: str
    missing_layers: List[str] = field(default_factory=list)


def decode_data_url(data_url: str) -> bytes:
    """Strip a `data:image/...;base64,` prefix and decode the payload."""
    payload = DATA_URL_PREFIX.sub("", data_url or "", count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise RenderScriptError(f"Editor returned invalid image data: {e}") from e


class PhotopeaSession:
    """Drives Photopea's in-page `app` object through a single Playwright page."""

    def __init__(
        self,
        page: Page,
        url: str = PHOTOPEA_URL,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        ready_timeout_ms: int = READY_TIMEOUT_MS,
        ready_poll_interval_ms: int = READY_POLL_INTERVAL_MS,
        render_timeout_ms: int = RENDER_TIMEOUT_MS,
        blocked_resource_types: Optional[Iterable[str]] = None,
    ):
        self.page = page
        self.url = url
        self.navigation_timeout_ms = navigation_timeout_ms
        self.ready_timeout_ms = ready_timeout_ms
        self.ready_poll_interval_ms = ready_poll_interval_ms
        self.render_timeout_ms = render_timeout_ms
        if blocked_resource_types is None:
            blocked_resource_types = BLOCKED_RESOURCE_TYPES
        self.blocked_resource_types = frozenset(blocked_resource_types)

    async def _handle_route(self, route: Route):
        if route.request.resource_type in self.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    async def open(self):
        """Load the editor and wait until its scripting object is usable."""
        if self.blocked_resource_types:
            await self.page.route("**/*", self._handle_route)

        logger.info(f"Navigating to {self.url}...")
        try:
            await self.page.goto(
                self.url, wait_until="networkidle", timeout=self.navigation_timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise EditorNotReadyError(
                f"Navigation to {self.url} timed out after {self.navigation_timeout_ms}ms"
            ) from e

        try:
            await self.page.wait_for_function(
                READY_CHECK,
                polling=self.ready_poll_interval_ms,
                timeout=self.ready_timeout_ms,
            )
        except PlaywrightTimeoutError as e:
            raise EditorNotReadyError(
                f"Photopea app object not ready after {self.ready_timeout_ms}ms"
            ) from e

        logger.info("Photopea is ready.")

    async def render(
        self,
        psd_url: str,
        modifications: List[LayerModification],
        output_format: str = "jpg",
    ) -> RenderResult:
        """Open the template, apply the layer edits and export the document."""
        loop = asyncio.get_running_loop()
        image_future: asyncio.Future = loop.create_future()

        def receive_image(data_url: str):
            if not image_future.done():
                image_future.set_result(data_url)

        await self.page.expose_function(CALLBACK_NAME, receive_image)

        deadline = loop.time() + self.render_timeout_ms / 1000
        logger.info(f"Rendering {psd_url} with {len(modifications)} modification(s)")

        try:
            result = await asyncio.wait_for(
                self.page.evaluate(
                    EDIT_SCRIPT,
                    {
                        "psdUrl": psd_url,
                        "modifications": [m.to_script_arg() for m in modifications],
                        "format": output_format,
                        "callbackName": CALLBACK_NAME,
                    },
                ),
                timeout=max(deadline - loop.time(), 0),
            )
            data_url = await asyncio.wait_for(
                image_future, timeout=max(deadline - loop.time(), 0)
            )
        except asyncio.TimeoutError as e:
            raise RenderTimeoutError(
                f"Timeout waiting for image render after {self.render_timeout_ms}ms"
            ) from e
        except PlaywrightError as e:
            raise RenderScriptError(f"Edit script failed: {e}") from e

        image = decode_data_url(data_url)
        if not image:
            raise RenderScriptError("Editor returned an empty image")

        missing_layers = list((result or {}).get("missingLayers") or [])
        if missing_layers:
            logger.warning(f"Layers not found in template: {missing_layers}")

        logger.info(f"Image rendered ({len(image)} bytes)")
        return RenderResult(
            image=image,
            mime_type=MIME_TYPES.get(output_format, "image/jpeg"),
            missing_layers=missing_layers,
        )
