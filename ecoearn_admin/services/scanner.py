from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Protocol

from ..core import qr
from ..core.errors import EcoEarnError, CameraUnavailable
from .activation import activate, deactivate
from .registry import BinRegistry

logger = logging.getLogger(__name__)

# Camera dependencies are loaded on first use so API-only deployments
# never import OpenCV/pyzbar.
cv2 = None
pyzbar = None

def _camera_deps():
    global cv2, pyzbar
    if cv2 is None or pyzbar is None:
        try:
            import cv2 as _cv2  # type: ignore
            from pyzbar import pyzbar as _pyzbar  # type: ignore
        except ImportError as e:
            logger.error("camera scanning needs opencv and pyzbar: %s", e)
            raise CameraUnavailable() from e
        cv2, pyzbar = _cv2, _pyzbar
    return cv2, pyzbar


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SUCCESS = "success"
    ERROR = "error"


class FrameSource(Protocol):
    def open(self) -> None: ...
    def read(self) -> Any | None: ...
    def release(self) -> None: ...

FrameDecoder = Callable[[Any], list[str]]


class CameraFrameSource:
    """OpenCV capture device (index 0 is usually the back/only camera)."""

    def __init__(self, device_id: int = 0, resolution: tuple[int, int] = (640, 480)):
        self.device_id = device_id
        self.resolution = resolution
        self._cap = None

    def open(self) -> None:
        cv, _ = _camera_deps()
        cap = cv.VideoCapture(self.device_id)
        if not cap.isOpened():
            cap.release()
            logger.error("cannot open camera device %s", self.device_id)
            raise CameraUnavailable()
        cap.set(cv.CAP_PROP_FRAME_WIDTH, self.resolution[0])
        cap.set(cv.CAP_PROP_FRAME_HEIGHT, self.resolution[1])
        self._cap = cap

    def read(self) -> Any | None:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        return frame if ok else None

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None


def pyzbar_decoder(frame: Any) -> list[str]:
    cv, zbar = _camera_deps()
    gray = cv.cvtColor(frame, cv.COLOR_BGR2GRAY)
    return [c.data.decode("utf-8", errors="replace") for c in zbar.decode(gray) if c.type == "QRCODE"]


class ScannerSession:
    """One operator's scan-to-activate flow.

    State moves ``idle -> scanning -> success | error``. After a success the
    session remembers the bin so it can be released with :meth:`deactivate`.
    """

    def __init__(
        self,
        registry: BinRegistry,
        user_id: str,
        *,
        sample_interval: float = 0.1,
        max_failed_reads: int = 50,
    ):
        if not user_id or not user_id.strip():
            raise ValueError("a scanner session needs a user id")
        self.registry = registry
        self.user_id = user_id
        self.sample_interval = sample_interval
        self.max_failed_reads = max_failed_reads
        self.state = ScanState.IDLE
        self.message = ""
        self.active_bin_id: str | None = None
        self._source: FrameSource | None = None
        self._stopped = False

    def _fail(self, message: str) -> ScanState:
        self.state = ScanState.ERROR
        self.message = message
        return self.state

    async def submit(self, text: str) -> ScanState:
        """Manual entry: decode ``text`` and activate the bin it names."""
        self.state = ScanState.SCANNING
        self.message = ""
        try:
            token = qr.decode(text)
            await activate(self.registry, token.bin_id, self.user_id)
        except EcoEarnError as e:
            logger.info("scan by %s rejected: %s", self.user_id, e.message)
            return self._fail(e.message)
        self.active_bin_id = token.bin_id
        self.state = ScanState.SUCCESS
        self.message = "Bin activated successfully!"
        return self.state

    async def scan(self, source: FrameSource, decoder: FrameDecoder = pyzbar_decoder) -> ScanState:
        """Live capture: sample frames until one carries a QR payload, then submit it."""
        self.state = ScanState.SCANNING
        self.message = "Scanning for QR code..."
        self._stopped = False
        try:
            await asyncio.to_thread(source.open)
        except CameraUnavailable as e:
            return self._fail(e.message)
        self._source = source

        text: str | None = None
        failed = 0
        try:
            while not self._stopped:
                frame = await asyncio.to_thread(source.read)
                if frame is None:
                    failed += 1
                    if failed >= self.max_failed_reads:
                        return self._fail(CameraUnavailable.message)
                else:
                    failed = 0
                    payloads = await asyncio.to_thread(decoder, frame)
                    if payloads:
                        text = payloads[0]
                        break
                await asyncio.sleep(self.sample_interval)
        finally:
            self._release()

        if text is None:
            return self.state
        return await self.submit(text)

    def _release(self) -> None:
        if self._source is not None:
            self._source.release()
            self._source = None

    def stop(self) -> None:
        # releases the camera only; an activation already sent is not cancelled
        self._stopped = True
        self._release()
        self.state = ScanState.IDLE
        self.message = ""

    async def deactivate(self) -> ScanState:
        if self.state != ScanState.SUCCESS or self.active_bin_id is None:
            raise RuntimeError("no bin was activated in this session")
        try:
            await deactivate(self.registry, self.active_bin_id, self.user_id)
        except EcoEarnError as e:
            logger.warning("release of bin %s failed: %s", self.active_bin_id, e.message)
            self.message = "Failed to deactivate bin"
            return self.state
        self.active_bin_id = None
        self.state = ScanState.IDLE
        self.message = "Bin deactivated successfully"
        return self.state
