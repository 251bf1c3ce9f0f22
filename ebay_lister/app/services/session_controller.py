import asyncio
import enum
import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ebay_lister.app.core.config import AVAILABLE_MODELS, Settings
from ebay_lister.app.core.errors import (
    AnalysisInProgressError,
    ListingError,
    NormalizationError,
    NothingToExportError,
    UnsupportedModelError,
    ValidationError,
)
from ebay_lister.app.schemas.listing import AnalysisResult, ListingDocument, UploadedImage
from ebay_lister.app.services import listing_composer
from ebay_lister.app.services.export.base import ExportSink
from ebay_lister.app.services.gemini_client import GeminiClient
from ebay_lister.app.services.image_normalizer import NormalizeOptions, normalize_image, validate_upload
from ebay_lister.app.services.upload_registry import UploadRegistry

logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "ebay-listing.html"


class SessionState(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    ERROR = "error"


class CopyTarget(str, enum.Enum):
    TITLE = "title"
    SPECS = "specs"
    DESCRIPTION = "description"
    HTML = "html"


@dataclass
class IncomingFile:
    name: str
    mime_type: Optional[str]
    data: bytes


@dataclass
class Notification:
    kind: str
    message: str
    created_at: datetime
    ttl_seconds: float = 3.0

    def expired(self, now: datetime) -> bool:
        return now >= self.created_at + timedelta(seconds=self.ttl_seconds)


ClientFactory = Callable[[Optional[str], str], GeminiClient]


@dataclass
class _AnalysisOutcome:
    result: AnalysisResult
    listing: ListingDocument


class SessionController:
    """Single-user session: owns the registry and the latest result/listing pair."""

    def __init__(
        self,
        settings: Settings,
        exporter: ExportSink,
        client_factory: Optional[ClientFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.exporter = exporter
        self.registry = UploadRegistry()
        self.registry.subscribe(self._on_images_changed)
        self.normalize_options = NormalizeOptions.from_settings(settings)
        self.api_key: Optional[str] = settings.gemini_api_key
        self.model: str = settings.gemini_model
        self.state = SessionState.IDLE
        self.progress: Optional[str] = None
        self.result: Optional[AnalysisResult] = None
        self.listing: Optional[ListingDocument] = None
        self._analyzing = False
        self._uploads_in_flight = 0
        self._notifications: List[Notification] = []
        self._client_factory = client_factory or self._default_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _default_client(self, api_key: Optional[str], model: str) -> GeminiClient:
        return GeminiClient.from_settings(self.settings, api_key=api_key, model=model)

    def notify(self, kind: str, message: str) -> Notification:
        note = Notification(
            kind=kind,
            message=message,
            created_at=self._clock(),
            ttl_seconds=self.settings.notification_ttl_seconds,
        )
        self._notifications = [n for n in self._notifications if not n.expired(note.created_at)]
        self._notifications.append(note)
        log = logger.warning if kind == "error" else logger.info
        log("notification [%s]: %s", kind, message)
        return note

    def active_notifications(self, now: Optional[datetime] = None) -> List[Notification]:
        now = now or self._clock()
        self._notifications = [n for n in self._notifications if not n.expired(now)]
        return list(self._notifications)

    def _on_images_changed(self, images: List[UploadedImage]) -> None:
        # a changed registry clears a stale analysis error
        if self.state == SessionState.ERROR:
            self.state = SessionState.IDLE
        logger.debug("images changed: count=%d readiness=%s", len(images), self.readiness())

    def _settle_state(self) -> None:
        if self._analyzing:
            self.state = SessionState.ANALYZING
        elif self._uploads_in_flight:
            self.state = SessionState.UPLOADING
        elif self.state != SessionState.ERROR:
            self.state = SessionState.IDLE

    @property
    def analyzing(self) -> bool:
        return self._analyzing

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def can_analyze(self) -> bool:
        return len(self.registry) > 0 and self.has_api_key and not self._analyzing

    def readiness(self) -> str:
        if len(self.registry) > 0 and self.has_api_key:
            return "Ready to analyze"
        if len(self.registry) == 0:
            return "Upload images to continue"
        return "API key required"

    def set_credentials(self, api_key: str, model: Optional[str] = None) -> None:
        if model is not None:
            if model not in AVAILABLE_MODELS:
                raise UnsupportedModelError(f"{model} is not a supported model")
            self.model = model
        self.api_key = api_key.strip() or None

    async def _normalize_and_add(self, incoming: IncomingFile) -> Optional[UploadedImage]:
        loop = asyncio.get_running_loop()
        try:
            image = await loop.run_in_executor(
                None,
                functools.partial(
                    normalize_image, incoming.name, incoming.mime_type, incoming.data, self.normalize_options
                ),
            )
        except NormalizationError as exc:
            self.notify("error", exc.message)
            return None
        # completion order, not submission order
        self.registry.add(image)
        return image

    async def upload(self, files: Sequence[IncomingFile]) -> List[UploadedImage]:
        accepted = []
        for incoming in files:
            try:
                validate_upload(incoming.name, incoming.mime_type, len(incoming.data), self.settings)
            except ValidationError as exc:
                self.notify("error", exc.message)
                continue
            accepted.append(incoming)
        if not accepted:
            return []

        self._uploads_in_flight += 1
        self._settle_state()
        try:
            results = await asyncio.gather(*(self._normalize_and_add(f) for f in accepted))
        finally:
            self._uploads_in_flight -= 1
            self._settle_state()
        added = [img for img in results if img is not None]
        logger.info("upload batch finished: submitted=%d added=%d", len(files), len(added))
        return added

    def remove_image(self, image_id: str) -> bool:
        return self.registry.remove(image_id)

    def clear_images(self) -> None:
        self.registry.clear()

    async def _run_analysis(self) -> _AnalysisOutcome:
        self.progress = "Preparing images for analysis..."
        images = self.registry.list()
        client = self._client_factory(self.api_key, self.model)
        self.progress = "Sending request to Gemini AI..."
        result = await client.analyze(images)
        self.progress = "Processing AI response..."
        current = self.registry.list()
        listing = listing_composer.compose(result, current, self.settings.description_max_chars)
        return _AnalysisOutcome(result=result, listing=listing)

    async def analyze(self) -> ListingDocument:
        if self._analyzing:
            raise AnalysisInProgressError("An analysis is already running")
        self._analyzing = True
        self._settle_state()
        try:
            outcome = await self._run_analysis()
        except Exception as exc:
            self.progress = None
            self.state = SessionState.ERROR
            if isinstance(exc, ListingError):
                self.notify("error", f"Analysis failed: {exc.message}")
            else:
                logger.exception("Unexpected analysis failure")
                self.notify("error", "Analysis failed: unexpected error")
            raise
        finally:
            self._analyzing = False
        # fully replaced, never merged with a previous result
        self.result = outcome.result
        self.listing = outcome.listing
        self.state = SessionState.IDLE
        self._settle_state()
        self.progress = "Analysis complete!"
        self.notify("success", "eBay listing generated successfully!")
        return outcome.listing

    def copy(self, target: CopyTarget) -> str:
        if self.listing is None:
            self.notify("error", "Nothing to copy yet")
            raise NothingToExportError("Nothing to copy yet")
        target = CopyTarget(target)
        if target == CopyTarget.TITLE:
            text = self.listing.title
        elif target == CopyTarget.SPECS:
            text = self.listing.specification_text()
        elif target == CopyTarget.DESCRIPTION:
            text = self.listing.description
        else:
            text = self.listing.complete_html
        self.exporter.copy_text(text)
        self.notify("success", "Copied to clipboard!")
        return text

    def download(self) -> Path:
        if self.listing is None or not self.listing.complete_html:
            self.notify("error", "No HTML content to download")
            raise NothingToExportError("No HTML content to download")
        path = self.exporter.save_html(self.listing.complete_html, DOWNLOAD_FILENAME)
        self.notify("success", "HTML file downloaded!")
        return path
