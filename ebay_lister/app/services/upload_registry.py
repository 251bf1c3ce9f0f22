import logging
from typing import Callable, List

from ebay_lister.app.schemas.listing import UploadedImage

logger = logging.getLogger(__name__)

RegistryListener = Callable[[List[UploadedImage]], None]


class UploadRegistry:
    """Ordered collection of normalized images, keyed by image id.

    Order is arrival order of completed normalizations. Images are never
    mutated in place; a changed image is removed and re-added.
    """

    def __init__(self):
        self._images: List[UploadedImage] = []
        self._listeners: List[RegistryListener] = []

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.list()
        for listener in list(self._listeners):
            listener(snapshot)

    def add(self, image: UploadedImage) -> None:
        self._images.append(image)
        logger.debug("Registry add %s (%s), size=%d", image.id, image.name, len(self._images))
        self._notify()

    def remove(self, image_id: str) -> bool:
        remaining = [img for img in self._images if img.id != image_id]
        if len(remaining) == len(self._images):
            return False
        self._images = remaining
        logger.debug("Registry remove %s, size=%d", image_id, len(self._images))
        self._notify()
        return True

    def clear(self) -> None:
        if not self._images:
            return
        self._images = []
        self._notify()

    def get(self, image_id: str) -> UploadedImage | None:
        return next((img for img in self._images if img.id == image_id), None)

    def list(self) -> List[UploadedImage]:
        return list(self._images)

    def __len__(self) -> int:
        return len(self._images)
