from abc import ABC, abstractmethod
from pathlib import Path


class ExportSink(ABC):
    @abstractmethod
    def copy_text(self, text: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def save_html(self, html: str, filename: str) -> Path:  # pragma: no cover - interface
        raise NotImplementedError
