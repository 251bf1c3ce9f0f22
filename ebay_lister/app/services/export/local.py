from pathlib import Path
from typing import Optional

from ebay_lister.app.services.export.base import ExportSink


class LocalExportSink(ExportSink):
    """Keeps the last copied text in memory and writes downloads under ``export_root``."""

    def __init__(self, export_root: Path):
        self.export_root = export_root
        self.clipboard: Optional[str] = None

    def copy_text(self, text: str) -> None:
        self.clipboard = text

    def save_html(self, html: str, filename: str) -> Path:
        self.export_root.mkdir(parents=True, exist_ok=True)
        destination = self.export_root / Path(filename).name
        destination.write_text(html, encoding="utf-8")
        return destination
