from fastapi import Request

from ebay_lister.app.core.config import get_settings
from ebay_lister.app.services.export.local import LocalExportSink
from ebay_lister.app.services.session_controller import SessionController


def build_session_controller() -> SessionController:
    settings = get_settings()
    return SessionController(settings, LocalExportSink(settings.export_root))


def get_session_controller(request: Request) -> SessionController:
    return request.app.state.session
