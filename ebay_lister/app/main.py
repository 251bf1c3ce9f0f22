import logging
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from ebay_lister.app.api.deps import build_session_controller
from ebay_lister.app.api.routes import api_router
from ebay_lister.app.core.errors import (
    AnalysisInProgressError,
    EmptyInputError,
    ListingError,
    MalformedResponseError,
    MissingCredentialsError,
    NothingToExportError,
    TransportError,
    UnsupportedModelError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    UnsupportedModelError: status.HTTP_400_BAD_REQUEST,
    EmptyInputError: status.HTTP_400_BAD_REQUEST,
    MissingCredentialsError: status.HTTP_400_BAD_REQUEST,
    AnalysisInProgressError: status.HTTP_409_CONFLICT,
    NothingToExportError: status.HTTP_404_NOT_FOUND,
    TransportError: status.HTTP_502_BAD_GATEWAY,
    MalformedResponseError: status.HTTP_502_BAD_GATEWAY,
}


async def validation_exception_handler(request, exc: RequestValidationError):
    request_id = str(uuid.uuid4())
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []) if part is not None)
        msg = err.get("msg", "Invalid value")
        details.append({"field": loc or None, "message": msg})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "validation_error",
            "message": "Invalid request payload.",
            "details": details,
            "request_id": request_id,
        },
    )


async def listing_error_handler(request, exc: ListingError):
    status_code = next(
        (code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    logger.info("Request failed: error_code=%s status=%s", exc.error_code, status_code)
    return JSONResponse(
        status_code=status_code,
        content={"error_code": exc.error_code, "message": exc.message},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="eBay Lister", version="0.1.0")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ListingError, listing_error_handler)
    app.include_router(api_router)
    app.state.session = build_session_controller()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
