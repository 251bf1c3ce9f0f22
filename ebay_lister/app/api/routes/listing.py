from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse, PlainTextResponse

from ebay_lister.app.api.deps import get_session_controller
from ebay_lister.app.schemas.listing import ListingDocument
from ebay_lister.app.services.session_controller import DOWNLOAD_FILENAME, CopyTarget, SessionController

router = APIRouter(tags=["listing"])


@router.post("/analyze", response_model=ListingDocument)
async def analyze(controller: SessionController = Depends(get_session_controller)):
    return await controller.analyze()


@router.get("/listing", response_model=ListingDocument)
def get_listing(controller: SessionController = Depends(get_session_controller)):
    if controller.listing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No listing generated yet")
    return controller.listing


@router.get("/listing/copy/{target}", response_class=PlainTextResponse)
def copy_listing(target: CopyTarget, controller: SessionController = Depends(get_session_controller)):
    return controller.copy(target)


@router.get("/listing/download")
def download_listing(controller: SessionController = Depends(get_session_controller)):
    path = controller.download()
    return FileResponse(path, media_type="text/html", filename=DOWNLOAD_FILENAME)
