import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ebay_lister.app.api.deps import get_session_controller
from ebay_lister.app.api.routes.session import image_summary, session_read
from ebay_lister.app.services.session_controller import IncomingFile, SessionController

router = APIRouter(tags=["images"])
logger = logging.getLogger(__name__)


@router.post("/images")
async def upload_images(
    images: List[UploadFile] = File(...),
    controller: SessionController = Depends(get_session_controller),
):
    if not images:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No images provided")
    incoming = []
    for f in images:
        data = await f.read()
        incoming.append(IncomingFile(name=f.filename or "upload", mime_type=f.content_type, data=data))
    added = await controller.upload(incoming)
    logger.info("upload request: files=%d added=%d", len(incoming), len(added))
    return {
        "added": [image_summary(img) for img in added],
        "session": session_read(controller),
    }


@router.get("/images")
def list_images(controller: SessionController = Depends(get_session_controller)):
    return [image_summary(img) for img in controller.registry.list()]


@router.get("/images/{image_id}/preview")
def preview_image(image_id: str, controller: SessionController = Depends(get_session_controller)):
    image = controller.registry.get(image_id)
    if image is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return {"id": image.id, "name": image.name, "src": image.encoded_content}


@router.delete("/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_image(image_id: str, controller: SessionController = Depends(get_session_controller)):
    controller.remove_image(image_id)


@router.delete("/images", status_code=status.HTTP_204_NO_CONTENT)
def clear_images(controller: SessionController = Depends(get_session_controller)):
    controller.clear_images()
