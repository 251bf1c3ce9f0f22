from fastapi import APIRouter, Depends

from ebay_lister.app.api.deps import get_session_controller
from ebay_lister.app.schemas.listing import CredentialsUpdate, ImageSummary, NotificationRead, SessionRead
from ebay_lister.app.services.image_normalizer import human_size
from ebay_lister.app.services.session_controller import SessionController

router = APIRouter(tags=["session"])


def image_summary(image) -> ImageSummary:
    return ImageSummary(
        id=image.id,
        name=image.name,
        mime_type=image.mime_type,
        original_size_bytes=image.original_size_bytes,
        approx_size_bytes=image.approx_size_bytes,
        size_display=human_size(image.original_size_bytes),
        width=image.width,
        height=image.height,
    )


def session_read(controller: SessionController) -> SessionRead:
    return SessionRead(
        state=controller.state.value,
        readiness=controller.readiness(),
        can_analyze=controller.can_analyze,
        model=controller.model,
        progress=controller.progress,
        images=[image_summary(img) for img in controller.registry.list()],
        notifications=[
            NotificationRead(kind=n.kind, message=n.message, created_at=n.created_at)
            for n in controller.active_notifications()
        ],
        has_listing=controller.listing is not None,
    )


@router.get("/session", response_model=SessionRead)
def get_session(controller: SessionController = Depends(get_session_controller)):
    return session_read(controller)


@router.put("/session/credentials", response_model=SessionRead)
def update_credentials(
    payload: CredentialsUpdate,
    controller: SessionController = Depends(get_session_controller),
):
    controller.set_credentials(payload.api_key, payload.model)
    return session_read(controller)
