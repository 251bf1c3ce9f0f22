from fastapi import APIRouter

from ebay_lister.app.api.routes import images, listing, session

api_router = APIRouter()
api_router.include_router(session.router)
api_router.include_router(images.router)
api_router.include_router(listing.router)
