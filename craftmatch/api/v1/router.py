from fastapi import APIRouter

from craftmatch.api.v1.artisans import router as artisans_router
from craftmatch.api.v1.auth import router as auth_router
from craftmatch.api.v1.dictionaries import router as dictionaries_router
from craftmatch.api.v1.images import router as images_router
from craftmatch.api.v1.projects import router as projects_router
from craftmatch.api.v1.proposals import router as proposals_router
from craftmatch.api.v1.reviews import router as reviews_router
from craftmatch.api.v1.users import router as users_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(users_router)
v1_router.include_router(dictionaries_router)
v1_router.include_router(images_router)
v1_router.include_router(projects_router)
v1_router.include_router(proposals_router)
v1_router.include_router(reviews_router)
v1_router.include_router(artisans_router)
