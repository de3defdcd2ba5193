from fastapi import APIRouter

from meetcmu.api.buildings import router as buildings_router
from meetcmu.api.chat import router as chat_router
from meetcmu.api.events import router as events_router
from meetcmu.api.notifications import router as notifications_router
from meetcmu.api.profiles import router as profiles_router

router = APIRouter()
router.include_router(events_router)
router.include_router(chat_router)
router.include_router(notifications_router)
router.include_router(profiles_router)
router.include_router(buildings_router)
