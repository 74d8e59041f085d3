from fastapi import APIRouter
from gateway.api import translate
from gateway.api import speech

router = APIRouter()

# Include translate and speech routers
router.include_router(translate.router)
router.include_router(speech.router)
