import logging
import time
from typing import Dict

from fastapi import APIRouter

from app.core.config import settings


logger = logging.getLogger(__name__)

router = APIRouter()


def _timestamp() -> str:
    return str(int(time.time() * 1000))


@router.get("/health")
def health() -> Dict[str, str]:
    logger.debug("Health check called")
    return {
        "status": "UP",
        "service": settings.service_name,
        "timestamp": _timestamp(),
    }


@router.get("/ready")
def ready() -> Dict[str, str]:
    return {
        "status": "READY",
        "timestamp": _timestamp(),
    }
