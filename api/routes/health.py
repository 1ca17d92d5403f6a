"""
Health check endpoint.
"""

import time

from fastapi import APIRouter

from config.settings import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Basic health check with provider configuration status"""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": time.time(),
        "providers": {
            "text": [
                {"name": name, "configured": bool(settings.get_api_key(name)) or name == "mock"}
                for name in settings.get_text_provider_order()
            ],
            "image": [
                {"name": name, "configured": bool(settings.get_api_key(name)) or name == "mock"}
                for name in settings.get_image_provider_order()
            ],
        },
    }
