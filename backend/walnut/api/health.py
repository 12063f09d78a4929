from fastapi import APIRouter

from walnut.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {"status": "healthy", "service": "walnut-api", "version": settings.app_version}


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {"message": "Welcome to Walnut Health API", "docs": "/docs", "health": "/health"}
