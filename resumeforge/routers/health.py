from fastapi import APIRouter

from resumeforge.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    return {"message": f"Hello from '{get_settings().app_name}' Web App"}


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
