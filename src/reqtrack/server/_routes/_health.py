from fastapi import APIRouter

from reqtrack.server._schemas import HealthResponse
from reqtrack.utils import package_version

router = APIRouter(prefix="", tags=["health"])


@router.get("/health")
def get_health() -> HealthResponse:
    return HealthResponse(status="healthy", version=package_version())
