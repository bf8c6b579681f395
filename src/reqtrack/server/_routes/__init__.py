from fastapi import APIRouter

from ._acceptance_criteria import router as acceptance_criteria_router
from ._auth import router as auth_router
from ._comments import router as comments_router
from ._config import router as config_router
from ._epics import router as epics_router
from ._health import router as health_router
from ._hierarchy import router as hierarchy_router
from ._mcp import router as mcp_router
from ._pats import router as pats_router
from ._requirements import relationships_router
from ._requirements import router as requirements_router
from ._search import router as search_router
from ._user_stories import router as user_stories_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(epics_router)
api_router.include_router(user_stories_router)
api_router.include_router(acceptance_criteria_router)
api_router.include_router(requirements_router)
api_router.include_router(relationships_router)
api_router.include_router(search_router)
api_router.include_router(config_router)
api_router.include_router(pats_router)
api_router.include_router(hierarchy_router)
api_router.include_router(mcp_router)
# The entity-comment routes match any two leading segments, so they go last.
api_router.include_router(comments_router)

__all__ = ["api_router", "auth_router", "health_router"]
