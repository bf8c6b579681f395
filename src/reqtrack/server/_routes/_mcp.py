from typing import Any, cast

from fastapi import APIRouter, Request, Response, status
from starlette.concurrency import run_in_threadpool

from reqtrack.mcp import McpHandler
from reqtrack.server._deps import AnyPrincipal

router = APIRouter(prefix="/mcp", tags=["mcp"])


@router.post("", response_model=None)
async def process_rpc(
    request: Request, principal: AnyPrincipal
) -> dict[str, Any] | list[dict[str, Any]] | Response:
    handler = cast("McpHandler", request.app.state.mcp)
    payload = await request.body()
    response = await run_in_threadpool(handler.handle, payload, principal)
    if response is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return response
