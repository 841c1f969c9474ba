"""
Sessions and Overview Endpoints.

Read-only views over the gateway store: the session list, the messages of
one session, the dashboard overview and the serving instance.
"""

from fastapi import APIRouter, HTTPException, Query

from gnamiai.core.logging_config import get_logger
from gnamiai.server.api.deps import AuthorizedGatewayDep

logger = get_logger(__name__)
router = APIRouter()

MESSAGES_LIMIT = 200


@router.get("/sessions", summary="List Sessions")
async def list_sessions(gateway: AuthorizedGatewayDep):
    """Sessions ordered by most recent activity."""
    sessions = await gateway.store.list_sessions()
    return {"sessions": [s.model_dump(mode="json") for s in sessions]}


@router.get("/messages", summary="List Session Messages")
async def list_messages(gateway: AuthorizedGatewayDep, session_id: str = Query(alias="sessionId")):
    """Up to the last 200 messages of a session, oldest first."""
    try:
        parsed = int(session_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid sessionId")
    messages = await gateway.store.get_recent_messages(parsed, MESSAGES_LIMIT)
    return {"messages": [m.model_dump(mode="json") for m in messages]}


@router.get("/overview", summary="Gateway Overview")
async def overview(gateway: AuthorizedGatewayDep):
    return await gateway.overview()


@router.get("/instances", summary="List Gateway Instances")
async def list_instances(gateway: AuthorizedGatewayDep):
    """The single process serving this gateway."""
    return {"instances": [gateway.instance_info()]}
