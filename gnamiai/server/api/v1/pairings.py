"""
Pairing Endpoints.

Approval of pending senders, the HTTP counterpart of
``gnamiai pairing approve <channel> <code>``.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from gnamiai.core.logging_config import get_logger
from gnamiai.server.api.deps import AuthorizedGatewayDep

logger = get_logger(__name__)
router = APIRouter()


class PairingApprove(BaseModel):
    channel: str = Field(min_length=1)
    code: str = Field(min_length=1)


@router.get("", summary="List Pairings")
async def list_pairings(gateway: AuthorizedGatewayDep, approved: Optional[bool] = None):
    pairings = await gateway.store.list_pairings(approved=approved)
    return {"pairings": [p.model_dump(mode="json") for p in pairings]}


@router.post("/approve", summary="Approve Pairing")
async def approve_pairing(body: PairingApprove, gateway: AuthorizedGatewayDep):
    if not await gateway.store.approve_pairing(body.channel, body.code.strip()):
        raise HTTPException(status_code=404, detail="No pending pairing matches this channel and code")
    logger.info(f"Pairing approved on {body.channel}")
    return {"ok": True}
