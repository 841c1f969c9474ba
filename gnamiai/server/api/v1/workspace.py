"""
Workspace Endpoints.

Read and edit the assistant's workspace documents and list installed skills.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from gnamiai.core.errors import WorkspaceDocError
from gnamiai.core.logging_config import get_logger
from gnamiai.server.api.deps import AuthorizedGatewayDep

logger = get_logger(__name__)
router = APIRouter()


class DocUpdate(BaseModel):
    content: str = ""


@router.get("/skills", summary="List Skills")
async def list_skills(gateway: AuthorizedGatewayDep):
    try:
        skills = await gateway.skills.list()
    except OSError as e:
        logger.warning(f"Listing skills failed: {e}")
        skills = []
    return {"skills": skills}


@router.get("/workspace/docs", summary="Read Workspace Documents")
async def read_docs(gateway: AuthorizedGatewayDep):
    return {"docs": await gateway.docs.read_all()}


@router.put("/workspace/docs/{name}", summary="Write Workspace Document")
async def write_doc(name: str, body: DocUpdate, gateway: AuthorizedGatewayDep):
    try:
        await gateway.docs.write(name, body.content)
    except WorkspaceDocError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"Workspace doc {name} updated")
    return {"ok": True}
