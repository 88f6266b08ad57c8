"""
Public client configuration.

Browser clients fetch the backend URL and anon key at runtime instead of
baking them into the bundle. Both values are public by design of the
backend; the service role key never leaves the server.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from ..dependencies import BackendConfigDep

router = APIRouter()


class PublicConfigResponse(BaseModel):
    supabase_url: str
    supabase_anon_key: str


@router.get(
    "",
    response_model=PublicConfigResponse,
    summary="Public client configuration",
)
async def get_public_config(config: BackendConfigDep) -> PublicConfigResponse:
    return PublicConfigResponse(supabase_url=config.url, supabase_anon_key=config.anon_key)
