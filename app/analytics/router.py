from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.schemas import PingIn, PingOut
from app.analytics.service import client_ip, ingest_ping, require_session_id
from app.core.deps import optional_subject
from app.core.errors import InvalidInput
from app.core.json import UTF8JSONResponse
from app.db.session import get_session

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"],
    default_response_class=UTF8JSONResponse,
)


async def read_ping_body(request: Request) -> PingIn:
    """Cuerpo opcional: vacío -> heartbeat sin datos."""
    raw = await request.body()
    if not raw.strip():
        return PingIn()
    try:
        return PingIn.model_validate_json(raw)
    except ValidationError:
        raise InvalidInput("invalid_body")


@router.post(
    "/ping",
    response_model=PingOut,
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {"application/json": {"schema": PingIn.model_json_schema()}},
        }
    },
)
async def ping(
    request: Request,
    x_session_id: str | None = Header(None),
    authorization: str | None = Header(None),
    user_agent: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
):
    """
    Ping anónimo (pageview / heartbeat / tiempo visto).
    x-session-id obligatorio (≤120) y se revisa ANTES que el cuerpo;
    bearer opcional para ligar usuario.
    """
    session_id = require_session_id(x_session_id)
    body = await read_ping_body(request)
    server_time = await ingest_ping(
        db,
        session_id=session_id,
        body=body,
        user_id=optional_subject(authorization),
        user_agent=user_agent or "",
        ip=client_ip(request),
    )
    await db.commit()
    return PingOut(ok=True, server_time=server_time)
