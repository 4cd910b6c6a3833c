"""Liveness/readiness probe: reports environment and database reachability."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from identity.core.config import Settings, get_settings
from identity.core.database import check_db_connected, get_db
from identity.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Status is 'degraded' when the account store cannot be reached (logins would fail)."""
    connected = check_db_connected(db)
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
        issuer=settings.JWT_ISSUER,
    )
