"""Health check endpoint with database and cache connectivity checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from userservice.core.cache import UserCache, get_cache
from userservice.core.config import settings
from userservice.core.database import check_db_connected, get_db
from userservice.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[UserCache, Depends(get_cache)],
) -> HealthResponse:
    """
    Return service health status plus database and cache connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    cache_status = "connected" if cache.ping() else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        cache=cache_status,
    )
