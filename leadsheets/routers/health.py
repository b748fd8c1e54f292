import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from leadsheets.schemas import HealthOut

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthOut)
def health(request: Request):
    started = getattr(request.app.state, "started_at", time.monotonic())
    return HealthOut(
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        uptime=round(time.monotonic() - started, 3),
    )
