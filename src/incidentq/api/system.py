from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..deps import get_metrics
from ..metrics import MetricsTracker

router = APIRouter(tags=["system"])


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    """Liveness probe; does not touch the incident store."""
    return "OK"


@router.get("/metrics")
async def metrics(tracker: MetricsTracker = Depends(get_metrics)) -> dict:
    """Return uptime, request/error rates and process resource usage."""
    return tracker.get_summary()
