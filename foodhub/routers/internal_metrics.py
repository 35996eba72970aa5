from __future__ import annotations

import hmac

from fastapi import APIRouter, Header, HTTPException, status

from foodhub.core.config import INTERNAL_METRICS_TOKEN
from foodhub.core.metrics import request_metrics

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


def _check_token(x_internal_token: str | None) -> None:
    if not INTERNAL_METRICS_TOKEN:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if not hmac.compare_digest((x_internal_token or "").strip(), INTERNAL_METRICS_TOKEN):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


@router.get("")
def metrics(x_internal_token: str | None = Header(default=None)):
    _check_token(x_internal_token)
    return {
        "endpoints": request_metrics.snapshot(),
        "restaurants": request_metrics.snapshot_per_restaurant(),
    }
