from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from user_service.api.common import get_metrics
from user_service.observability.metrics import Metrics


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics(collector: Metrics = Depends(get_metrics)) -> Response:
    body, content_type = collector.render()
    return Response(content=body, media_type=content_type)
