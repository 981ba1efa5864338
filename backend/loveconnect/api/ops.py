"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from loveconnect.infra import postgres
from loveconnect.infra.redis import redis_client
from loveconnect.obs import metrics as obs_metrics
from loveconnect.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	token = settings.obs_admin_token
	if not token:
		# Fail closed: without a configured token metrics stay private
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if _resolve_token(x_admin_token, authorization) != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok"}


@router.get("/health/ready")
async def health_ready() -> Response:
	checks: dict[str, dict[str, object]] = {}
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=0.2)
		checks["redis"] = {"ok": True}
		obs_metrics.mark_redis(True)
	except Exception as exc:
		logger.warning("redis_readiness_failed", exc_info=True)
		checks["redis"] = {"ok": False, "error": str(exc)}
		obs_metrics.mark_redis(False)
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=0.3)
		checks["postgres"] = {"ok": True}
		obs_metrics.mark_postgres(True)
	except Exception as exc:
		logger.warning("postgres_readiness_failed", exc_info=True)
		checks["postgres"] = {"ok": False, "error": str(exc)}
		obs_metrics.mark_postgres(False)
	ok = all(check["ok"] for check in checks.values())
	return JSONResponse(
		content={"status": "ok" if ok else "degraded", "checks": checks},
		status_code=200 if ok else 503,
	)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
