"""Request id plumbing shared by middleware and error handlers."""

from __future__ import annotations

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from loveconnect.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"


def get_request_id(request: Request | None = None, default: str = "unknown") -> str:
	"""Return the id bound to this request, falling back to the logging context."""
	if request is not None:
		rid = getattr(request.state, REQUEST_ID_ATTR, None)
		if rid:
			return str(rid)
	return obs_logging.current_request_id() or default


class RequestIdMiddleware(BaseHTTPMiddleware):
	"""Ensure every request/response pair carries an X-Request-Id header."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		rid = request.headers.get("X-Request-Id") or str(uuid.uuid4())
		setattr(request.state, REQUEST_ID_ATTR, rid)
		response = await call_next(request)
		if "X-Request-Id" not in response.headers:
			response.headers["X-Request-Id"] = rid
		return response
