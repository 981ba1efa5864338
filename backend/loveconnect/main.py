"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loveconnect.api import matching, ops
from loveconnect.api.errors import install_error_handlers
from loveconnect.api.request_id import RequestIdMiddleware
from loveconnect.infra import postgres
from loveconnect.infra.redis import redis_client
from loveconnect.obs import init as obs_init
from loveconnect.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()
		await redis_client.close()


app = FastAPI(title="LoveConnect Matching", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:5173"] if settings.is_dev() else ["https://app.loveconnect.example"]

# Starlette disallows wildcard '*' with allow_credentials=True
if "*" in allow_origins:
	allow_origins = ["http://localhost:5173", "http://127.0.0.1:5173"] if settings.is_dev() else ["https://app.loveconnect.example"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

# Added last so it runs first and the request id is bound before logging
app.add_middleware(RequestIdMiddleware)

app.include_router(matching.router)
app.include_router(ops.router)
