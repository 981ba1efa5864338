"""Observability bootstrap: JSON logging plus request metrics."""

from __future__ import annotations

from fastapi import FastAPI

from loveconnect.obs import logging as obs_logging
from loveconnect.obs import middleware
from loveconnect.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	"""Configure logging and install the request middleware once per process."""
	global _initialised
	if _initialised or not settings.obs_enabled:
		return
	logger = obs_logging.configure_logging()
	middleware.install(app)
	_initialised = True
	logger.info(
		"observability_ready",
		extra={
			"log_level": settings.obs_log_level,
			"info_sampling": settings.obs_log_sampling_rate_info,
			"metrics_public": settings.obs_metrics_public,
		},
	)


__all__ = ["init"]
