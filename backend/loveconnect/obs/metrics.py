"""Central registry for Prometheus metrics used across the matching backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"loveconnect_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"loveconnect_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MATCHING_RANKINGS = Counter(
	"loveconnect_matching_rankings_total",
	"Candidate ranking runs",
	["result"],
)

MATCHING_CANDIDATES_SCORED = Counter(
	"loveconnect_matching_candidates_scored_total",
	"Candidates scored against a requester",
)

MATCHING_RANKING_LATENCY = Histogram(
	"loveconnect_matching_ranking_duration_seconds",
	"Time spent scoring and ranking one candidate pool",
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

MATCHING_DEGRADED = Counter(
	"loveconnect_matching_degraded_total",
	"Sub-scores that fell back to a default after a collaborator failure",
	["component", "reason"],
)

MATCHING_CACHE_UPSERTS = Counter(
	"loveconnect_matching_cache_upserts_total",
	"Compatibility score cache writes",
	["result"],
)

DISCOVERY_SWIPES = Counter(
	"loveconnect_discovery_swipes_total",
	"Swipes recorded",
	["action"],
)

DISCOVERY_MATCHES = Counter(
	"loveconnect_discovery_matches_total",
	"Mutual likes detected",
)

ACTIVITY_EVENTS = Counter(
	"loveconnect_activity_events_total",
	"User activity events recorded",
	["result"],
)

RATE_LIMITED = Counter(
	"loveconnect_rate_limited_total",
	"Requests rejected by a per-user budget",
	["kind"],
)

REDIS_UP = Gauge("loveconnect_redis_up", "Redis reachability (1 = ok)")

POSTGRES_UP = Gauge("loveconnect_postgres_up", "Postgres reachability (1 = ok)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def record_ranking(result: str, *, candidates: int = 0, elapsed_seconds: float | None = None) -> None:
	MATCHING_RANKINGS.labels(result=result).inc()
	if candidates:
		MATCHING_CANDIDATES_SCORED.inc(candidates)
	if elapsed_seconds is not None:
		MATCHING_RANKING_LATENCY.observe(elapsed_seconds)


def inc_degraded(component: str, reason: str) -> None:
	MATCHING_DEGRADED.labels(component=component, reason=reason).inc()


def inc_cache_upsert(result: str) -> None:
	MATCHING_CACHE_UPSERTS.labels(result=result).inc()


def inc_swipe(action: str) -> None:
	DISCOVERY_SWIPES.labels(action=action).inc()


def inc_match() -> None:
	DISCOVERY_MATCHES.inc()


def inc_activity(result: str) -> None:
	ACTIVITY_EVENTS.labels(result=result).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)
