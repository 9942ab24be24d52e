"""
Health Check Module
===================
Liveness and readiness endpoints including channel breaker states.
"""

import time
from typing import Optional, Dict, Any, Callable, Awaitable, List
from enum import Enum

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from garage_comms.circuit_breaker import BreakerRegistry, CircuitState

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    components: Dict[str, ComponentHealth]
    timestamp: float


class ReadinessResponse(BaseModel):
    status: str
    reasons: List[str] = []


HealthCheck = Callable[[], Awaitable[ComponentHealth]]


async def check_database(engine) -> ComponentHealth:
    """Check database connectivity and latency."""
    try:
        start = time.time()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        latency = (time.time() - start) * 1000
        return ComponentHealth(status="connected", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return ComponentHealth(status="error", error=str(e))


async def check_redis(redis_client) -> ComponentHealth:
    """Check Redis connectivity and latency."""
    try:
        start = time.time()
        await redis_client.ping()
        latency = (time.time() - start) * 1000
        return ComponentHealth(status="connected", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return ComponentHealth(status="error", error=str(e))


def breaker_components(breakers: BreakerRegistry) -> Dict[str, ComponentHealth]:
    """One component per channel breaker, named ``circuit:<channel>``."""
    return {
        f"circuit:{breaker.name}": ComponentHealth(
            status=breaker.state.value,
            details=breaker.metrics,
        )
        for breaker in breakers
    }


async def _run_checks(checks: Dict[str, HealthCheck]) -> Dict[str, ComponentHealth]:
    results = {}
    for name, check in checks.items():
        try:
            results[name] = await check()
        except Exception as e:
            logger.error("health_check_failed", check=name, error=str(e))
            results[name] = ComponentHealth(status="error", error=str(e))
    return results


def create_health_router(
    service_name: str,
    version: str = "0.1.0",
    breakers: Optional[BreakerRegistry] = None,
    checks: Optional[Dict[str, HealthCheck]] = None,
) -> APIRouter:
    """
    Create a health check router.

    Args:
        service_name: Name of the service (e.g., "garage-api")
        version: Service version
        breakers: Channel breaker registry to report on
        checks: Named dependency checks (database, redis, ...)

    Returns:
        FastAPI router with /health, /health/live and /ready (also /health/ready)
    """
    router = APIRouter(tags=["Health"])
    breakers = breakers if breakers is not None else BreakerRegistry()
    checks = checks or {}

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Component statuses; an open breaker degrades, a failed check is unhealthy."""
        components = await _run_checks(checks)
        overall = HealthStatus.HEALTHY
        if any(c.status == "error" for c in components.values()):
            overall = HealthStatus.UNHEALTHY

        circuits = breaker_components(breakers)
        if overall == HealthStatus.HEALTHY and any(
            c.status != CircuitState.CLOSED.value for c in circuits.values()
        ):
            overall = HealthStatus.DEGRADED
        components.update(circuits)

        return HealthResponse(
            status=overall,
            service=service_name,
            version=version,
            components=components,
            timestamp=time.time(),
        )

    @router.get("/health/live")
    async def liveness():
        """Always 200 while the process is serving."""
        return {"status": "alive"}

    @router.get("/ready", response_model=ReadinessResponse)
    @router.get("/health/ready", response_model=ReadinessResponse)
    async def readiness():
        reasons = [
            f"{name}_unavailable"
            for name, result in (await _run_checks(checks)).items()
            if result.status == "error"
        ]
        reasons.extend(
            f"{breaker.name}_circuit_open"
            for breaker in breakers
            if breaker.state == CircuitState.OPEN
        )
        if reasons:
            return JSONResponse(
                status_code=503,
                content=ReadinessResponse(status="not_ready", reasons=reasons).model_dump(),
            )
        return ReadinessResponse(status="ready")

    return router
