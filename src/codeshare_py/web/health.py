"""Health check endpoints for codeshare-py.

Provides /health and /ready endpoints for container orchestration
and load balancer health checks.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from litestar import Controller, get

from codeshare_py.realtime.registry import SessionRegistry

if TYPE_CHECKING:
    from litestar import Request


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of an individual component."""

    name: str
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthResponse:
    """Health check response."""

    status: HealthStatus
    version: str = "0.1.0"
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    components: list[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    **({"details": c.details} if c.details else {}),
                }
                for c in self.components
            ],
        }


class HealthController(Controller):
    """Health check controller.

    Provides endpoints for liveness and readiness probes used by
    container orchestration systems like Kubernetes.
    """

    path = ""
    include_in_schema: ClassVar[bool] = True
    tags: ClassVar[list[str]] = ["Health"]

    @get("/health")
    async def health(self, request: Request, registry: SessionRegistry) -> dict[str, Any]:
        """Liveness probe endpoint.

        Reports the realtime layer's room and session counts and, when a
        database is configured, its connectivity.

        Returns:
            Health status with component details.
        """
        components = [
            ComponentHealth(
                name="realtime",
                status=HealthStatus.HEALTHY,
                message="Session registry available",
                details={
                    "active_rooms": registry.active_rooms,
                    "total_sessions": registry.total_sessions,
                },
            )
        ]

        db_health = await self._check_database(request)
        if db_health:
            components.append(db_health)

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall_status = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthResponse(status=overall_status, components=components).to_dict()

    @get("/ready")
    async def ready(self, request: Request) -> dict[str, Any]:
        """Readiness probe endpoint.

        Returns:
            Readiness status with individual check results.
        """
        checks: dict[str, bool] = {"application": True}

        db_health = await self._check_database(request)
        if db_health is not None:
            checks["database"] = db_health.status is HealthStatus.HEALTHY

        return {
            "ready": all(checks.values()),
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        }

    async def _check_database(self, request: Request) -> ComponentHealth | None:
        """Check database health, or None when running on in-memory stores."""
        db_manager = getattr(request.app.state, "db_manager", None)
        if db_manager is None:
            return None

        try:
            start = time.perf_counter()
            async with db_manager.session() as session:
                from sqlalchemy import text

                await session.execute(text("SELECT 1"))
            latency = (time.perf_counter() - start) * 1000
        except Exception as e:  # noqa: BLE001
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e!s}",
            )

        return ComponentHealth(
            name="database",
            status=HealthStatus.HEALTHY,
            message="Database connection successful",
            latency_ms=round(latency, 2),
        )
