"""
FastAPI application factory for fractOWN security API.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

from fastapi import FastAPI
from prometheus_client import CollectorRegistry, make_asgi_app

from apps.api.common import register_api_error_handlers
from apps.api.wiring.modules import build_security_api_module
from fractown.contexts.security.application import SecurityMaintenance

log = logging.getLogger(__name__)


def create_app(*, environ: Mapping[str, str] | None = None) -> FastAPI:
    """
    Build FastAPI app with security module and metrics endpoint wired at startup.

    Docs: docs/architecture/security/security-admin-totp-v1.md,
      docs/architecture/security/security-audit-log-v1.md,
      docs/architecture/api/api-errors-v1.md
    Related: apps.api.routes.security,
      apps.api.wiring.modules.security,
      fractown.contexts.security.adapters.outbound.metrics

    Args:
        environ: Optional environment mapping override.
    Returns:
        FastAPI: Application instance with registered routers.
    Assumptions:
        Module wiring performs fail-fast validation before first request.
    Raises:
        ValueError: If security runtime settings are invalid.
        KeyDerivationError: If `MASTER_ENCRYPTION_KEY` is missing or too weak.
    Side Effects:
        Creates app-scoped Prometheus registry exposed on `/metrics`;
        runs security maintenance at startup and then periodically until shutdown.
    """
    effective_environ = os.environ if environ is None else environ
    metrics_registry = CollectorRegistry()
    security_module = build_security_api_module(
        environ=effective_environ,
        metrics_registry=metrics_registry,
    )
    maintenance = security_module.maintenance
    maintenance_interval_seconds = security_module.settings.maintenance_interval_seconds

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        stop_event = asyncio.Event()
        await _run_maintenance_once(maintenance)
        task = asyncio.create_task(
            _run_periodic_maintenance(
                maintenance=maintenance,
                interval_seconds=maintenance_interval_seconds,
                stop_event=stop_event,
            ),
            name="security-maintenance",
        )
        try:
            yield
        finally:
            stop_event.set()
            await task

    app = FastAPI(
        title="fractOWN Security API",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_api_error_handlers(app=app)
    app.state.security_module = security_module
    app.state.security_audit_log = security_module.audit_log
    app.state.security_attempt_limiter = security_module.limiter
    app.state.security_maintenance = maintenance
    app.include_router(security_module.router)
    app.mount("/metrics", make_asgi_app(registry=metrics_registry))
    return app


async def _run_periodic_maintenance(
    *,
    maintenance: SecurityMaintenance,
    interval_seconds: int,
    stop_event: asyncio.Event,
) -> None:
    """
    Run security maintenance every `interval_seconds` until shutdown.

    Args:
        maintenance: Retention pass over audit events and lockout states.
        interval_seconds: Pause between passes.
        stop_event: Cooperative shutdown event.
    Returns:
        None.
    Assumptions:
        Maintenance pass is idempotent and safe for repeated execution.
    Raises:
        None.
    Side Effects:
        Deletes expired security records.
    """
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except TimeoutError:
            await _run_maintenance_once(maintenance)


async def _run_maintenance_once(maintenance: SecurityMaintenance) -> None:
    """
    Execute one maintenance pass off the event loop; failures are logged only.
    """
    try:
        report = await asyncio.to_thread(maintenance.run_once)
    except Exception:  # noqa: BLE001
        log.exception("security maintenance pass failed")
        return
    if report.failed_steps:
        log.warning("security maintenance steps failed: %s", ", ".join(report.failed_steps))
