"""
Composition helpers for security API module.

Docs: docs/architecture/security/security-admin-totp-v1.md
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from fastapi import APIRouter
from prometheus_client import CollectorRegistry

from apps.api.routes import build_security_router as build_security_api_router
from fractown.contexts.security.adapters.outbound import (
    AesGcmEnvelopeEncryptionService,
    InMemoryLockoutStore,
    InMemorySecurityEventStore,
    InMemoryTotpSecretStore,
    Pbkdf2BackupCodeHasher,
    PostgresLockoutStore,
    PostgresSecurityEventStore,
    PostgresTotpSecretStore,
    PrometheusSecurityEventMetrics,
    PsycopgSecurityPostgresGateway,
    PyOtpTotpProvider,
    ScryptKeyDerivation,
    SystemSecurityClock,
)
from fractown.contexts.security.application import (
    SecurityAuditLog,
    SecurityMaintenance,
    TotpAttemptLimiter,
)
from fractown.contexts.security.application.ports import (
    LockoutStore,
    SecurityEventStore,
    TotpSecretStore,
)
from fractown.contexts.security.application.use_cases import (
    DisableTotpUseCase,
    GenerateTotpSecretUseCase,
    GetSecurityDashboardUseCase,
    VerifyBackupCodeUseCase,
    VerifyTotpCodeUseCase,
)
from fractown.contexts.security.domain import LockoutPolicy

_ENV_NAME_KEY = "FRACTOWN_ENV"
_MASTER_ENCRYPTION_KEY = "MASTER_ENCRYPTION_KEY"
_SECURITY_PG_DSN_KEY = "SECURITY_PG_DSN"
_TOTP_ISSUER_KEY = "TOTP_ISSUER"
_TOTP_BACKUP_CODE_COUNT_KEY = "TOTP_BACKUP_CODE_COUNT"
_LOCKOUT_MAX_FAILURES_KEY = "SECURITY_LOCKOUT_MAX_FAILURES"
_LOCKOUT_WINDOW_SECONDS_KEY = "SECURITY_LOCKOUT_WINDOW_SECONDS"
_LOCKOUT_DURATION_SECONDS_KEY = "SECURITY_LOCKOUT_DURATION_SECONDS"
_AUDIT_RETENTION_DAYS_KEY = "SECURITY_AUDIT_RETENTION_DAYS"
_KDF_SCRYPT_N_KEY = "SECURITY_KDF_SCRYPT_N"
_MAINTENANCE_INTERVAL_SECONDS_KEY = "SECURITY_MAINTENANCE_INTERVAL_SECONDS"
_ALLOWED_ENVS = ("dev", "prod", "test")


@dataclass(frozen=True, slots=True)
class SecurityRuntimeSettings:
    """
    SecurityRuntimeSettings — runtime policy for security core wiring.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - apps/api/wiring/modules/security.py
      - apps/api/main/app.py
      - src/fractown/contexts/security/domain/services/lockout_policy.py
    """

    env_name: str
    master_encryption_key: str
    postgres_dsn: str
    totp_issuer: str
    backup_code_count: int
    lockout_max_failures: int
    lockout_window_seconds: int
    lockout_duration_seconds: int
    audit_retention_days: int
    scrypt_n: int
    maintenance_interval_seconds: int

    def __post_init__(self) -> None:
        """
        Validate security runtime settings invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Values are normalized by resolver before dataclass construction.
        Raises:
            ValueError: If one of invariants is violated.
        Side Effects:
            None.
        """
        if self.env_name not in _ALLOWED_ENVS:
            raise ValueError(
                f"SecurityRuntimeSettings.env_name must be one of {_ALLOWED_ENVS}, "
                f"got {self.env_name!r}"
            )
        if not self.master_encryption_key:
            raise ValueError("SecurityRuntimeSettings.master_encryption_key must be non-empty")
        if not self.totp_issuer:
            raise ValueError("SecurityRuntimeSettings.totp_issuer must be non-empty")
        if ":" in self.totp_issuer:
            raise ValueError("SecurityRuntimeSettings.totp_issuer must not contain ':'")
        for field_name in (
            "backup_code_count",
            "lockout_max_failures",
            "lockout_window_seconds",
            "lockout_duration_seconds",
            "audit_retention_days",
            "maintenance_interval_seconds",
        ):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"SecurityRuntimeSettings.{field_name} must be > 0")
        if self.scrypt_n < 2 or self.scrypt_n & (self.scrypt_n - 1):
            raise ValueError("SecurityRuntimeSettings.scrypt_n must be a power of two > 1")


@dataclass(frozen=True, slots=True)
class SecurityApiModule:
    """
    SecurityApiModule — wired security router plus services shared with maintenance jobs.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - apps/api/main/app.py
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
    """

    router: APIRouter
    audit_log: SecurityAuditLog
    limiter: TotpAttemptLimiter
    maintenance: SecurityMaintenance
    event_store: SecurityEventStore
    lockout_store: LockoutStore
    settings: SecurityRuntimeSettings


def build_security_api_module(
    *,
    environ: Mapping[str, str],
    metrics_registry: CollectorRegistry | None = None,
) -> SecurityApiModule:
    """
    Build fully wired security module from environment settings.

    Docs: docs/architecture/security/security-admin-totp-v1.md
    Related: apps.api.routes.security,
      fractown.contexts.security.adapters.outbound,
      apps.api.main.app

    Args:
        environ: Runtime environment mapping.
        metrics_registry: Prometheus registry for security counters.
    Returns:
        SecurityApiModule: Router and shared services.
    Assumptions:
        Stores are Postgres-backed when `SECURITY_PG_DSN` is set, in-memory otherwise.
        Maintenance pass is built here and scheduled by the app lifespan.
    Raises:
        ValueError: If env values are invalid.
        KeyDerivationError: If `MASTER_ENCRYPTION_KEY` is too weak.
    Side Effects:
        None.
    """
    settings = _resolve_security_runtime_settings(environ=environ)
    clock = SystemSecurityClock()
    totp_store, lockout_store, event_store = _build_stores(settings=settings)

    encryption = AesGcmEnvelopeEncryptionService(
        key_derivations={
            1: ScryptKeyDerivation(
                installation_secret=settings.master_encryption_key,
                n=settings.scrypt_n,
            ),
        },
        active_key_version=1,
    )
    totp_provider = PyOtpTotpProvider()
    backup_code_hasher = Pbkdf2BackupCodeHasher()
    audit_log = SecurityAuditLog(
        store=event_store,
        clock=clock,
        metrics=PrometheusSecurityEventMetrics(registry=metrics_registry),
        retention=timedelta(days=settings.audit_retention_days),
    )
    limiter = TotpAttemptLimiter(
        store=lockout_store,
        policy=LockoutPolicy(
            max_failures=settings.lockout_max_failures,
            window=timedelta(seconds=settings.lockout_window_seconds),
            lock_duration=timedelta(seconds=settings.lockout_duration_seconds),
        ),
        clock=clock,
    )

    router = build_security_api_router(
        generate_use_case=GenerateTotpSecretUseCase(
            store=totp_store,
            encryption=encryption,
            totp_provider=totp_provider,
            backup_code_hasher=backup_code_hasher,
            audit_log=audit_log,
            clock=clock,
            issuer=settings.totp_issuer,
            backup_code_count=settings.backup_code_count,
        ),
        verify_use_case=VerifyTotpCodeUseCase(
            store=totp_store,
            encryption=encryption,
            totp_provider=totp_provider,
            limiter=limiter,
            audit_log=audit_log,
            clock=clock,
        ),
        verify_backup_use_case=VerifyBackupCodeUseCase(
            store=totp_store,
            backup_code_hasher=backup_code_hasher,
            limiter=limiter,
            audit_log=audit_log,
            clock=clock,
        ),
        disable_use_case=DisableTotpUseCase(
            store=totp_store,
            audit_log=audit_log,
            clock=clock,
        ),
        dashboard_use_case=GetSecurityDashboardUseCase(audit_log=audit_log),
    )
    return SecurityApiModule(
        router=router,
        audit_log=audit_log,
        limiter=limiter,
        maintenance=SecurityMaintenance(audit_log=audit_log, limiter=limiter),
        event_store=event_store,
        lockout_store=lockout_store,
        settings=settings,
    )


def _build_stores(
    *,
    settings: SecurityRuntimeSettings,
) -> tuple[TotpSecretStore, LockoutStore, SecurityEventStore]:
    """
    Build security store adapters based on runtime DSN availability.

    Args:
        settings: Resolved runtime settings.
    Returns:
        tuple[TotpSecretStore, LockoutStore, SecurityEventStore]: Store adapters.
    Assumptions:
        In-memory stores are acceptable for local runs and tests only.
    Raises:
        ValueError: If Postgres DSN is malformed for gateway construction.
    Side Effects:
        None.
    """
    if settings.postgres_dsn:
        gateway = PsycopgSecurityPostgresGateway(dsn=settings.postgres_dsn)
        return (
            PostgresTotpSecretStore(gateway=gateway),
            PostgresLockoutStore(gateway=gateway),
            PostgresSecurityEventStore(gateway=gateway),
        )
    return InMemoryTotpSecretStore(), InMemoryLockoutStore(), InMemorySecurityEventStore()


def _resolve_security_runtime_settings(*, environ: Mapping[str, str]) -> SecurityRuntimeSettings:
    """
    Resolve security runtime settings with defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        SecurityRuntimeSettings: Validated normalized settings.
    Assumptions:
        Missing `FRACTOWN_ENV` defaults to `dev`; master key has no default in any env.
    Raises:
        ValueError: If env values are invalid or master key is missing.
    Side Effects:
        None.
    """
    env_name = _resolve_env_name(environ=environ)
    master_encryption_key = environ.get(_MASTER_ENCRYPTION_KEY, "").strip()
    if not master_encryption_key:
        raise ValueError(f"{_MASTER_ENCRYPTION_KEY} must be set")

    return SecurityRuntimeSettings(
        env_name=env_name,
        master_encryption_key=master_encryption_key,
        postgres_dsn=environ.get(_SECURITY_PG_DSN_KEY, "").strip(),
        totp_issuer=environ.get(_TOTP_ISSUER_KEY, "fractOWN").strip(),
        backup_code_count=_resolve_positive_int(
            environ=environ,
            key=_TOTP_BACKUP_CODE_COUNT_KEY,
            default=10,
        ),
        lockout_max_failures=_resolve_positive_int(
            environ=environ,
            key=_LOCKOUT_MAX_FAILURES_KEY,
            default=5,
        ),
        lockout_window_seconds=_resolve_positive_int(
            environ=environ,
            key=_LOCKOUT_WINDOW_SECONDS_KEY,
            default=900,
        ),
        lockout_duration_seconds=_resolve_positive_int(
            environ=environ,
            key=_LOCKOUT_DURATION_SECONDS_KEY,
            default=900,
        ),
        audit_retention_days=_resolve_positive_int(
            environ=environ,
            key=_AUDIT_RETENTION_DAYS_KEY,
            default=90,
        ),
        scrypt_n=_resolve_positive_int(
            environ=environ,
            key=_KDF_SCRYPT_N_KEY,
            default=16384,
        ),
        maintenance_interval_seconds=_resolve_positive_int(
            environ=environ,
            key=_MAINTENANCE_INTERVAL_SECONDS_KEY,
            default=3600,
        ),
    )


def _resolve_env_name(*, environ: Mapping[str, str]) -> str:
    """
    Resolve normalized runtime env name for security wiring.

    Args:
        environ: Runtime environment mapping.
    Returns:
        str: One of `dev`, `prod`, or `test`.
    Assumptions:
        Missing value defaults to `dev`.
    Raises:
        ValueError: If value is outside allowed list.
    Side Effects:
        None.
    """
    raw_env_name = environ.get(_ENV_NAME_KEY, "dev").strip().lower()
    if raw_env_name not in _ALLOWED_ENVS:
        raise ValueError(
            f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env_name!r}"
        )
    return raw_env_name


def _resolve_positive_int(*, environ: Mapping[str, str], key: str, default: int) -> int:
    """
    Resolve positive integer env setting with fallback default.

    Args:
        environ: Runtime environment mapping.
        key: Environment variable key.
        default: Fallback integer.
    Returns:
        int: Positive integer value.
    Assumptions:
        Empty env value means default should be used.
    Raises:
        ValueError: If value is not parseable or non-positive.
    Side Effects:
        None.
    """
    raw_value = environ.get(key, "").strip()
    if not raw_value:
        return default
    try:
        parsed = int(raw_value)
    except ValueError as error:
        raise ValueError(f"{key} must be integer, got {raw_value!r}") from error
    if parsed <= 0:
        raise ValueError(f"{key} must be > 0, got {parsed}")
    return parsed
