from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from fractown.contexts.security.adapters.outbound.persistence.postgres.gateway import (
    SecurityPostgresGateway,
)
from fractown.contexts.security.application.ports.lockout_store import LockoutStore
from fractown.contexts.security.domain.entities import LockoutState
from fractown.contexts.security.domain.services import AttemptDecision
from fractown.platform.time import coerce_utc_datetime


class PostgresLockoutStore(LockoutStore):
    """
    PostgresLockoutStore — Postgres lockout counters with transactional read-modify-write.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/lockout_store.py
      - src/fractown/contexts/security/domain/services/lockout_policy.py
      - alembic/versions/20261019_0001_security_core_v1.py
    """

    def __init__(
        self,
        *,
        gateway: SecurityPostgresGateway,
        lockout_table: str = "security_lockout_states",
    ) -> None:
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresLockoutStore requires gateway")
        normalized_table = lockout_table.strip()
        if not normalized_table:
            raise ValueError("PostgresLockoutStore requires non-empty table name")

        self._gateway = gateway
        self._table = normalized_table

    def apply(
        self,
        *,
        subject_key: str,
        decide: Callable[[LockoutState | None], AttemptDecision],
    ) -> AttemptDecision:
        """
        Serialize subject under transaction-scoped advisory lock, decide and persist.

        Args:
            subject_key: Canonical `(admin, ip)` subject key.
            decide: Pure decision function receiving current state.
        Returns:
            AttemptDecision: Decision produced by `decide`.
        Assumptions:
            Advisory lock covers the case when no row exists yet, so two first
            attempts cannot both read `None`.
        Raises:
            Exception: Storage errors and errors from `decide`; transaction rolls back.
        Side Effects:
            Executes lock, SELECT FOR UPDATE and UPSERT inside one transaction.
        """
        select_query = f"""
        SELECT subject_key, failure_count, window_start, locked_until
        FROM {self._table}
        WHERE subject_key = %(subject_key)s
        FOR UPDATE
        """
        upsert_query = f"""
        INSERT INTO {self._table} (subject_key, failure_count, window_start, locked_until)
        VALUES (%(subject_key)s, %(failure_count)s, %(window_start)s, %(locked_until)s)
        ON CONFLICT (subject_key) DO UPDATE
        SET
            failure_count = EXCLUDED.failure_count,
            window_start = EXCLUDED.window_start,
            locked_until = EXCLUDED.locked_until
        """
        with self._gateway.transaction() as session:
            session.execute(
                query="SELECT pg_advisory_xact_lock(hashtextextended(%(subject_key)s, 0))",
                parameters={"subject_key": subject_key},
            )
            row = session.fetch_one(query=select_query, parameters={"subject_key": subject_key})
            current = None if row is None else _map_lockout_row(row=row)
            decision = decide(current)
            if decision.state != current:
                session.execute(
                    query=upsert_query,
                    parameters={
                        "subject_key": decision.state.subject_key,
                        "failure_count": decision.state.failure_count,
                        "window_start": decision.state.window_start,
                        "locked_until": decision.state.locked_until,
                    },
                )
        return decision

    def find(self, *, subject_key: str) -> LockoutState | None:
        query = f"""
        SELECT subject_key, failure_count, window_start, locked_until
        FROM {self._table}
        WHERE subject_key = %(subject_key)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"subject_key": subject_key})
        if row is None:
            return None
        return _map_lockout_row(row=row)

    def reset(self, *, subject_key: str) -> None:
        self._gateway.execute(
            query=f"DELETE FROM {self._table} WHERE subject_key = %(subject_key)s",
            parameters={"subject_key": subject_key},
        )

    def prune_expired(self, *, now: datetime, window: timedelta) -> int:
        """
        Delete states whose lock passed or whose window elapsed.

        Args:
            now: Current UTC timestamp.
            window: Rolling failure window of the active policy.
        Returns:
            int: Number of deleted rows.
        Assumptions:
            Expiry rules match `LockoutPolicy.is_expired`.
        Raises:
            Exception: Storage/driver exceptions.
        Side Effects:
            Executes one DELETE statement.
        """
        query = f"""
        WITH deleted AS (
            DELETE FROM {self._table}
            WHERE (locked_until IS NOT NULL AND locked_until <= %(now)s)
               OR (locked_until IS NULL AND window_start <= %(window_floor)s)
            RETURNING 1
        )
        SELECT count(*) AS deleted FROM deleted
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={"now": now, "window_floor": now - window},
        )
        return 0 if row is None else int(row["deleted"])


def _map_lockout_row(*, row: Mapping[str, Any]) -> LockoutState:
    locked_until = row["locked_until"]
    return LockoutState(
        subject_key=str(row["subject_key"]),
        failure_count=int(row["failure_count"]),
        window_start=coerce_utc_datetime(value=row["window_start"], field_name="window_start"),
        locked_until=(
            None
            if locked_until is None
            else coerce_utc_datetime(value=locked_until, field_name="locked_until")
        ),
    )
