from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Protocol, Sequence, cast

import psycopg
from psycopg.rows import dict_row


class SecurityPostgresSession(Protocol):
    """
    SecurityPostgresSession — SQL operations bound to one open connection/transaction.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/gateway.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/lockout_store.py
    """

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Execute SQL query and return one row as mapping.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            Mapping[str, Any] | None: One row or `None`.
        Assumptions:
            Query may include `RETURNING` clause.
        Raises:
            Exception: Storage/driver exceptions from implementation.
        Side Effects:
            Executes one SQL statement.
        """
        ...

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> Sequence[Mapping[str, Any]]:
        """
        Execute SQL query and return all rows as mappings.
        """
        ...

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        """
        Execute SQL query without row return value.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            None.
        Assumptions:
            Query is side-effecting write statement.
        Raises:
            Exception: Storage/driver exceptions from implementation.
        Side Effects:
            Executes one SQL statement.
        """
        ...


class SecurityPostgresGateway(SecurityPostgresSession, Protocol):
    """
    SecurityPostgresGateway — минимальный SQL gateway для security Postgres adapters.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        totp_secret_store.py
      - alembic/versions/20261019_0001_security_core_v1.py
      - apps/api/wiring/modules/security.py

    Plain `fetch_*`/`execute` calls run in their own short transaction;
    `transaction()` groups several statements on one connection.
    """

    def transaction(self) -> Any:
        """
        Return context manager yielding `SecurityPostgresSession` inside one transaction.

        Args:
            None.
        Returns:
            Any: Context manager committing on success and rolling back on error.
        Assumptions:
            Session must not be used after the context exits.
        Raises:
            Exception: Storage/driver exceptions from implementation.
        Side Effects:
            Opens one database connection.
        """
        ...


class _PsycopgSecurityPostgresSession(SecurityPostgresSession):
    """
    Session over one already opened psycopg connection.
    """

    def __init__(self, *, connection: psycopg.Connection[Any]) -> None:
        self._connection = connection

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        with self._connection.cursor() as cursor:
            cursor.execute(cast(Any, query), parameters)
            row = cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> Sequence[Mapping[str, Any]]:
        with self._connection.cursor() as cursor:
            cursor.execute(cast(Any, query), parameters)
            rows = cursor.fetchall()
        return tuple(dict(row) for row in rows)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        with self._connection.cursor() as cursor:
            cursor.execute(cast(Any, query), parameters)


class PsycopgSecurityPostgresGateway(SecurityPostgresGateway):
    """
    PsycopgSecurityPostgresGateway — psycopg3 implementation of security SQL gateway.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/gateway.py
      - alembic/versions/20261019_0001_security_core_v1.py
    """

    def __init__(self, *, dsn: str) -> None:
        """
        Initialize gateway with DSN connection string.

        Args:
            dsn: PostgreSQL DSN.
        Returns:
            None.
        Assumptions:
            DSN points to database with security schema migrated.
        Raises:
            ValueError: If DSN is blank.
        Side Effects:
            None.
        """
        normalized_dsn = dsn.strip()
        if not normalized_dsn:
            raise ValueError("PsycopgSecurityPostgresGateway requires non-empty dsn")
        self._dsn = normalized_dsn

    @contextmanager
    def transaction(self) -> Iterator[SecurityPostgresSession]:
        """
        Open connection and yield session bound to one transaction.

        Args:
            None.
        Returns:
            Iterator[SecurityPostgresSession]: Session usable inside `with` block.
        Assumptions:
            psycopg connection context commits on clean exit and rolls back on error.
        Raises:
            psycopg.Error: When database operation fails.
        Side Effects:
            Opens one database connection.
        """
        with psycopg.connect(
            self._dsn,
            row_factory=cast(Any, dict_row),
        ) as connection:
            with connection.transaction():
                yield _PsycopgSecurityPostgresSession(connection=connection)

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Execute query and return first row mapped by column names.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            Mapping[str, Any] | None: Query row or `None`.
        Assumptions:
            Statement runs in its own transaction.
        Raises:
            psycopg.Error: When database operation fails.
        Side Effects:
            Opens one database connection and executes one query.
        """
        with self.transaction() as session:
            return session.fetch_one(query=query, parameters=parameters)

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> Sequence[Mapping[str, Any]]:
        with self.transaction() as session:
            return session.fetch_all(query=query, parameters=parameters)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        with self.transaction() as session:
            session.execute(query=query, parameters=parameters)
