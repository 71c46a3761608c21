"""Plan execution.

Applies an ordered list of DDL statements over a single connection,
stopping at the first failure.

By default each statement is committed on its own: after a failure,
every statement before it stays applied and the database should be
re-probed before retrying.  ``transactional=True`` runs the whole plan
in one transaction instead and rolls everything back on failure.

Usage:
    from db_reconcile.schema.executor import apply_statements

    executed = apply_statements(database_url, statements)
"""

import logging

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, OperationalError

from db_reconcile.adapters.postgres import create_engine_pooled
from db_reconcile.errors import ConnectError, ExecutionError

logger = logging.getLogger(__name__)


def _connect(engine: Engine) -> Connection:
    try:
        return engine.connect()
    except OperationalError as e:
        raise ConnectError("Failed to connect to postgres", e) from e


def _execute_statements(conn: Connection, statements: list[str]) -> int:
    executed = 0
    for index, statement in enumerate(statements):
        if not statement or not statement.strip():
            continue

        logger.info(f"Executing statement: {statement}")
        try:
            conn.exec_driver_sql(statement, execution_options={"no_parameters": True})
        except DBAPIError as e:
            logger.error(f"Statement {index + 1} failed: {e}")
            raise ExecutionError(statement, index, e, executed=executed) from e
        executed += 1
    return executed


def apply_statements(
    database_url: str,
    statements: list[str],
    transactional: bool = False,
) -> int:
    """Execute *statements* in order against the database.

    Empty statements are skipped.  Execution stops at the first failing
    statement.

    Args:
        database_url: PostgreSQL connection URL.
        statements: Ordered DDL statements, typically from ``plan_table()``.
        transactional: If True, run all statements in one transaction that
            is rolled back on failure.  If False (default), each statement
            commits on its own and earlier statements stay applied.

    Returns:
        Number of statements executed.

    Raises:
        ConnectError: If the database cannot be reached.
        ExecutionError: If a statement fails; carries the statement text
            and its position in the plan.

    Example:
        try:
            apply_statements(url, statements)
        except ExecutionError as e:
            print(f"Failed at: {e.statement}")
    """
    if not any(statement and statement.strip() for statement in statements):
        return 0

    engine = create_engine_pooled(database_url)
    try:
        if transactional:
            with _connect(engine) as conn:
                with conn.begin():
                    return _execute_statements(conn, statements)

        autocommit = engine.execution_options(isolation_level="AUTOCOMMIT")
        with _connect(autocommit) as conn:
            return _execute_statements(conn, statements)
    finally:
        engine.dispose()
