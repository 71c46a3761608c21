"""Error taxonomy for table reconciliation.

Every error carries the phase it was raised in so callers can tell a
connection failure from a probe failure or a failing facet planner:

- ``ConnectError``: a connection to the database could not be established
- ``ProbeError``: a metadata query or row decode failed
- ``PlanningError``: a facet planner could not build a statement
- ``ExecutionError``: a DDL statement failed to apply

Errors are never retried here.  The underlying exception is chained via
``raise ... from`` and is also available as ``cause``.
"""


class ReconcileError(Exception):
    """Base class for all db-reconcile errors."""

    def __init__(
        self,
        phase: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        result = f"[{self.phase}] {self.message}"
        if self.cause is not None:
            result += f" (caused by: {self.cause})"
        return result


class ConnectError(ReconcileError):
    """Raised when a database connection cannot be established."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__("connect", message, cause)


class ProbeError(ReconcileError):
    """Raised when a metadata query or row decode fails."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__("probe", message, cause)


class PlanningError(ReconcileError):
    """Raised when a facet planner cannot build a statement."""

    pass


class ExecutionError(ReconcileError):
    """Raised when a DDL statement fails to apply.

    Attributes:
        statement: The statement text that failed.
        index: Zero-based position of the statement in the plan.
        executed: Statements that ran before the failure (blank ones
            are skipped and not counted).
    """

    def __init__(
        self,
        statement: str,
        index: int,
        cause: Exception | None = None,
        executed: int = 0,
    ) -> None:
        super().__init__(
            "execute",
            f"Statement {index + 1} failed: {statement}",
            cause,
        )
        self.statement = statement
        self.index = index
        self.executed = executed
