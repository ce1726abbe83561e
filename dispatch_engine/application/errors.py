"""Application error taxonomy.

Expected business outcomes (unknown order, ineligible agent, no candidates)
are returned as structured results; only the classes below are raised.
"""


class AssignmentError(Exception):
    """Base class for errors raised by the assignment engine."""


class ValidationError(AssignmentError, ValueError):
    """Batch-level input rejected before any mutation."""


class InfrastructureError(AssignmentError):
    """A store or collaborator could not serve the request."""


class StoreTimeoutError(InfrastructureError):
    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(f"{operation} timed out after {timeout_seconds:g}s")
        self.operation = operation
        self.timeout_seconds = timeout_seconds
