# ============================================================================
# EXCEPTIONS
# ============================================================================
# STATUS: Shared - used by every layer
# PURPOSE: Exception hierarchy separating contract violations from job failures
# EXPORTS: ContractViolationError, BusinessLogicError, ValidationError,
#          ResourceNotFoundError, UpstreamError, DatabaseError, PersistenceError,
#          ProcessorNotFoundError, QueueError, ConfigurationError
# DEPENDENCIES: None (standard library only)
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues that fail a single job)

Every BusinessLogicError raised inside a processor propagates to the worker
pool, which records str(exc) on the job as its error_message. The message
text is therefore user-facing and must stay specific and actionable.
"""


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Processor returns a list instead of a result dict
        - Registry built with a processor for an unknown job type
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime failures.

    A BusinessLogicError fails the job it was raised for and nothing else.
    """
    pass


class ValidationError(BusinessLogicError):
    """
    Job parameters failed validation.

    Always raised before any side effect (no fetch, no write).

    Examples:
        - Invalid or missing geometry
        - Distance must be a positive number
        - Input images must have the same dimensions
        - No raster data source provided
    """
    pass


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist.

    Examples:
        - Dataset id with no matching project dataset
        - Project not visible to the job's organization
    """
    pass


class UpstreamError(BusinessLogicError):
    """
    A dependency outside the worker failed.

    Examples:
        - Raster URL returned HTTP 404
        - Raster fetch exceeded the fetch timeout
        - Raster bytes could not be decoded
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Job store operation failures.

    Examples:
        - Connection lost
        - Constraint violation
        - Query timeout
    """
    pass


class PersistenceError(DatabaseError):
    """
    A processor could not save its primary result.

    Fatal for the job (unlike the buffer processor's feature insert,
    which is logged and skipped).
    """
    pass


class ProcessorNotFoundError(BusinessLogicError):
    """No processor is registered for the job's type tag."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(f"No processor found for job type: {job_type}")


class QueueError(BusinessLogicError):
    """
    Work queue communication failures.

    Examples:
        - Service Bus unavailable
        - Message lock lost before settlement
    """
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    Fatal at startup: the worker refuses to start rather than
    consuming jobs it cannot finish.

    Examples:
        - APP_MODE=service without a Service Bus connection
        - WORKER_CONCURRENCY outside 1..64
    """
    pass
