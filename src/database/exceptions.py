"""
Exception hierarchy for record store operations.

Both the DynamoDB store and the REST façade client translate their transport
errors (botocore / requests) into these types so callers only ever handle
one family of failures.
"""


class RecordStoreError(Exception):
    """
    Base exception for all record store failures.

    The approval workflow treats any subclass as "mutation rejected".
    """

    pass


class NotFoundError(RecordStoreError):
    """
    Raised when a record does not exist.

    Note: get_one() returns None for missing records; this is raised by
    mutations against a missing id and by REST 404 responses.
    """

    pass


class ConflictError(RecordStoreError):
    """Raised when a create collides with an existing id (or REST 409)."""

    pass


class ThrottlingError(RecordStoreError):
    """
    Raised when the store keeps throttling after retry exhaustion.
    """

    pass


class NetworkError(RecordStoreError):
    """
    Raised on connection-level failures (timeouts, DNS, refused connections).
    """

    pass


class AccessDeniedError(RecordStoreError):
    """
    Raised when IAM permissions or the API credential are insufficient.
    """

    pass
