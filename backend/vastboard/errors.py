"""
Error taxonomy shared by the store, the pipelines and the HTTP layer.

Each error carries the HTTP status the API answers with, so routes stay thin.
"""


class VastError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message}


class InputError(VastError):
    """A parameter is missing or violates its constraint. Raised before any scan."""

    status_code = 400


class NotFoundError(VastError):
    """A referenced participant or building does not exist."""

    status_code = 404


class StoreError(VastError):
    """The event store is unreachable or a query failed. Safe to retry."""

    status_code = 503
    retryable = True
