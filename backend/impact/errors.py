# backend/impact/errors.py
"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``impact.main`` turns them into ``{"detail": ...}``
responses with the class status code.
"""


class ImpactError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ImpactError):
    status_code = 400


class NotFoundError(ImpactError):
    status_code = 404


class ConflictError(ImpactError):
    status_code = 409


class NotPublishedError(ConflictError):
    pass


class CapacityError(ImpactError):
    status_code = 409


class ExternalServiceError(ImpactError):
    """A ledger call failed, timed out or was rejected by the network."""

    status_code = 502


class PersistenceError(ImpactError):
    status_code = 500
