"""
Domain errors raised by the lifecycle controller.

The router maps AdmissionRejected to 429, Conflict and ValidationError to
400, and BackendFailure to 500.
"""


class OrchestratorError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AdmissionRejected(OrchestratorError):
    """Rate limit or capacity exceeded; retry later."""


class Conflict(OrchestratorError):
    """Store already exists or is being created right now."""


class ValidationError(OrchestratorError):
    pass


class BackendFailure(OrchestratorError):
    """Cluster tooling failed. The message is the raw diagnostic."""
