"""
Domain error taxonomy

Services raise these; the HTTP layer maps them to status codes in main.py.
"""


class AgendaError(Exception):
    """Base class for errors raised by the booking and payment core"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(AgendaError):
    """Malformed input, rejected before touching the store"""


class ConflictError(AgendaError):
    """Requested interval overlaps an existing commitment"""


class NotFoundError(AgendaError):
    """Resource, sale or appointment does not exist"""


class AuthenticationUnverified(AgendaError):
    """Webhook signature missing or invalid"""


class UpstreamUnavailable(AgendaError):
    """Gateway or store transient failure after bounded retries"""


class AlreadyProcessed(AgendaError):
    """Idempotent no-op: the change was applied by an earlier delivery"""
