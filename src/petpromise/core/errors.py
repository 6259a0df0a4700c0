class PetPromiseError(Exception):
    """Base error; rendered as ``{"message": ...}`` with ``status_code``."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(PetPromiseError):
    status_code = 401
    default_message = "Unauthorized access"


class Forbidden(PetPromiseError):
    status_code = 403
    default_message = "Forbidden access"


class NotFound(PetPromiseError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(PetPromiseError):
    status_code = 409
    default_message = "Resource already exists"


class BadRequest(PetPromiseError):
    status_code = 400
    default_message = "Bad request"


class PaymentError(PetPromiseError):
    status_code = 402
    default_message = "Payment could not be processed"


class InternalError(PetPromiseError):
    status_code = 500
    default_message = "Internal server error"
