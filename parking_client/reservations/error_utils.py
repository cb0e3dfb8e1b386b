# Custom exceptions to be used throughout the project.

class TransportError(Exception):
    """
    To be raised when the parking API could not be reached at all.
    Wraps the underlying requests exception (connection refused, DNS failure, timeout).
    """
    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.message = message
        self.url = url


class ApiError(Exception):
    """
    To be raised when the parking API answers with a non-2xx status code.
    server_message is the one reported by the backend in the response body, None if it sent none.
    """
    def __init__(self, status: int, server_message: str = None, url: str = None):
        self.status = status
        self.server_message = server_message
        self.message = server_message or f"Request failed with status {status}"
        self.url = url
        super().__init__(self.message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class ReservationNotFoundError(Exception):
    """
    To be raised when a reservation for a (spot, date) pair can't be found in the locally cached reservation list.
    Usually means the cached list is stale.
    """
    def __init__(self, *args):
        super().__init__(*args)


class FormValidationError(Exception):
    """
    To be raised when login/registration form input fails client side validation.
    Carries a dict of field name to message.
    """
    def __init__(self, errors: dict):
        super().__init__("; ".join(errors.values()))
        self.errors = errors


class MalformedResponseError(TransportError):
    """
    To be raised when the parking API answered, but with a body that doesn't have the expected shape.
    """
