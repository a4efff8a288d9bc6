"""
Error kinds raised by the order/invoice core.

The HTTP layer maps each kind to a status code; the core itself never
talks HTTP.
"""


class RestaurantError(Exception):
    """Base class for every error the core surfaces to its callers"""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        return self.message


class DependencyNotFound(RestaurantError):
    """A referenced record does not exist at validation time"""


class ValidationFailed(RestaurantError):
    """Malformed or schema-invalid input"""


class NotFound(RestaurantError):
    """The primary lookup target is absent"""


class StoreTimeout(RestaurantError):
    """A store operation exceeded its deadline"""


class StoreFailure(RestaurantError):
    """Any other store error"""
