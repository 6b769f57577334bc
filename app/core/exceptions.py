class ShopError(Exception):
    """Base class for errors that map onto a client-visible HTTP status."""
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidArgument(ShopError):
    """
    Raised for malformed or semantically illegal input: non-positive
    quantities, an empty order, an out-of-range rating or a status change
    away from DELIVERED.

    Expected Result: 400 Bad Request
    """
    status_code = 400


class AuthenticationFailed(ShopError):
    """
    Raised when a request carries no token or an invalid/expired JWT.

    Expected Result: 401 Unauthorized
    """
    status_code = 401


class NotAuthorized(ShopError):
    """
    Raised when a user is authenticated but does not have permission
    to act on a resource (e.g. another user's order or review, or reviewing
    a product that was never delivered to them).

    Expected Result: 403 Forbidden
    """
    status_code = 403


class ResourceNotFound(ShopError):
    """
    Raised when a referenced user, product, cart item, order or review
    does not exist.

    Expected Result: 404 Not Found
    """
    status_code = 404


class ResourceConflict(ShopError):
    """
    Raised on a uniqueness violation, e.g. a second review of the same product.

    Expected Result: 409 Conflict
    """
    status_code = 409


class PersistenceError(ShopError):
    """
    Raised when the database fails unexpectedly. The original error is logged,
    never returned to the client.

    Expected Result: 500 Internal Server Error
    """
    status_code = 500
