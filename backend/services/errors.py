"""
Typed errors raised by the inventory services.

Every error carries a stable ``kind`` (machine readable, returned to API
clients) and the HTTP status the API layer answers with. Services raise
these before touching any row, so a raised error always means nothing was
written.

    InventoryError
    +-- InvalidInput   400  malformed or non-positive amounts, missing fields
    +-- Unauthorized   401  missing/invalid credential, inactive actor
    +-- Forbidden      403  authenticated but lacking the required role
    +-- NotFound       404  product, movement or actor does not exist
    +-- Conflict       409  duplicate sku/username, double undo, negative
    |                       stock, last admin protection, irreversible type
    +-- Internal       500  store or transaction failure
"""


class InventoryError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str, **data):
        super().__init__(message)
        self.message = message
        self.data = data

    def __str__(self) -> str:
        return self.message


class InvalidInput(InventoryError):
    kind = "invalid_input"
    status_code = 400


class Unauthorized(InventoryError):
    kind = "unauthorized"
    status_code = 401


class Forbidden(InventoryError):
    kind = "forbidden"
    status_code = 403


class NotFound(InventoryError):
    kind = "not_found"
    status_code = 404


class Conflict(InventoryError):
    kind = "conflict"
    status_code = 409


class Internal(InventoryError):
    kind = "internal"
    status_code = 500
