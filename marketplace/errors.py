"""Error taxonomy.

Service-level errors are ``HTTPException`` subclasses so routers can let them
propagate and FastAPI maps them to a status code. Each carries a stable
``code`` that clients can switch on, because two kinds share status 400.

Repository errors describe what the store refused. They never reach a caller:
the services translate them into ``AlreadyExistsError`` and ``ConflictError``.
"""
from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_detail = "Error"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class ForbiddenError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Forbidden"


class InvalidStateError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"
    default_detail = "Invalid state"


class AlreadyExistsError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "already_exists"
    default_detail = "Already exists"


class ConflictError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflict"


class UnauthorisedError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorised"
    default_detail = "Invalid credentials"

    def __init__(self, detail: str | None = None):
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class ServerError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "server_error"
    default_detail = "Internal server error"


class RepositoryError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class DuplicateOfferError(RepositoryError):
    def __init__(self, product_id: int, buyer_id: int):
        super().__init__("Buyer already has a pending offer on this product", "DUPLICATE_OFFER")
        self.product_id = product_id
        self.buyer_id = buyer_id


class VersionConflictError(RepositoryError):
    def __init__(self, entity: str, id: int):
        super().__init__(f"Concurrent modification detected for {entity}", "VERSION_CONFLICT")
        self.entity = entity
        self.id = id
