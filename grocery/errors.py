from fastapi import status


class GroceryError(Exception):
    """
    Base for errors surfaced to RPC callers.
    Every subclass carries a machine-readable kind and an HTTP status.
    """

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(GroceryError):
    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(GroceryError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(GroceryError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(GroceryError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(GroceryError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class CouponRejected(GroceryError):
    kind = "coupon_rejected"
    status_code = status.HTTP_400_BAD_REQUEST


class OutOfStock(GroceryError):
    kind = "out_of_stock"
    status_code = status.HTTP_409_CONFLICT


class OtpFailed(GroceryError):
    kind = "otp_failed"
    status_code = status.HTTP_400_BAD_REQUEST


class OtpResendLimit(GroceryError):
    kind = "otp_resend_limit"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class StoreUnavailable(GroceryError):
    kind = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
