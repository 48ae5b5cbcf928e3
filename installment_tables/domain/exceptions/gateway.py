"""Plans API (persistence gateway) domain exceptions."""

from .base import DomainException


class PlanGatewayException(DomainException):
    """Raised when the plans API fails or answers something unusable."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            message=message,
            code="PLANS_API_ERROR",
        )
        self.status_code = status_code


class PlanGatewayTimeoutException(PlanGatewayException):
    """Raised when the plans API times out."""

    def __init__(self):
        super().__init__(
            message="Plans API request timed out",
            status_code=None,
        )
        self.code = "PLANS_API_TIMEOUT"
