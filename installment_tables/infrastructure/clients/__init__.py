"""External API client implementations."""

from .plan_gateway_client import HttpPlanGatewayClient

__all__ = [
    "HttpPlanGatewayClient",
]
