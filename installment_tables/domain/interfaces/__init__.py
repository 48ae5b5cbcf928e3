"""
Domain Interfaces (Ports)
"""

from .clients import PlanPage, PlanPersistenceGateway, WirePairs

__all__ = [
    "PlanPage",
    "PlanPersistenceGateway",
    "WirePairs",
]
