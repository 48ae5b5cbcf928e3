"""External client interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

WirePairs = Sequence[Tuple[str, str]]


@dataclass(frozen=True)
class PlanPage:
    """One page of persisted plan records, as returned by the plans API."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    current_page: int = 1
    last_page: int = 1
    per_page: int = 15
    total: int = 0


class PlanPersistenceGateway(ABC):
    """
    Abstract client for the plans API.

    The API owns persistence; the engine only produces and consumes the
    bracket-indexed form payload (see PlanWireCodec). Writes follow
    last-write-wins semantics on the API side.
    """

    @abstractmethod
    async def create(self, payload: WirePairs) -> Dict[str, Any]:
        """
        Create a plan from an encoded form payload.

        Args:
            payload: Ordered (key, value) pairs, repeated keys allowed

        Returns:
            The persisted plan record

        Raises:
            PlanValidationException: If the API rejects one or more fields
            PlanGatewayException: If the API returns an error
            PlanGatewayTimeoutException: If the request times out
        """
        ...

    @abstractmethod
    async def update(self, plan_id: str, payload: WirePairs) -> Dict[str, Any]:
        """
        Replace a persisted plan with an encoded form payload.

        Raises:
            PlanNotFoundException: If the plan does not exist
            PlanValidationException: If the API rejects one or more fields
            PlanGatewayException: If the API returns an error
        """
        ...

    @abstractmethod
    async def get_by_id(self, plan_id: str) -> Dict[str, Any]:
        """
        Fetch one persisted plan record.

        Raises:
            PlanNotFoundException: If the plan does not exist
        """
        ...

    @abstractmethod
    async def delete(self, plan_id: str) -> None:
        """Move a plan to the trash."""
        ...

    @abstractmethod
    async def list(self, params: Dict[str, Any] | None = None) -> PlanPage:
        """
        List plans page by page.

        Args:
            params: page, per_page and optional filters
                (id_curso, ativo, q, include_trashed)
        """
        ...

    @abstractmethod
    async def list_trash(self, params: Dict[str, Any] | None = None) -> PlanPage:
        """List plans currently in the trash."""
        ...

    @abstractmethod
    async def restore(self, plan_id: str) -> Dict[str, Any]:
        """Bring a trashed plan back."""
        ...

    @abstractmethod
    async def force_delete(self, plan_id: str) -> None:
        """Permanently remove a trashed plan."""
        ...
