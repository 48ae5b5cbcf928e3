"""
Fixtures for integration tests.

Provides:
- In-memory plans API gateway (stores parsed form payloads)
- Test clients for the FastAPI app (healthy and failing gateway)
- Request payload fixtures
"""

from typing import Any, AsyncGenerator, Dict, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from installment_tables.core.dependencies import get_plan_gateway
from installment_tables.domain.exceptions import (
    PlanGatewayException,
    PlanNotFoundException,
    PlanValidationException,
)
from installment_tables.domain.interfaces import PlanPage, PlanPersistenceGateway, WirePairs
from installment_tables.main import app
from installment_tables.service.installments import parse_wire


# =============================================================================
# Mock Gateway
# =============================================================================

class InMemoryPlanGateway(PlanPersistenceGateway):
    """
    Plans API stand-in that keeps records in memory.

    Records are stored the way the API would receive them (the parsed form
    payload). Names must be present and unique, like the real API checks.
    """

    def __init__(self, fail_mode: bool = False):
        self.fail_mode = fail_mode
        self.records: Dict[str, Dict[str, Any]] = {}
        self.trashed: set = set()
        self.payloads: List[List[tuple]] = []
        self._next_id = 1

    def _check_available(self) -> None:
        if self.fail_mode:
            raise PlanGatewayException(message="Plans API unavailable", status_code=500)

    def _validate(self, record: Dict[str, Any], plan_id: str | None = None) -> None:
        name = str(record.get("nome", "")).strip()
        if not name:
            raise PlanValidationException(errors={"nome": ["O campo nome é obrigatório."]})
        for other_id, other in self.records.items():
            if other_id != plan_id and other_id not in self.trashed and other.get("nome") == name:
                raise PlanValidationException(
                    errors={"nome": ["Já existe uma tabela com este nome.", "Escolha outro nome."]}
                )

    def _get(self, plan_id: str) -> Dict[str, Any]:
        if plan_id not in self.records:
            raise PlanNotFoundException(plan_id)
        return self.records[plan_id]

    def _page(self, ids: List[str], params: Dict[str, Any] | None) -> PlanPage:
        params = params or {}
        per_page = int(params.get("per_page", 15))
        page = int(params.get("page", 1))
        start = (page - 1) * per_page
        items = [dict(self.records[i]) for i in ids[start:start + per_page]]
        return PlanPage(
            items=items,
            current_page=page,
            last_page=max((len(ids) + per_page - 1) // per_page, 1),
            per_page=per_page,
            total=len(ids),
        )

    async def create(self, payload: WirePairs) -> Dict[str, Any]:
        self._check_available()
        self.payloads.append(list(payload))
        record = parse_wire(payload)
        self._validate(record)

        plan_id = str(self._next_id)
        self._next_id += 1
        record["id"] = plan_id
        record["updated_at"] = "2026-01-01 00:00:00"
        self.records[plan_id] = record
        return dict(record)

    async def update(self, plan_id: str, payload: WirePairs) -> Dict[str, Any]:
        self._check_available()
        self._get(plan_id)
        self.payloads.append(list(payload))
        record = parse_wire(payload)
        self._validate(record, plan_id)

        record["id"] = plan_id
        record["updated_at"] = "2026-01-02 00:00:00"
        self.records[plan_id] = record
        return dict(record)

    async def get_by_id(self, plan_id: str) -> Dict[str, Any]:
        self._check_available()
        return dict(self._get(plan_id))

    async def delete(self, plan_id: str) -> None:
        self._check_available()
        self._get(plan_id)
        self.trashed.add(plan_id)

    async def list(self, params: Dict[str, Any] | None = None) -> PlanPage:
        self._check_available()
        ids = [i for i in self.records if i not in self.trashed]
        return self._page(ids, params)

    async def list_trash(self, params: Dict[str, Any] | None = None) -> PlanPage:
        self._check_available()
        return self._page([i for i in self.records if i in self.trashed], params)

    async def restore(self, plan_id: str) -> Dict[str, Any]:
        self._check_available()
        record = self._get(plan_id)
        self.trashed.discard(plan_id)
        return dict(record)

    async def force_delete(self, plan_id: str) -> None:
        self._check_available()
        self._get(plan_id)
        self.trashed.discard(plan_id)
        del self.records[plan_id]


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
def gateway() -> InMemoryPlanGateway:
    return InMemoryPlanGateway()


@pytest.fixture
def failing_gateway() -> InMemoryPlanGateway:
    return InMemoryPlanGateway(fail_mode=True)


@pytest_asyncio.fixture
async def client(gateway: InMemoryPlanGateway) -> AsyncGenerator[AsyncClient, None]:
    """Test client backed by the in-memory plans API."""
    app.dependency_overrides[get_plan_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client_with_failing_gateway(
    failing_gateway: InMemoryPlanGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose plans API always fails."""
    app.dependency_overrides[get_plan_gateway] = lambda: failing_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Request Fixtures
# =============================================================================

@pytest.fixture
def plan_payload() -> dict:
    """A valid plan: total 1200,00, two rows, one scoped class and a term."""
    return {
        "course_id": "7",
        "name": "Padrão 2026",
        "total_value": "1200.00",
        "active": "s",
        "note": "",
        "legacy_course_type": "4",
        "class_scope": ["10"],
        "options": [
            {"index": 1, "installment_count": 3, "entry_type": "%", "value": "400.00", "discount": "50.00"},
            {"index": 2, "installment_count": 12, "entry_type": "%", "value": "100.00"},
        ],
        "terms": [{"label": "Pontualidade", "text": "{total_parcelas}x de {parcela_com_desconto}"}],
    }


@pytest.fixture
def invalid_discount_payload(plan_payload: dict) -> dict:
    """Row 1 discount (500,00) above its value (400,00)."""
    payload = dict(plan_payload)
    payload["options"] = [
        {"index": 1, "installment_count": 3, "entry_type": "%", "discount": "500.00"},
        {"index": 2, "installment_count": 12, "entry_type": "%", "value": "100.00"},
    ]
    return payload
