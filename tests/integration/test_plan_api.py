"""
Integration tests for the installment plan API.

These tests verify:
1. Editing endpoints: draft, transition, evaluate, encode, decode, preview
2. Submission: saved (200), blocked (409), rejected (422), failed (502)
3. Loading, listing and the trash lifecycle through the plans API
4. Health, request id propagation and metrics
"""

import pytest
from httpx import AsyncClient


# =============================================================================
# Editing Endpoint Tests
# =============================================================================

class TestDraftAndTransitions:
    """Tests for POST /v1/plans/draft and /v1/plans/transition."""

    @pytest.mark.asyncio
    async def test_draft_has_default_row(self, client: AsyncClient):
        response = await client.post("/v1/plans/draft", json={"course_id": "7", "name": "Novo"})

        assert response.status_code == 200
        data = response.json()

        plan = data["plan"]
        assert plan["id"] is None
        assert plan["course_id"] == "7"
        assert plan["legacy_course_type"] == "4"
        assert plan["class_scope"] == []
        assert len(plan["options"]) == 1
        assert plan["options"][0]["index"] == 1
        assert plan["options"][0]["installment_count"] == 6
        assert plan["options"][0]["entry_type"] == "%"
        assert plan["terms"][0]["label"] == "Desconto de Pontualidade Mensalidade"

        evaluation = data["evaluation"]
        assert evaluation["option_range"] == list(range(1, 11))
        assert evaluation["next_option_index"] == 2
        assert evaluation["can_submit"] is True

    @pytest.mark.asyncio
    async def test_set_total_recomputes_rows(self, client: AsyncClient):
        draft = (await client.post("/v1/plans/draft", json={"name": "Novo"})).json()

        response = await client.post("/v1/plans/transition", json={
            "plan": draft["plan"],
            "action": "set_total",
            "payload": {"total": "R$ 1.200,00"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["plan"]["total_value"] == "1200.00"
        assert data["plan"]["options"][0]["value"] == "200.00"
        assert data["evaluation"]["effective_values"] == {"1": "200.00"}

    @pytest.mark.asyncio
    async def test_add_option(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans/transition", json={
            "plan": plan_payload,
            "action": "add_option",
        })

        assert response.status_code == 200
        options = response.json()["plan"]["options"]
        assert [o["index"] for o in options] == [1, 2, 3]
        assert options[-1]["entry_type"] == "%"

    @pytest.mark.asyncio
    async def test_unknown_action_returns_400(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans/transition", json={
            "plan": plan_payload,
            "action": "explode",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "UNKNOWN_PLAN_ACTION"

    @pytest.mark.asyncio
    async def test_installment_count_above_maximum_returns_400(
        self,
        client: AsyncClient,
        plan_payload: dict,
    ):
        response = await client.post("/v1/plans/transition", json={
            "plan": plan_payload,
            "action": "set_installment_count",
            "payload": {"index": 1, "count": 13},
        })

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INSTALLMENT_COUNT"


class TestEvaluate:
    """Tests for POST /v1/plans/evaluate."""

    @pytest.mark.asyncio
    async def test_flags_discount_above_value(
        self,
        client: AsyncClient,
        invalid_discount_payload: dict,
    ):
        response = await client.post("/v1/plans/evaluate", json=invalid_discount_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["invalid_indices"] == [1]
        assert data["can_submit"] is False
        assert data["effective_values"] == {"1": "400.00", "2": "100.00"}

    @pytest.mark.asyncio
    async def test_oversized_amounts_are_unreadable(self, client: AsyncClient, plan_payload: dict):
        plan_payload["total_value"] = "9" * 40
        plan_payload["options"] = [{"index": 1, "installment_count": 3, "discount": "9" * 30}]

        response = await client.post("/v1/plans/evaluate", json=plan_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["effective_values"] == {"1": ""}
        assert data["can_submit"] is True

    @pytest.mark.asyncio
    async def test_duplicate_indices_return_400(self, client: AsyncClient, plan_payload: dict):
        plan_payload["options"] = [{"index": 1}, {"index": 1}]

        response = await client.post("/v1/plans/evaluate", json=plan_payload)

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PLAN"


class TestEncodeDecode:
    """Tests for POST /v1/plans/encode and /v1/plans/decode."""

    @pytest.mark.asyncio
    async def test_encode(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans/encode", json=plan_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["pairs"][0] == ["id_curso", "7"]
        assert ["config[valor]", "R$ 1.200,00"] in data["pairs"]
        assert ["parcelas[1][valor]", "400.00"] in data["pairs"]
        assert ["config[parcelas][1][valor]", "R$ 400,00"] in data["pairs"]
        assert "config%5Bvalor%5D=R%24+1.200%2C00" in data["body"]

    @pytest.mark.asyncio
    async def test_decode_encoded_body(self, client: AsyncClient, plan_payload: dict):
        body = (await client.post("/v1/plans/encode", json=plan_payload)).json()["body"]

        response = await client.post("/v1/plans/decode", json={"body": body})

        assert response.status_code == 200
        plan = response.json()
        assert plan["name"] == "Padrão 2026"
        assert plan["total_value"] == "1200.00"
        assert plan["class_scope"] == ["10"]
        assert plan["options"][0]["value"] == "400.00"
        assert plan["options"][0]["discount"] == "50.00"
        assert plan["terms"][0]["label"] == "Pontualidade"

    @pytest.mark.asyncio
    async def test_decode_record(self, client: AsyncClient):
        response = await client.post("/v1/plans/decode", json={
            "record": {"id": 5, "nome": "Antiga", "config": {"valor": "R$ 300,00"}},
        })

        assert response.status_code == 200
        plan = response.json()
        assert plan["id"] == "5"
        assert plan["total_value"] == "300.00"
        assert plan["options"][0]["installment_count"] == 6

    @pytest.mark.asyncio
    async def test_decode_requires_input(self, client: AsyncClient):
        response = await client.post("/v1/plans/decode", json={})

        assert response.status_code == 400


class TestPreview:
    """Tests for POST /v1/plans/preview."""

    @pytest.mark.asyncio
    async def test_preview(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans/preview", json={"plan": plan_payload, "index": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["installment_count"] == 3
        assert data["value"] == "R$ 400,00"
        assert data["discount"] == "R$ 50,00"
        assert data["value_with_discount"] == "R$ 350,00"
        assert data["terms"][0]["text"] == "3x de R$ 350,00"

    @pytest.mark.asyncio
    async def test_preview_missing_option(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans/preview", json={"plan": plan_payload, "index": 5})

        assert response.status_code == 400
        assert response.json()["error"] == "OPTION_NOT_FOUND"


# =============================================================================
# Submission Tests
# =============================================================================

class TestSubmit:
    """Tests for POST /v1/plans and PUT /v1/plans/{plan_id}."""

    @pytest.mark.asyncio
    async def test_create_saved(self, client: AsyncClient, gateway, plan_payload: dict):
        response = await client.post("/v1/plans", json={"plan": plan_payload})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "saved"
        assert data["plan"]["id"] == "1"
        assert data["close_form"] is False

        sent = dict(gateway.payloads[0])
        assert "id" not in sent
        assert sent["valor"] == "1200.00"
        assert sent["config[valor]"] == "R$ 1.200,00"

    @pytest.mark.asyncio
    async def test_save_and_finish_closes_form(self, client: AsyncClient, plan_payload: dict):
        response = await client.post("/v1/plans", json={"plan": plan_payload, "finish": True})

        assert response.status_code == 200
        assert response.json()["close_form"] is True

    @pytest.mark.asyncio
    async def test_blocked_by_discount(
        self,
        client: AsyncClient,
        gateway,
        invalid_discount_payload: dict,
    ):
        """Nothing reaches the plans API while a discount exceeds its value."""
        response = await client.post("/v1/plans", json={
            "plan": invalid_discount_payload,
            "finish": True,
        })

        assert response.status_code == 409
        data = response.json()
        assert data["outcome"] == "blocked"
        assert data["invalid_indices"] == [1]
        assert data["close_form"] is False
        assert data["plan"]["options"][0]["discount"] == "500.00"
        assert gateway.payloads == []

    @pytest.mark.asyncio
    async def test_rejected_with_field_errors(self, client: AsyncClient, plan_payload: dict):
        await client.post("/v1/plans", json={"plan": plan_payload})

        response = await client.post("/v1/plans", json={"plan": plan_payload})

        assert response.status_code == 422
        data = response.json()
        assert data["outcome"] == "rejected"
        assert data["field_errors"] == {"nome": "Já existe uma tabela com este nome."}
        assert data["message"] == "Erro de validação - Já existe uma tabela com este nome."
        assert data["plan"]["name"] == "Padrão 2026"

    @pytest.mark.asyncio
    async def test_failed_when_gateway_down(
        self,
        client_with_failing_gateway: AsyncClient,
        plan_payload: dict,
    ):
        response = await client_with_failing_gateway.post("/v1/plans", json={"plan": plan_payload})

        assert response.status_code == 502
        data = response.json()
        assert data["outcome"] == "failed"
        assert data["message"]
        assert data["plan"]["name"] == "Padrão 2026"

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, gateway, plan_payload: dict):
        created = (await client.post("/v1/plans", json={"plan": plan_payload})).json()
        plan = created["plan"]
        plan["name"] = "Renomeada"

        response = await client.put(f"/v1/plans/{plan['id']}", json={"plan": plan})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "saved"
        assert data["plan"]["id"] == "1"
        assert data["plan"]["name"] == "Renomeada"
        assert dict(gateway.payloads[-1])["id"] == "1"


# =============================================================================
# Persistence Lifecycle Tests
# =============================================================================

class TestPlanLifecycle:
    """Tests for load, list, delete, restore and force delete."""

    @pytest.mark.asyncio
    async def test_load(self, client: AsyncClient, plan_payload: dict):
        await client.post("/v1/plans", json={"plan": plan_payload})

        response = await client.get("/v1/plans/1")

        assert response.status_code == 200
        data = response.json()
        assert data["plan"]["name"] == "Padrão 2026"
        assert [o["index"] for o in data["plan"]["options"]] == [1, 2]
        assert data["evaluation"]["can_submit"] is True

    @pytest.mark.asyncio
    async def test_load_missing_returns_404(self, client: AsyncClient):
        response = await client.get("/v1/plans/99")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "PLAN_NOT_FOUND"
        assert "request_id" in data

    @pytest.mark.asyncio
    async def test_list(self, client: AsyncClient, plan_payload: dict):
        await client.post("/v1/plans", json={"plan": plan_payload})

        response = await client.get("/v1/plans", params={"page": 1, "per_page": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["per_page"] == 10
        assert data["items"][0]["name"] == "Padrão 2026"

    @pytest.mark.asyncio
    async def test_trash_lifecycle(self, client: AsyncClient, plan_payload: dict):
        await client.post("/v1/plans", json={"plan": plan_payload})

        assert (await client.delete("/v1/plans/1")).status_code == 204
        assert (await client.get("/v1/plans")).json()["total"] == 0
        assert (await client.get("/v1/plans/trash")).json()["total"] == 1

        restored = await client.put("/v1/plans/1/restore")
        assert restored.status_code == 200
        assert restored.json()["name"] == "Padrão 2026"
        assert (await client.get("/v1/plans")).json()["total"] == 1

        assert (await client.delete("/v1/plans/1/force")).status_code == 204
        assert (await client.get("/v1/plans/1")).status_code == 404

    @pytest.mark.asyncio
    async def test_list_when_gateway_down_returns_503(
        self,
        client_with_failing_gateway: AsyncClient,
    ):
        response = await client_with_failing_gateway.get("/v1/plans")

        assert response.status_code == 503
        assert response.json()["error"] == "PLANS_API_ERROR"


# =============================================================================
# Health, Tracing and Metrics Tests
# =============================================================================

class TestServiceEndpoints:
    """Tests for /health, X-Request-ID and /metrics."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers.get("X-Request-ID")

    @pytest.mark.asyncio
    async def test_submission_metrics(
        self,
        client: AsyncClient,
        plan_payload: dict,
        invalid_discount_payload: dict,
    ):
        await client.post("/v1/plans", json={"plan": plan_payload})
        await client.post("/v1/plans", json={"plan": invalid_discount_payload})

        response = await client.get("/metrics")

        assert response.status_code == 200
        content = response.text
        assert 'installments_submissions_total{outcome="saved"}' in content
        assert 'installments_submissions_total{outcome="blocked"}' in content
        assert "installments_invalid_discount_rows_total" in content
        assert "installments_http_requests_total" in content
