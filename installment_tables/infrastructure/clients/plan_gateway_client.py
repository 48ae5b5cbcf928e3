"""HTTP implementation of PlanPersistenceGateway."""

import asyncio
from typing import Any, Dict, List, Mapping

import httpx
import structlog

from installment_tables.core.config import settings
from installment_tables.core.metrics import record_gateway_request, track_gateway_latency
from installment_tables.domain.exceptions import (
    PlanGatewayException,
    PlanGatewayTimeoutException,
    PlanNotFoundException,
    PlanValidationException,
)
from installment_tables.domain.interfaces import PlanPage, PlanPersistenceGateway, WirePairs
from installment_tables.service.installments import to_urlencoded

logger = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpPlanGatewayClient(PlanPersistenceGateway):
    """
    HTTP client for the plans API.

    Writes are sent as urlencoded form bodies. Reads, PUTs and DELETEs are
    retried with exponential backoff on timeouts, transport errors and 5xx
    answers; POST (create) is sent once so a slow API cannot end up with
    duplicates.
    """

    def __init__(
        self,
        base_url: str | None = None,
        resource: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or settings.plans_api_url).rstrip("/")
        self._resource = "/" + (resource or settings.plans_api_resource).strip("/")
        self._timeout = timeout or settings.plans_api_timeout
        self._token = token if token is not None else settings.plans_api_token
        self._max_retries = max_retries or settings.plans_api_max_retries
        self._transport = transport

    # =========================================================================
    # PlanPersistenceGateway
    # =========================================================================

    async def create(self, payload: WirePairs) -> Dict[str, Any]:
        response = await self._request("create", "POST", "", payload=payload, idempotent=False)
        return self._record(response)

    async def update(self, plan_id: str, payload: WirePairs) -> Dict[str, Any]:
        response = await self._request("update", "PUT", f"/{plan_id}", payload=payload, plan_id=plan_id)
        return self._record(response)

    async def get_by_id(self, plan_id: str) -> Dict[str, Any]:
        response = await self._request("get", "GET", f"/{plan_id}", plan_id=plan_id)
        return self._record(response)

    async def delete(self, plan_id: str) -> None:
        await self._request("delete", "DELETE", f"/{plan_id}", plan_id=plan_id)

    async def list(self, params: Dict[str, Any] | None = None) -> PlanPage:
        response = await self._request("list", "GET", "", params=self._query(params))
        return self._page(self._json(response), params)

    async def list_trash(self, params: Dict[str, Any] | None = None) -> PlanPage:
        response = await self._request("list_trash", "GET", "/trash", params=self._query(params))
        return self._page(self._json(response), params)

    async def restore(self, plan_id: str) -> Dict[str, Any]:
        response = await self._request("restore", "PUT", f"/{plan_id}/restore", plan_id=plan_id)
        return self._record(response)

    async def force_delete(self, plan_id: str) -> None:
        await self._request("force_delete", "DELETE", f"/{plan_id}/force", plan_id=plan_id)

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: Dict[str, str] | None = None,
        payload: WirePairs | None = None,
        plan_id: str | None = None,
        idempotent: bool = True,
    ) -> httpx.Response:
        """
        Send one request, retrying idempotent calls with exponential backoff.

        Uses exponential backoff: 0.1s, 0.2s, 0.4s, ...
        """
        url = f"{self._base_url}{self._resource}{path}"
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        content = None
        if payload is not None:
            content = to_urlencoded(payload)
            headers["Content-Type"] = FORM_CONTENT_TYPE

        attempts = self._max_retries if idempotent else 1
        last_exception = None

        for attempt in range(attempts):
            try:
                with track_gateway_latency(operation):
                    async with httpx.AsyncClient(
                        timeout=self._timeout, transport=self._transport
                    ) as client:
                        response = await client.request(
                            method, url, params=params, content=content, headers=headers
                        )

                self._raise_for_status(operation, response, plan_id or path)
                record_gateway_request(operation, "success")
                return response

            except httpx.TimeoutException:
                record_gateway_request(operation, "timeout")
                last_exception = PlanGatewayTimeoutException()
                logger.warning(
                    "plans_api_timeout",
                    operation=operation,
                    attempt=attempt + 1,
                    max_retries=attempts,
                )
            except httpx.HTTPError as e:
                record_gateway_request(operation, "error")
                last_exception = PlanGatewayException(message=f"Plans API unreachable: {e}")
                logger.error(
                    "plans_api_error",
                    operation=operation,
                    attempt=attempt + 1,
                    error=str(e),
                )
            except PlanGatewayException as e:
                if e.status_code is None or e.status_code < 500:
                    raise
                last_exception = e
                logger.error(
                    "plans_api_server_error",
                    operation=operation,
                    attempt=attempt + 1,
                    status_code=e.status_code,
                )

            if attempt < attempts - 1:
                await asyncio.sleep(2**attempt * 0.1)

        raise last_exception or PlanGatewayException(f"Plans API {operation} failed")

    def _raise_for_status(self, operation: str, response: httpx.Response, target: str) -> None:
        status = response.status_code

        if status == 404:
            record_gateway_request(operation, "not_found")
            raise PlanNotFoundException(target.strip("/"))

        if status == 422:
            record_gateway_request(operation, "invalid")
            body = self._safe_json(response)
            raise PlanValidationException(
                message=str(body.get("message") or "Erro de validação"),
                errors=self._field_errors(body.get("errors")),
            )

        if status >= 400:
            record_gateway_request(operation, "error")
            raise PlanGatewayException(
                message=f"Plans API error: {response.text[:200]}",
                status_code=status,
            )

    # =========================================================================
    # Response parsing
    # =========================================================================

    @staticmethod
    def _query(params: Mapping[str, Any] | None) -> Dict[str, str]:
        query: Dict[str, str] = {}
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "1" if value else "0"
            query[key] = str(value)
        return query

    @staticmethod
    def _safe_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _field_errors(raw) -> Dict[str, List[str]]:
        if not isinstance(raw, Mapping):
            return {}
        errors: Dict[str, List[str]] = {}
        for field, messages in raw.items():
            if isinstance(messages, (list, tuple)):
                errors[str(field)] = [str(m) for m in messages]
            elif messages:
                errors[str(field)] = [str(messages)]
        return errors

    @staticmethod
    def _json(response: httpx.Response):
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise PlanGatewayException(
                message="Plans API returned a malformed response",
                status_code=response.status_code,
            ) from None

    def _record(self, response: httpx.Response) -> Dict[str, Any]:
        """Single record, unwrapped from a `data` envelope when present."""
        body = self._json(response)
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        if isinstance(body, dict):
            return body
        raise PlanGatewayException(
            message="Plans API returned a malformed record",
            status_code=response.status_code,
        )

    @staticmethod
    def _int(value, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _page(self, body, params: Mapping[str, Any] | None) -> PlanPage:
        """
        Normalize the list shapes the plans API has used.

        Accepts a Laravel paginator (data/current_page/last_page/per_page/total,
        optionally under `meta`), a bare array, or items/page/limit/count.
        """
        requested = self._int((params or {}).get("per_page"), 15)

        if isinstance(body, list):
            return PlanPage(
                items=body,
                current_page=1,
                last_page=1,
                per_page=max(len(body), requested),
                total=len(body),
            )

        if isinstance(body, dict) and isinstance(body.get("data"), list):
            meta = body.get("meta") if isinstance(body.get("meta"), dict) else body
            items = body["data"]
            return PlanPage(
                items=items,
                current_page=self._int(meta.get("current_page"), 1),
                last_page=self._int(meta.get("last_page"), 1),
                per_page=self._int(meta.get("per_page"), requested),
                total=self._int(meta.get("total"), len(items)),
            )

        if isinstance(body, dict) and isinstance(body.get("items"), list):
            items = body["items"]
            per_page = self._int(body.get("limit"), requested)
            total = self._int(body.get("total", body.get("count")), len(items))
            last_page = self._int(
                body.get("total_pages"),
                max((total + per_page - 1) // per_page, 1) if per_page else 1,
            )
            return PlanPage(
                items=items,
                current_page=self._int(body.get("page"), 1),
                last_page=last_page,
                per_page=per_page,
                total=total,
            )

        raise PlanGatewayException(message="Plans API returned a malformed page")
