"""Async client for a Zoho Books compatible ledger API."""

import asyncio
import json as jsonlib
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from ai_bookkeeper.config import get_settings
from ai_bookkeeper.errors import LedgerNotConnectedError

logger = structlog.get_logger(__name__)

# Every ledger call lands here; ai_initiated/tool come from bound contextvars
audit_trail = structlog.get_logger("ai_bookkeeper.audit_trail")

TokenProvider = Callable[[], Awaitable[str]]

_EXCERPT_CHARS = 2000
DEFAULT_RETRY_AFTER = 60


class LedgerAPIError(Exception):
    """Base exception for ledger API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.details = details


class AuthenticationError(LedgerAPIError):
    """The ledger rejected our access token."""

    pass


class RateLimitError(LedgerAPIError):
    """Rate limit exceeded."""

    pass


def _retry_after(value: str | None) -> int:
    """Seconds from a Retry-After header; HTTP-date values fall back to the default."""
    try:
        return int(value) if value is not None else DEFAULT_RETRY_AFTER
    except ValueError:
        return DEFAULT_RETRY_AFTER


def _excerpt(payload: Any) -> str:
    if payload is None:
        return "{}"
    return jsonlib.dumps(payload, default=str)[:_EXCERPT_CHARS]


class LedgerAPIClient:
    """Async client for the ledger REST API.

    Token acquisition is handled elsewhere: pass either a ready ``access_token``
    or a ``token_provider`` coroutine returning a valid token.
    """

    def __init__(
        self,
        base_url: str | None = None,
        organization_id: str | None = None,
        access_token: str | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        page_size: int | None = None,
        page_delay: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.ledger_api_url).rstrip("/")
        self._organization_id = organization_id or settings.ledger_organization_id
        if access_token is None and settings.ledger_access_token is not None:
            access_token = settings.ledger_access_token.get_secret_value()
        self._access_token = access_token
        self._token_provider = token_provider
        self._timeout = timeout if timeout is not None else settings.ledger_timeout
        self._max_retries = (
            max_retries if max_retries is not None else settings.ledger_max_retries
        )
        self._page_size = page_size or settings.ledger_page_size
        self._page_delay = (
            page_delay if page_delay is not None else settings.ledger_page_delay
        )

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LedgerAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def organization_id(self) -> str | None:
        return self._organization_id

    @property
    def is_connected(self) -> bool:
        """True when an organization and a token source are configured."""
        return bool(
            self._organization_id and (self._access_token or self._token_provider)
        )

    async def _get_access_token(self) -> str:
        if self._token_provider is not None:
            return await self._token_provider()
        if self._access_token:
            return self._access_token
        raise LedgerNotConnectedError()

    def _record(
        self,
        method: str,
        endpoint: str,
        request_body: Any,
        response_body: Any,
        error: str = "",
    ) -> None:
        audit_trail.info(
            "ledger_call",
            action=f"{method} {endpoint}",
            method=method,
            endpoint=endpoint,
            request=_excerpt(request_body),
            response=_excerpt(response_body),
            status="error" if error else "success",
            error=error,
        )

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any]:
        """Make an authenticated API request with retry logic."""
        if not self._organization_id:
            raise LedgerNotConnectedError()
        token = await self._get_access_token()
        client = await self._get_client()

        query = {"organization_id": self._organization_id, **(params or {})}
        body = json if method in ("POST", "PUT") else None

        try:
            response = await client.request(
                method=method,
                url=endpoint,
                params=query,
                json=body,
                headers={
                    "Authorization": f"Zoho-oauthtoken {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._request(
                    method, endpoint, params, json, retry_count + 1
                )
            self._record(method, endpoint, body, None, error=str(e))
            raise LedgerAPIError(f"Request failed: {e}") from e

        if response.status_code == 401:
            self._record(method, endpoint, body, None, error="unauthorized")
            raise AuthenticationError(
                "Ledger rejected the access token", status_code=401
            )

        if response.status_code == 429:
            retry_after = _retry_after(response.headers.get("Retry-After"))
            self._record(method, endpoint, body, None, error="rate_limited")
            raise RateLimitError(
                f"Rate limited, retry after {retry_after}s",
                status_code=429,
                details={"retry_after": retry_after},
            )

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {
                "code": -1,
                "message": response.text[:500] if response.text else "empty response",
            }
        if not isinstance(data, dict):
            self._record(method, endpoint, body, data, error="invalid_format")
            raise LedgerAPIError(
                "Invalid ledger response format", status_code=response.status_code
            )

        code = data.get("code", 0 if response.status_code < 400 else -1)
        if code != 0 or response.status_code >= 400:
            message = data.get("message") or "Unknown error"
            self._record(method, endpoint, body, data, error=message)
            raise LedgerAPIError(
                f"Ledger API error: {message} (code: {code})",
                status_code=response.status_code,
                code=code,
                details=data,
            )

        self._record(method, endpoint, body, data)
        return data

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Make GET request."""
        return await self._request("GET", endpoint, params=params)

    async def post(
        self, endpoint: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Make POST request."""
        return await self._request("POST", endpoint, json=json)

    async def put(
        self, endpoint: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Make PUT request."""
        return await self._request("PUT", endpoint, json=json)

    async def _fetch_all_pages(
        self, endpoint: str, data_key: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Fetch every page of a list endpoint."""
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            response = await self.get(
                endpoint,
                params={**(params or {}), "page": page, "per_page": self._page_size},
            )
            items = response.get(data_key)
            if items is None:
                items = response.get("data", [])
            records.extend(items)

            page_context = response.get("page_context") or {}
            if not page_context.get("has_more_page"):
                break
            page += 1
            if self._page_delay:
                await asyncio.sleep(self._page_delay)

        logger.debug("pages_fetched", endpoint=endpoint, pages=page, records=len(records))
        return records

    # === List Endpoints ===

    async def list_invoices(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("invoices", "invoices", filters)

    async def list_bills(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("bills", "bills", filters)

    async def list_expenses(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("expenses", "expenses", filters)

    async def list_contacts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("contacts", "contacts", filters)

    async def list_bank_accounts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("bankaccounts", "bankaccounts", filters)

    async def list_bank_transactions(
        self, account_id: str, **filters: Any
    ) -> list[dict[str, Any]]:
        return await self._fetch_all_pages(
            "banktransactions", "banktransactions", {**filters, "account_id": account_id}
        )

    async def list_chart_of_accounts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("chartofaccounts", "chartofaccounts", filters)

    async def list_journals(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("journals", "journals", filters)

    async def list_customer_payments(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("customerpayments", "customerpayments", filters)

    async def list_vendor_payments(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("vendorpayments", "vendorpayments", filters)

    async def list_credit_notes(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("creditnotes", "creditnotes", filters)

    async def list_items(self, **filters: Any) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("items", "items", filters)

    async def list_taxes(self) -> list[dict[str, Any]]:
        return await self._fetch_all_pages("settings/taxes", "taxes")

    # === Single Record Endpoints ===

    async def get_invoice(self, invoice_id: str) -> dict[str, Any]:
        return (await self.get(f"invoices/{invoice_id}")).get("invoice", {})

    async def get_bill(self, bill_id: str) -> dict[str, Any]:
        return (await self.get(f"bills/{bill_id}")).get("bill", {})

    async def get_expense(self, expense_id: str) -> dict[str, Any]:
        return (await self.get(f"expenses/{expense_id}")).get("expense", {})

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        return (await self.get(f"contacts/{contact_id}")).get("contact", {})

    async def get_bank_account(self, account_id: str) -> dict[str, Any]:
        return (await self.get(f"bankaccounts/{account_id}")).get("bankaccount", {})

    async def get_organization(self) -> dict[str, Any]:
        return (await self.get("organization")).get("organization", {})

    # === Create Endpoints ===

    async def create_invoice(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("invoices", json=data)).get("invoice", {})

    async def create_bill(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("bills", json=data)).get("bill", {})

    async def create_expense(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("expenses", json=data)).get("expense", {})

    async def create_contact(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("contacts", json=data)).get("contact", {})

    async def create_customer_payment(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("customerpayments", json=data)).get("payment", {})

    async def create_vendor_payment(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("vendorpayments", json=data)).get("vendorpayment", {})

    async def create_journal_entry(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("journals", json=data)).get("journal", {})

    async def create_bank_transaction(self, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.post("banktransactions", json=data)).get("banktransaction", {})

    # === Update Endpoints ===

    async def update_invoice(self, invoice_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.put(f"invoices/{invoice_id}", json=data)).get("invoice", {})

    async def update_bill(self, bill_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.put(f"bills/{bill_id}", json=data)).get("bill", {})

    async def update_expense(self, expense_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.put(f"expenses/{expense_id}", json=data)).get("expense", {})

    async def update_contact(self, contact_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return (await self.put(f"contacts/{contact_id}", json=data)).get("contact", {})

    # === Action Endpoints ===

    async def send_invoice(
        self, invoice_id: str, email_spec: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.post(f"invoices/{invoice_id}/email", json=email_spec or {})

    async def mark_invoice_sent(self, invoice_id: str) -> dict[str, Any]:
        return await self.post(f"invoices/{invoice_id}/status/sent")

    # === Bank Reconciliation ===

    async def categorize_transaction(
        self,
        transaction_id: str,
        account_id: str,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Categorize an uncategorized bank transaction into an account."""
        return await self.post(
            f"banktransactions/uncategorized/{transaction_id}/categorize",
            json={**(extra or {}), "account_id": account_id},
        )

    async def match_bank_transaction(
        self, transaction_id: str, match_spec: dict[str, Any]
    ) -> dict[str, Any]:
        """Match a bank transaction to existing invoices, bills or payments."""
        return await self.post(
            f"banktransactions/uncategorized/{transaction_id}/match", json=match_spec
        )

    async def get_uncategorized_transactions(self, account_id: str) -> list[dict[str, Any]]:
        return await self._fetch_all_pages(
            "banktransactions",
            "banktransactions",
            {"account_id": account_id, "status": "uncategorized"},
        )

    async def get_matching_transactions(self, transaction_id: str) -> list[dict[str, Any]]:
        data = await self.get(f"banktransactions/uncategorized/{transaction_id}/match")
        return data.get("matching_transactions", [])
