from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any

import httpx

from ledger_mirror.application.ports.ledger_port import LedgerPort
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import (
    ConfigurationError,
    LedgerResponseError,
    LedgerUnavailableError,
)
from ledger_mirror.infrastructure.clients.ledger_schemas import record_id


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerClientSettings:
    base_url: str
    timeout_seconds: float
    identity_file: str | None = None


def load_identity(identity_file: str | None) -> str | None:
    """Read the credential presented to the ledger; None means anonymous."""
    if not identity_file:
        return None
    path = Path(identity_file)
    try:
        credential = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read identity file {identity_file}: {exc}") from exc
    if not credential:
        raise ConfigurationError(f"Identity file {identity_file} is empty.")
    return credential


class HttpLedgerClient(LedgerPort):
    def __init__(
        self,
        settings: LedgerClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        headers = {"Accept": "application/json"}
        credential = load_identity(settings.identity_file)
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/"),
            timeout=settings.timeout_seconds,
            headers=headers,
            transport=transport,
        )
        logger.info(
            "ledger_client: configured base_url=%s identity=%s",
            settings.base_url,
            "file" if credential else "anonymous",
        )

    async def __aenter__(self) -> HttpLedgerClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_records(
        self,
        *,
        kind: EntityKind,
        after_id: int | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        params: dict[str, int] = {"limit": limit}
        if after_id is not None:
            params["after_id"] = after_id

        start = perf_counter()
        try:
            response = await self._client.get(f"/api/v1/{kind.value}", params=params)
        except httpx.TimeoutException as exc:
            raise LedgerUnavailableError(kind.value, f"ledger request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise LedgerUnavailableError(kind.value, f"ledger unreachable: {exc}") from exc

        if response.status_code >= 500:
            raise LedgerUnavailableError(kind.value, f"ledger returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise LedgerResponseError(
                kind.value,
                f"ledger rejected query HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerResponseError(kind.value, f"ledger reply is not JSON: {exc}") from exc

        records = self._unwrap(kind, payload)
        self._check_ascending(kind, records, after_id=after_id)

        elapsed_ms = (perf_counter() - start) * 1000
        logger.debug(
            "ledger_client: list_records kind=%s after_id=%s limit=%s fetched=%s elapsed_ms=%.2f",
            kind.value,
            after_id,
            limit,
            len(records),
            elapsed_ms,
        )
        return records

    async def list_all(self, *, kind: EntityKind, page_size: int) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        after_id: int | None = None
        pages = 0
        while True:
            page = await self.list_records(kind=kind, after_id=after_id, limit=page_size)
            pages += 1
            records.extend(page)
            if len(page) < page_size:
                break
            after_id = record_id(kind, page[-1])

        logger.info(
            "ledger_client: fetched_all kind=%s records=%s pages=%s",
            kind.value,
            len(records),
            pages,
        )
        return records

    @staticmethod
    def _unwrap(kind: EntityKind, payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            raise LedgerResponseError(kind.value, "ledger reply must be an object with Ok or Err")
        if "Err" in payload:
            raise LedgerResponseError(kind.value, f"ledger error: {payload['Err']}")
        records = payload.get("Ok")
        if not isinstance(records, list):
            raise LedgerResponseError(kind.value, "ledger reply is missing the Ok list")
        for record in records:
            if not isinstance(record, dict):
                raise LedgerResponseError(kind.value, f"ledger record is not an object: {record!r}")
        return records

    @staticmethod
    def _check_ascending(
        kind: EntityKind,
        records: list[dict[str, Any]],
        *,
        after_id: int | None,
    ) -> None:
        previous = after_id
        for record in records:
            current = record_id(kind, record)
            if current is None:
                raise LedgerResponseError(kind.value, f"ledger record has no id: {record!r}")
            if previous is not None and current <= previous:
                raise LedgerResponseError(
                    kind.value,
                    f"ledger records out of order: id={current} after id={previous}",
                )
            previous = current
