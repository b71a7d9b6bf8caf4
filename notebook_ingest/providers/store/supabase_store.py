"""Hosted record store backed by Supabase's PostgREST endpoint.

Talks to ``{supabase_url}/rest/v1/{table}`` with the service key.  Every
write asks for ``Prefer: return=representation`` so the stored row comes
back in the response and can be validated into a model.

The metadata claim is a conditional PATCH filtered on
``metadata_claimed=is.false``; PostgREST returns the updated rows, so a
non-empty response means this caller won.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.notebook import Notebook
from notebook_ingest.models.source import Source
from notebook_ingest.utils.errors import (
    NotebookNotFoundError,
    ProviderUnavailableError,
    RecordStoreError,
    SourceNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0


class SupabaseRecordStore(ISourceStore, INotebookStore):
    """PostgREST-backed source and notebook persistence.

    Parameters
    ----------
    supabase_url:
        Project URL, e.g. ``https://abc.supabase.co``.
    service_key:
        Service-role key sent as both ``apikey`` and bearer token.
    http_client:
        Optional shared client; one is created (and owned) when omitted.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = f"{supabase_url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- Sources -----------------------------------------------------------

    async def create_source(self, source: Source) -> Source:
        rows = await self._request("POST", "sources", json=source.model_dump(mode="json"))
        return Source.model_validate(rows[0]) if rows else source

    async def get_source(self, source_id: str) -> Source | None:
        rows = await self._request("GET", "sources", params={"id": f"eq.{source_id}", "select": "*"})
        return Source.model_validate(rows[0]) if rows else None

    async def update_source(self, source_id: str, **changes: Any) -> Source:
        current = await self.get_source(source_id)
        if current is None:
            raise SourceNotFoundError(
                message=f"Source {source_id} not found",
                provider_name=self.get_provider_name(),
            )
        body = _changed_fields(current, changes)
        rows = await self._request("PATCH", "sources", params={"id": f"eq.{source_id}"}, json=body)
        if not rows:
            raise SourceNotFoundError(
                message=f"Source {source_id} not found",
                provider_name=self.get_provider_name(),
            )
        return Source.model_validate(rows[0])

    async def list_sources(self, notebook_id: str) -> list[Source]:
        rows = await self._request(
            "GET",
            "sources",
            params={"notebook_id": f"eq.{notebook_id}", "select": "*", "order": "created_at.asc"},
        )
        return [Source.model_validate(r) for r in rows]

    async def delete_source(self, source_id: str) -> bool:
        rows = await self._request("DELETE", "sources", params={"id": f"eq.{source_id}"})
        return bool(rows)

    # -- Notebooks ---------------------------------------------------------

    async def create_notebook(self, notebook: Notebook) -> Notebook:
        rows = await self._request("POST", "notebooks", json=notebook.model_dump(mode="json"))
        return Notebook.model_validate(rows[0]) if rows else notebook

    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        rows = await self._request(
            "GET", "notebooks", params={"id": f"eq.{notebook_id}", "select": "*"}
        )
        return Notebook.model_validate(rows[0]) if rows else None

    async def update_notebook(self, notebook_id: str, **changes: Any) -> Notebook:
        current = await self.get_notebook(notebook_id)
        if current is None:
            raise NotebookNotFoundError(
                message=f"Notebook {notebook_id} not found",
                provider_name=self.get_provider_name(),
            )
        changes.pop("metadata_claimed", None)
        body = _changed_fields(current, changes)
        rows = await self._request(
            "PATCH", "notebooks", params={"id": f"eq.{notebook_id}"}, json=body
        )
        if not rows:
            raise NotebookNotFoundError(
                message=f"Notebook {notebook_id} not found",
                provider_name=self.get_provider_name(),
            )
        return Notebook.model_validate(rows[0])

    async def claim_metadata_generation(self, notebook_id: str) -> bool:
        rows = await self._request(
            "PATCH",
            "notebooks",
            params={"id": f"eq.{notebook_id}", "metadata_claimed": "is.false"},
            json={"metadata_claimed": True},
        )
        claimed = bool(rows)
        logger.debug("metadata_claim", notebook_id=notebook_id, claimed=claimed)
        return claimed

    def get_provider_name(self) -> str:
        return "supabase-db"

    # -- Private helpers ---------------------------------------------------

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                json=json,
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                message=f"Timeout on {method} {table}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise RecordStoreError(
                message=f"HTTP {exc.response.status_code} on {method} {table}: {exc.response.text}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"HTTP error on {method} {table}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.content:
            return []
        payload = response.json()
        return payload if isinstance(payload, list) else [payload]


def _changed_fields(current: Source | Notebook, changes: dict[str, Any]) -> dict[str, Any]:
    """JSON body with *changes* applied and ``updated_at`` refreshed."""
    updated = current.model_copy(
        update={**changes, "updated_at": datetime.now(tz=timezone.utc)}  # noqa: UP017
    )
    dumped = updated.model_dump(mode="json")
    return {key: dumped[key] for key in (*changes.keys(), "updated_at")}
