# flipwatch/clients/sfr.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas import BatchItem, MarketRecord

log = logging.getLogger(__name__)


class SfrApiError(RuntimeError):
    """Non-2xx, network failure, or a payload that is not the expected JSON shape."""

    def __init__(self, message: str, *, status: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint


@dataclass
class MarketPage:
    """Parsed rows of one /buyers/market page plus how many rows the API actually sent."""

    records: list[MarketRecord] = field(default_factory=list)
    row_count: int = 0


class SfrClient:
    """
    Client for the SFR analytics API (/buyers/market and /properties/batch).

    Auth is a static token header. Pass `transport` to swap the network layer
    (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.sfr_api_key
        base = api_url if api_url is not None else settings.sfr_api_url
        if not self.api_key or not base:
            raise ValueError("SFR api_key and api_url are required")

        self.base = base.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base,
            headers={settings.sfr_api_token_header: self.api_key},
            timeout=timeout_s if timeout_s is not None else settings.sfr_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SfrClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    def _get_json_list(self, path: str, params: dict[str, Any]) -> list[Any]:
        try:
            r = self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise SfrApiError(f"request failed: {e}", endpoint=path) from e

        if r.status_code < 200 or r.status_code >= 300:
            body = (r.text or "")[:500]
            raise SfrApiError(f"HTTP {r.status_code}: {body}", status=r.status_code, endpoint=path)

        try:
            data = r.json()
        except ValueError as e:
            raise SfrApiError("response is not JSON", status=r.status_code, endpoint=path) from e

        if data is None:
            return []
        if not isinstance(data, list):
            raise SfrApiError(
                f"expected a JSON array, got {type(data).__name__}", status=r.status_code, endpoint=path
            )
        return data

    # ------------------------------------------------------------------
    # endpoints
    # ------------------------------------------------------------------
    def fetch_market_page(
        self,
        *,
        msa: str,
        sales_date_min: str,
        sales_date_max: str,
        page_size: int,
    ) -> MarketPage:
        """
        One page of /buyers/market sorted by sale_date ascending.
        Rows that do not parse are dropped (logged); `row_count` still counts them
        so a full page with a bad row is not mistaken for the last one.
        """
        raw = self._get_json_list(
            "/buyers/market",
            {
                "msa": msa,
                "sales_date_min": sales_date_min,
                "sales_date_max": sales_date_max,
                "page_size": str(page_size),
                "sort": "sale_date",
            },
        )

        out: list[MarketRecord] = []
        for row in raw:
            if not isinstance(row, dict):
                log.warning("Dropping non-object market row: %r", row)
                continue
            try:
                out.append(MarketRecord.model_validate(row))
            except ValidationError as e:
                log.warning("Dropping malformed market row: %s", e.errors(include_url=False))
        return MarketPage(records=out, row_count=len(raw))

    def fetch_property_batch(self, addresses: list[str]) -> list[BatchItem]:
        """
        /properties/batch?addresses=a|b|c

        Items that fail validation come back as BatchItem(error=...), the same
        shape the API uses for per-address failures.
        """
        raw = self._get_json_list("/properties/batch", {"addresses": "|".join(addresses)})

        out: list[BatchItem] = []
        for row in raw:
            if not isinstance(row, dict):
                raise SfrApiError("batch item is not an object", endpoint="/properties/batch")
            try:
                out.append(BatchItem.model_validate(row))
            except ValidationError as e:
                out.append(BatchItem(address=row.get("address"), error=f"invalid payload: {e.error_count()} errors"))
        return out
