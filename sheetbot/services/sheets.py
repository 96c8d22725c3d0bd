"""
Google Sheets values API 客户端（只读）
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from sheetbot.core.errors import RemoteFetchError

logger = logging.getLogger(__name__)


def _mask(secret: str) -> str:
    return f"{secret[:4]}...{secret[-4:]}" if len(secret) > 8 else "***"


class GoogleSheetsClient:
    """
    读取固定区域的二维字符串数组。

    API: GET /v4/spreadsheets/{spreadsheet_id}/values/{range}?key={api_key}
    """

    SHEETS_HOST = "https://sheets.googleapis.com"

    def __init__(
        self,
        *,
        spreadsheet_id: str,
        api_key: str,
        sheet_range: str,
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._api_key = api_key
        self._range = sheet_range
        self._client = client or httpx.AsyncClient(base_url=self.SHEETS_HOST, timeout=timeout_s)

    @property
    def path(self) -> str:
        return (
            f"/v4/spreadsheets/{quote(self._spreadsheet_id, safe='')}"
            f"/values/{quote(self._range, safe='')}"
        )

    async def fetch_rows(self) -> List[List[str]]:
        """
        返回表格的所有行（含表头）；没有数据时返回空列表。

        Raises:
            RemoteFetchError: 非 2xx、网络错误或响应体不是合法 JSON
        """
        logger.info(
            "Sheets API Request: GET %s (key=%s)", self.path, _mask(self._api_key)
        )
        try:
            resp = await self._client.get(self.path, params={"key": self._api_key})
        except httpx.HTTPError as e:
            logger.error("HTTP error while fetching sheet: %s", type(e).__name__)
            raise RemoteFetchError(
                f"Network error while fetching sheet: {type(e).__name__}",
                status_code=502,
            ) from e

        logger.info("Sheets API Response: GET %s -> status=%s", self.path, resp.status_code)
        if not resp.is_success:
            logger.error(
                "Sheets API error: status=%s, body=%s", resp.status_code, resp.text[:200]
            )
            raise RemoteFetchError(
                f"Sheets API returned {resp.status_code}", status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            # JSONDecodeError 或非 UTF-8 响应体（UnicodeDecodeError）
            logger.error("Sheets API non-JSON response: body=%s", resp.text[:200])
            raise RemoteFetchError(
                "Sheets API returned non-JSON response", status_code=resp.status_code
            ) from e

        values: Any = data.get("values") if isinstance(data, dict) else None
        if not isinstance(values, list):
            return []
        return [
            ["" if cell is None else str(cell) for cell in row]
            for row in values
            if isinstance(row, list)
        ]

    async def close(self) -> None:
        await self._client.aclose()
