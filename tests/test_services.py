from __future__ import annotations

import json
import unittest
from unittest.mock import AsyncMock

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

from sheetbot.core.errors import DurableStoreError, RemoteFetchError
from sheetbot.services.kv import InMemoryKVStore, RedisKVStore, build_kv_store
from sheetbot.services.sheets import GoogleSheetsClient
from sheetbot.services.telegram import TelegramClient


def sheets_client(handler) -> GoogleSheetsClient:
    http = httpx.AsyncClient(
        base_url=GoogleSheetsClient.SHEETS_HOST, transport=httpx.MockTransport(handler)
    )
    return GoogleSheetsClient(
        spreadsheet_id="sheet-id", api_key="api-key-123456", sheet_range="Sheet1!A:C", client=http
    )


def telegram_client(handler) -> TelegramClient:
    http = httpx.AsyncClient(
        base_url=TelegramClient.TELEGRAM_HOST, transport=httpx.MockTransport(handler)
    )
    return TelegramClient(bot_token="123:abc", client=http)


class TestGoogleSheetsClient(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_rows(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(
                200, json={"range": "Sheet1!A1:C3", "values": [["a", "b"], ["1", 2, None]]}
            )

        rows = await sheets_client(handler).fetch_rows()

        self.assertEqual(rows, [["a", "b"], ["1", "2", ""]])
        self.assertEqual(seen["url"].params["key"], "api-key-123456")
        self.assertIn("/v4/spreadsheets/sheet-id/values/", seen["url"].path)

    async def test_missing_values_is_empty(self) -> None:
        client = sheets_client(lambda request: httpx.Response(200, json={"range": "Sheet1"}))
        self.assertEqual(await client.fetch_rows(), [])

    async def test_non_success_status_raises(self) -> None:
        client = sheets_client(lambda request: httpx.Response(403, json={"error": {}}))

        with self.assertRaises(RemoteFetchError) as ctx:
            await client.fetch_rows()
        self.assertEqual(ctx.exception.status_code, 403)

    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(RemoteFetchError) as ctx:
            await sheets_client(handler).fetch_rows()
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertNotIn("api-key-123456", str(ctx.exception))

    async def test_non_json_body_raises(self) -> None:
        client = sheets_client(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(RemoteFetchError):
            await client.fetch_rows()

    async def test_non_utf8_body_raises(self) -> None:
        client = sheets_client(lambda request: httpx.Response(200, content=b"\x80\x81garbage"))
        with self.assertRaises(RemoteFetchError) as ctx:
            await client.fetch_rows()
        self.assertEqual(ctx.exception.status_code, 200)


class TestTelegramClient(unittest.IsolatedAsyncioTestCase):
    async def test_send_threaded_reply(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "result": {}})

        ok = await telegram_client(handler).send_message(42, "hello", reply_to=7)

        self.assertTrue(ok)
        self.assertEqual(seen["path"], "/bot123:abc/sendMessage")
        self.assertEqual(
            seen["body"], {"chat_id": 42, "text": "hello", "reply_to_message_id": 7}
        )

    async def test_send_without_reply_target(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        await telegram_client(handler).send_message(42, "hello")
        self.assertNotIn("reply_to_message_id", seen["body"])

    async def test_rejected_send_returns_false(self) -> None:
        client = telegram_client(
            lambda request: httpx.Response(400, json={"ok": False, "description": "chat not found"})
        )
        self.assertFalse(await client.send_message(1, "x"))

    async def test_transport_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timeout", request=request)

        self.assertFalse(await telegram_client(handler).send_message(1, "x"))

    async def test_rejected_send_with_non_utf8_body_returns_false(self) -> None:
        client = telegram_client(lambda request: httpx.Response(502, content=b"\x80\x81"))
        self.assertFalse(await client.send_message(1, "x"))


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryKVStore(unittest.IsolatedAsyncioTestCase):
    async def test_put_get_expire_delete(self) -> None:
        clock = FakeClock()
        store = InMemoryKVStore(clock=clock)

        await store.put("k", "v", 10)
        clock.now = 9.9
        self.assertEqual(await store.get("k"), "v")
        clock.now = 10.0
        self.assertIsNone(await store.get("k"))

        await store.put("k", "v2", 10)
        await store.delete("k")
        await store.delete("missing")
        self.assertIsNone(await store.get("k"))


class TestRedisKVStore(unittest.IsolatedAsyncioTestCase):
    async def test_operations_delegate_to_client(self) -> None:
        client = AsyncMock()
        client.get.return_value = b"[]"
        store = RedisKVStore(client)

        self.assertEqual(await store.get("sheet-v1"), "[]")
        await store.put("sheet-v1", "[]", 300)
        await store.delete("sheet-v1")

        client.set.assert_awaited_once_with("sheet-v1", "[]", ex=300)
        client.delete.assert_awaited_once_with("sheet-v1")

    async def test_errors_become_durable_store_error(self) -> None:
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")
        client.set.side_effect = RedisConnectionError("down")
        client.delete.side_effect = RedisConnectionError("down")
        store = RedisKVStore(client)

        for call in (store.get("k"), store.put("k", "v", 1), store.delete("k")):
            with self.assertRaises(DurableStoreError):
                await call


def test_build_kv_store_selects_backend():
    assert isinstance(build_kv_store("memory://"), InMemoryKVStore)
    assert isinstance(build_kv_store("redis://localhost:6379/0"), RedisKVStore)
