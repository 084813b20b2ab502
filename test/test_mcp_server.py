import asyncio
import io
import json
import sys
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

import httpx

from oneinch_mcp.config import PortfolioApiSettings
from oneinch_mcp.http_client import PortfolioApiClient
from oneinch_mcp.order_status import OrderStatusReader
from oneinch_mcp.resources import UnknownResourceError, parse_order_hash
from oneinch_mcp.server import McpServer, handle_line, run_stdio
from oneinch_mcp.swap_dispatcher import SwapDispatcher
from oneinch_mcp.tool_registry import ToolContext


class McpServerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.status_path = Path(self._tmp.name) / "order-status.json"
        self.requests = []
        self.swaps = []

        def api(request):
            self.requests.append(request)
            if request.url.path.endswith("/general/current_value"):
                return httpx.Response(502, text="bad gateway")
            return httpx.Response(200, json={"result": {"total": 42}})

        async def executor(payload):
            self.swaps.append(payload)
            return {"orderHash": "0x1", "message": "ok"}

        self.portfolio = PortfolioApiClient(
            PortfolioApiSettings(api_key="key"),
            transport=httpx.MockTransport(api),
        )
        self.server = McpServer(
            ToolContext(
                portfolio=self.portfolio,
                swaps=SwapDispatcher(executor),
                orders=OrderStatusReader(self.status_path),
            )
        )

    async def asyncTearDown(self):
        await self.portfolio.aclose()
        self._tmp.cleanup()

    async def _call(self, name, arguments=None, msg_id=1):
        return await self.server.handle_message(
            {"jsonrpc": "2.0", "id": msg_id, "method": "tools/call", "params": {"name": name, "arguments": arguments or {}}}
        )

    async def test_initialize_advertises_tools_and_resources(self):
        response = await self.server.handle_message(
            {"jsonrpc": "2.0", "id": 0, "method": "initialize", "params": {"protocolVersion": "2024-11-05"}}
        )

        result = response["result"]
        self.assertEqual(result["protocolVersion"], "2024-11-05")
        self.assertEqual(result["serverInfo"]["name"], "1inch-CrossChain-Swap")
        self.assertIn("tools", result["capabilities"])
        self.assertIn("resources", result["capabilities"])

    async def test_tools_list(self):
        response = await self.server.handle_message({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})

        names = {tool["name"] for tool in response["result"]["tools"]}
        self.assertIn("swap", names)
        self.assertIn("swap-status", names)

    async def test_portfolio_tool_returns_pretty_json(self):
        response = await self._call("portfolio-tokens-details", {"chainId": 10, "addresses": "0xa"})

        result = response["result"]
        self.assertFalse(result["isError"])
        self.assertEqual(result["content"][0]["text"], json.dumps({"result": {"total": 42}}, indent=2))
        self.assertEqual(
            list(self.requests[0].url.params.multi_items()),
            [
                ("chain_id", "10"),
                ("addresses", "0xa"),
                ("timerange", "1day"),
                ("closed", "true"),
                ("closed_threshold", "1"),
                ("use_cache", "false"),
            ],
        )

    async def test_portfolio_remote_error_is_flagged(self):
        response = await self._call("portfolio-general-value")

        result = response["result"]
        self.assertTrue(result["isError"])
        self.assertEqual(result["content"][0]["text"], "Error fetching general value: Request failed: 502 - bad gateway")

    async def test_swap_tool_scales_amount(self):
        response = await self._call("swap", {"amount": "3"})

        self.assertFalse(response["result"]["isError"])
        self.assertEqual(self.swaps[0]["amount"], "3000000")

    async def test_invalid_arguments_are_rejected_before_dispatch(self):
        response = await self._call("portfolio-value-chart", {"timerange": "forever"})

        self.assertEqual(response["error"]["code"], -32602)
        self.assertIn("timerange", response["error"]["message"])
        self.assertEqual(self.requests, [])

    async def test_unknown_tool(self):
        response = await self._call("bridge")

        self.assertEqual(response["error"]["code"], -32602)
        self.assertIn("Unknown tool: bridge", response["error"]["message"])

    async def test_swap_status_tool_and_resource_agree(self):
        self.status_path.write_text(
            json.dumps({"orders": [{"orderHash": "0xabc", "status": "pending", "startTime": 0, "lastUpdated": 0}]}),
            encoding="utf-8",
        )

        tool = await self._call("swap-status", {"orderHash": "0xabc"})
        resource = await self.server.handle_message(
            {"jsonrpc": "2.0", "id": 3, "method": "resources/read", "params": {"uri": "swaps://0xabc"}}
        )

        contents = resource["result"]["contents"][0]
        self.assertEqual(contents["uri"], "swaps://0xabc")
        self.assertEqual(contents["text"], tool["result"]["content"][0]["text"])
        self.assertIn("Status: pending", contents["text"])

    async def test_resource_without_store(self):
        response = await self.server.handle_message(
            {"jsonrpc": "2.0", "id": 4, "method": "resources/read", "params": {"uri": "swaps://"}}
        )

        self.assertEqual(response["result"]["contents"][0]["text"], "No swap orders found.")

    async def test_resource_templates_list(self):
        response = await self.server.handle_message({"jsonrpc": "2.0", "id": 5, "method": "resources/templates/list"})

        self.assertEqual(response["result"]["resourceTemplates"][0]["uriTemplate"], "swaps://{orderHash}")

    async def test_unknown_method_and_notifications(self):
        unknown = await self.server.handle_message({"jsonrpc": "2.0", "id": 6, "method": "prompts/list"})
        note = await self.server.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})

        self.assertEqual(unknown["error"]["code"], -32601)
        self.assertIsNone(note)
        self.assertTrue(self.server.initialized)

    async def test_handle_line_parse_error_and_batch(self):
        parse_error = await handle_line(self.server, "{not json")
        batch = await handle_line(
            self.server,
            json.dumps([{"jsonrpc": "2.0", "id": 7, "method": "ping"}, 3]),
        )

        self.assertEqual(parse_error["error"]["code"], -32700)
        self.assertEqual(batch[0], {"jsonrpc": "2.0", "id": 7, "result": {}})
        self.assertEqual(batch[1]["error"]["code"], -32600)

    async def test_non_object_params_are_rejected(self):
        for params in ("oops", ["x"], 7):
            response = await handle_line(
                self.server,
                json.dumps({"jsonrpc": "2.0", "id": 9, "method": "tools/call", "params": params}),
            )
            self.assertEqual(response["id"], 9)
            self.assertEqual(response["error"]["code"], -32602)

        note = await handle_line(
            self.server,
            json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized", "params": "oops"}),
        )
        self.assertIsNone(note)

    async def test_non_string_resource_uri_is_rejected(self):
        response = await self.server.handle_message(
            {"jsonrpc": "2.0", "id": 8, "method": "resources/read", "params": {"uri": 5}}
        )

        self.assertEqual(response["error"]["code"], -32602)

    async def test_unexpected_failure_still_answers_the_request(self):
        with mock.patch.object(self.server, "handle_message", side_effect=RuntimeError("kaput")):
            single = await handle_line(self.server, json.dumps({"jsonrpc": "2.0", "id": 12, "method": "ping"}))
            batch = await handle_line(
                self.server,
                json.dumps([{"jsonrpc": "2.0", "id": 13, "method": "ping"}, {"jsonrpc": "2.0", "method": "ping"}]),
            )

        self.assertEqual(single, {"jsonrpc": "2.0", "id": 12, "error": {"code": -32603, "message": "Server error: kaput"}})
        self.assertEqual([item["id"] for item in batch], [13])
        self.assertEqual(batch[0]["error"]["code"], -32603)

    async def test_portfolio_call_is_not_blocked_by_slow_sync_swap(self):
        release = threading.Event()

        def slow_executor(payload):
            release.wait(5)
            return {"orderHash": "0xslow", "message": "done"}

        self.server.context.swaps = SwapDispatcher(slow_executor)
        swap_task = asyncio.create_task(self._call("swap", msg_id=10))
        try:
            await asyncio.sleep(0.05)
            portfolio = await asyncio.wait_for(self._call("portfolio-protocols-value", msg_id=11), timeout=2)

            self.assertFalse(swap_task.done())
            self.assertFalse(portfolio["result"]["isError"])
        finally:
            release.set()
        swap = await swap_task

        self.assertIn("0xslow", swap["result"]["content"][0]["text"])


class RunStdioTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()

        async def executor(payload):
            return {"orderHash": "0x1", "message": "ok"}

        self.portfolio = PortfolioApiClient(
            PortfolioApiSettings(api_key="key"),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        self.server = McpServer(
            ToolContext(
                portfolio=self.portfolio,
                swaps=SwapDispatcher(executor),
                orders=OrderStatusReader(Path(self._tmp.name) / "order-status.json"),
            )
        )

    async def asyncTearDown(self):
        await self.portfolio.aclose()
        self._tmp.cleanup()

    async def test_each_request_gets_one_json_line_and_loop_ends_at_eof(self):
        lines = [
            {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
            "",
            "{broken",
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "swap-status"}},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {"jsonrpc": "2.0", "id": 3, "method": "resources/read", "params": ["x"]},
        ]
        stdin = io.StringIO(
            "".join((line if isinstance(line, str) else json.dumps(line)) + "\n" for line in lines)
        )
        stdout = io.StringIO()

        with mock.patch.object(sys, "stdin", stdin), mock.patch.object(sys, "stdout", stdout):
            await asyncio.wait_for(run_stdio(self.server), timeout=5)

        written = stdout.getvalue()
        self.assertTrue(written.endswith("\n"))
        responses = [json.loads(line) for line in written.splitlines()]
        by_id = {response["id"]: response for response in responses}

        self.assertEqual(len(responses), 4)
        self.assertEqual(set(by_id), {1, None, 2, 3})
        self.assertEqual(by_id[1]["result"]["serverInfo"]["name"], "1inch-CrossChain-Swap")
        self.assertEqual(by_id[None]["error"]["code"], -32700)
        self.assertEqual(by_id[2]["result"]["content"][0]["text"], "No swap orders found.")
        self.assertEqual(by_id[3]["error"]["code"], -32602)
        self.assertTrue(self.server.initialized)


class ParseOrderHashTests(unittest.TestCase):
    def test_authority_and_path_forms(self):
        self.assertEqual(parse_order_hash("swaps://0xAbC"), "0xAbC")
        self.assertEqual(parse_order_hash("swaps:///0xabc"), "0xabc")
        self.assertIsNone(parse_order_hash("swaps://"))
        self.assertIsNone(parse_order_hash("swaps:///"))

    def test_other_schemes_are_unknown(self):
        with self.assertRaises(UnknownResourceError):
            parse_order_hash("file:///etc/passwd")


if __name__ == "__main__":
    unittest.main()
