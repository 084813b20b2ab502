"""MCP stdio server for 1inch cross-chain swaps and portfolio data."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Set

from oneinch_mcp.config import Settings, load_settings
from oneinch_mcp.http_client import PortfolioApiClient
from oneinch_mcp.order_status import OrderStatusReader
from oneinch_mcp.resources import UnknownResourceError, read_resource, resource_definitions, resource_templates
from oneinch_mcp.swap_dispatcher import SwapDispatcher, SwapExecutorError, load_executor
from oneinch_mcp.tool_registry import ToolArgumentsError, ToolContext, UnknownToolError, dispatch_tool, tool_definitions

logger = logging.getLogger(__name__)

SERVER_NAME = "1inch-CrossChain-Swap"
SERVER_VERSION = "1.0.0"


class McpServer:
    """MCP stdio server (tool calls to 1inch APIs and the swap executor)."""

    def __init__(self, context: ToolContext) -> None:
        self.context = context
        self.supported_versions = [
            "2025-11-25",
            "2025-06-18",
            "2025-03-26",
            "2024-11-05",
        ]
        self.initialized = False

    async def handle_message(self, message: dict) -> Optional[dict]:
        """Handle a single JSON-RPC message."""
        method = message.get("method")
        msg_id = message.get("id")

        params = message.get("params")
        if params is not None and not isinstance(params, dict):
            if msg_id is None:
                return None
            return self._error(msg_id, -32602, "Invalid params: expected an object")

        if method == "initialize":
            return self._handle_initialize(message, msg_id)
        if method == "notifications/initialized":
            self.initialized = True
            return None
        if method == "ping":
            return self._ok(msg_id, {})
        if method == "tools/list":
            return self._ok(msg_id, {"tools": tool_definitions()})
        if method == "tools/call":
            return await self._handle_tool_call(message, msg_id)
        if method == "resources/list":
            return self._ok(msg_id, {"resources": resource_definitions()})
        if method == "resources/templates/list":
            return self._ok(msg_id, {"resourceTemplates": resource_templates()})
        if method == "resources/read":
            return self._handle_resource_read(message, msg_id)

        if msg_id is None:
            return None
        return self._error(msg_id, -32601, f"Unknown method: {method}")

    def _handle_initialize(self, message: dict, msg_id: Any) -> dict:
        params = message.get("params") or {}
        requested_version = params.get("protocolVersion")
        protocol_version = (
            requested_version
            if requested_version in self.supported_versions
            else self.supported_versions[0]
        )
        result = {
            "protocolVersion": protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"listChanged": False, "subscribe": False},
            },
            "serverInfo": {
                "name": SERVER_NAME,
                "version": SERVER_VERSION,
            },
        }
        return self._ok(msg_id, result)

    async def _handle_tool_call(self, message: dict, msg_id: Any) -> dict:
        params = message.get("params") or {}
        name = params.get("name")
        arguments = params.get("arguments") or {}

        if not name:
            return self._error(msg_id, -32602, "Missing tool name")

        try:
            result = await dispatch_tool(name, arguments, self.context)
        except (UnknownToolError, ToolArgumentsError) as exc:
            return self._error(msg_id, -32602, str(exc))
        except Exception as exc:  # pragma: no cover - handlers convert their own failures
            logger.exception("Tool %s crashed", name)
            return self._error(msg_id, -32603, f"Server error: {exc}")
        return self._ok(msg_id, result.to_content())

    def _handle_resource_read(self, message: dict, msg_id: Any) -> dict:
        params = message.get("params") or {}
        uri = params.get("uri")
        if not uri or not isinstance(uri, str):
            return self._error(msg_id, -32602, "Missing resource uri")
        try:
            return self._ok(msg_id, read_resource(uri, self.context.orders))
        except UnknownResourceError as exc:
            return self._error(msg_id, -32002, str(exc))

    @staticmethod
    def _ok(msg_id: Any, result: dict) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    @staticmethod
    def _error(msg_id: Any, code: int, message: str) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


async def handle_line(server: McpServer, line: str) -> Optional[Any]:
    """Decode one stdin line and produce the response to write, if any."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        return {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": -32700, "message": f"Parse error: {exc}"},
        }
    return await _handle_payload(server, payload)


async def _handle_payload(server: McpServer, payload: Any) -> Optional[Any]:
    if isinstance(payload, list):
        results = []
        for item in payload:
            if not isinstance(item, dict):
                results.append(
                    {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid request"}}
                )
                continue
            response = await _handle_message(server, item)
            if response is not None:
                results.append(response)
        return results or None

    if not isinstance(payload, dict):
        return {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid request"}}

    return await _handle_message(server, payload)


async def _handle_message(server: McpServer, message: dict) -> Optional[dict]:
    try:
        return await server.handle_message(message)
    except Exception as exc:
        logger.exception("Failed to handle %s", message.get("method"))
        msg_id = message.get("id")
        if msg_id is None:
            return None
        return McpServer._error(msg_id, -32603, f"Server error: {exc}")


async def run_stdio(server: McpServer) -> None:
    """Run MCP stdio event loop; each request is served in its own task."""
    loop = asyncio.get_running_loop()
    pending: Set[asyncio.Task] = set()
    while True:
        raw_line = await loop.run_in_executor(None, sys.stdin.readline)
        if not raw_line:
            break
        line = raw_line.strip()
        if not line:
            continue
        task = asyncio.create_task(_serve_line(server, line))
        pending.add(task)
        task.add_done_callback(pending.discard)
    if pending:
        await asyncio.gather(*pending)


async def _serve_line(server: McpServer, line: str) -> None:
    response = await handle_line(server, line)
    if response is not None:
        _write_response(response)


def _write_response(response: Any) -> None:
    sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
    sys.stdout.flush()


def build_context(settings: Settings) -> ToolContext:
    return ToolContext(
        portfolio=PortfolioApiClient(settings.portfolio),
        swaps=SwapDispatcher(load_executor(settings.swap.executor)),
        orders=OrderStatusReader(Path(settings.swap.order_status_path)),
    )


async def _serve(context: ToolContext) -> None:
    try:
        await run_stdio(McpServer(context))
    finally:
        await context.portfolio.aclose()


def main() -> None:
    """MCP stdio entrypoint."""
    try:
        settings = load_settings()
        logging.basicConfig(
            stream=sys.stderr,
            level=settings.logging.level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        context = build_context(settings)
    except (ValueError, SwapExecutorError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        sys.exit(1)

    logger.info("Starting %s %s on stdio", SERVER_NAME, SERVER_VERSION)
    asyncio.run(_serve(context))


if __name__ == "__main__":
    main()
