"""Forwards swap requests to the cross-chain swap executor."""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Union

from oneinch_mcp.normalizers import normalize_amount
from oneinch_mcp.schemas import SwapRequest, ToolResult

logger = logging.getLogger(__name__)

SwapExecutor = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


class SwapExecutorError(Exception):
    """Swap executor could not be loaded or is not configured."""


def load_executor(path: str) -> SwapExecutor:
    """Resolve ``package.module:attribute`` into the executor callable."""
    if not path:
        return _unconfigured_executor
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise SwapExecutorError(f"SWAP_EXECUTOR must look like 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise SwapExecutorError(f"Cannot import swap executor module {module_name!r}: {exc}") from exc
    executor = getattr(module, attribute, None)
    if not callable(executor):
        raise SwapExecutorError(f"{path!r} is not a callable swap executor")
    return executor


def _unconfigured_executor(payload: Dict[str, Any]) -> Any:
    raise SwapExecutorError("No swap executor configured (set SWAP_EXECUTOR)")


def _result_field(result: Any, name: str) -> Any:
    if isinstance(result, Mapping):
        return result.get(name)
    return getattr(result, name, None)


def _is_async_callable(executor: Any) -> bool:
    """Coroutine functions run on the loop; everything else goes to a thread."""
    return inspect.iscoroutinefunction(executor) or inspect.iscoroutinefunction(
        getattr(executor, "__call__", None)
    )


class SwapDispatcher:
    def __init__(self, executor: SwapExecutor) -> None:
        self.executor = executor

    async def dispatch(self, request: SwapRequest) -> ToolResult:
        """Run the swap; never raises."""
        payload = request.to_executor_payload()
        payload["amount"] = normalize_amount(request.amount)
        logger.info(
            "Dispatching swap %s -> %s amount=%s",
            payload["srcChainId"],
            payload["dstChainId"],
            payload["amount"],
        )
        try:
            if _is_async_callable(self.executor):
                result = self.executor(payload)
            else:
                result = await asyncio.to_thread(self.executor, payload)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("Swap executor raised")
            return ToolResult(f"Error: {exc}", is_error=True)

        error = _result_field(result, "error") if result else None
        if not result or error:
            detail = error or "executor returned no result"
            logger.warning("Swap failed: %s", detail)
            return ToolResult(f"Swap failed: {detail}", is_error=True)

        order_hash = _result_field(result, "orderHash")
        message = _result_field(result, "message") or ""
        return ToolResult(f"Swap initiated successfully! Order hash: {order_hash}\n{message}")
