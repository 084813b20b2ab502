"""Tool registry: tool name -> (parameter model, handler)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Type, TYPE_CHECKING

from pydantic import ValidationError

from oneinch_mcp.http_client import PortfolioApiError
from oneinch_mcp.schemas import (
    GeneralValueQuery,
    PortfolioQuery,
    ProtocolsValueQuery,
    SwapRequest,
    SwapStatusQuery,
    TokensDetailsQuery,
    ToolParams,
    ToolResult,
    ValueChartQuery,
)

if TYPE_CHECKING:
    from oneinch_mcp.http_client import PortfolioApiClient
    from oneinch_mcp.order_status import OrderStatusReader
    from oneinch_mcp.swap_dispatcher import SwapDispatcher

logger = logging.getLogger(__name__)


class UnknownToolError(Exception):
    """Raised when a requested tool name is not registered (protocol-level error)."""


class ToolArgumentsError(ValueError):
    """Tool arguments failed validation; raised before the handler runs."""

    def __init__(self, tool: str, field: str, message: str) -> None:
        super().__init__(f"Invalid arguments for tool {tool}: {field}: {message}")
        self.tool = tool
        self.field = field


@dataclass
class ToolContext:
    """Collaborators shared by the handlers, built once at startup."""

    portfolio: "PortfolioApiClient"
    swaps: "SwapDispatcher"
    orders: "OrderStatusReader"


Handler = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params_model: Type[ToolParams]
    handler: Handler


def validate_arguments(spec: ToolSpec, arguments: Dict[str, Any]) -> ToolParams:
    """Validate raw arguments; absent fields resolve to their defaults."""
    try:
        return spec.params_model.model_validate(arguments or {})
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "arguments"
        raise ToolArgumentsError(spec.name, field, first["msg"]) from exc


async def _swap(params: SwapRequest, context: ToolContext) -> ToolResult:
    return await context.swaps.dispatch(params)


async def _swap_status(params: SwapStatusQuery, context: ToolContext) -> ToolResult:
    return context.orders.read_status(params.order_hash)


def _portfolio_handler(endpoint: str, failure: str) -> Handler:
    async def handler(params: PortfolioQuery, context: ToolContext) -> ToolResult:
        try:
            result = await context.portfolio.fetch(endpoint, params.chain_id, params.query_params())
        except PortfolioApiError as exc:
            return ToolResult(f"Error fetching {failure}: {exc}", is_error=True)
        return ToolResult(json.dumps(result, indent=2))

    return handler


_TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name="swap",
        description="Execute a cross-chain swap through 1inch Fusion+.",
        params_model=SwapRequest,
        handler=_swap,
    ),
    ToolSpec(
        name="portfolio-protocols-value",
        description="Current value of DeFi protocol positions for the given addresses.",
        params_model=ProtocolsValueQuery,
        handler=_portfolio_handler("/overview/protocols/current_value", "protocols value"),
    ),
    ToolSpec(
        name="portfolio-tokens-details",
        description="ERC20 token balances with profit and loss over a time range.",
        params_model=TokensDetailsQuery,
        handler=_portfolio_handler("/overview/erc20/details", "tokens details"),
    ),
    ToolSpec(
        name="portfolio-general-value",
        description="Total current portfolio value for the given addresses.",
        params_model=GeneralValueQuery,
        handler=_portfolio_handler("/general/current_value", "general value"),
    ),
    ToolSpec(
        name="portfolio-value-chart",
        description="Portfolio value chart over a time range.",
        params_model=ValueChartQuery,
        handler=_portfolio_handler("/general/value_chart", "value chart"),
    ),
    ToolSpec(
        name="swap-status",
        description="Status of a swap order, or of every recorded order when no hash is given.",
        params_model=SwapStatusQuery,
        handler=_swap_status,
    ),
]

_TOOL_INDEX = {spec.name: spec for spec in _TOOL_SPECS}


def tool_specs() -> List[ToolSpec]:
    return list(_TOOL_SPECS)


def tool_definitions() -> List[Dict[str, Any]]:
    return [
        {
            "name": spec.name,
            "description": spec.description,
            "inputSchema": spec.params_model.input_schema(),
        }
        for spec in _TOOL_SPECS
    ]


async def dispatch_tool(name: str, arguments: dict, context: ToolContext) -> ToolResult:
    spec = _TOOL_INDEX.get(name)
    if spec is None:
        raise UnknownToolError(f"Unknown tool: {name}")
    params = validate_arguments(spec, arguments)
    logger.info("Calling tool %s", name)
    return await spec.handler(params, context)
