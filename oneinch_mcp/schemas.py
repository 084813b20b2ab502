"""Parameter models for the exposed tools.

Each model is the declared schema of one tool: field types, defaults and
allowed values. Validation happens in ``tool_registry`` before a handler
runs, and the advertised ``inputSchema`` is generated from the same model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Timerange = Literal["1day", "1week", "1month", "1year", "3years"]

USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
USDC_ARBITRUM = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"


class ToolParams(BaseModel):
    """Base for tool parameters: strict types, unknown keys ignored."""

    model_config = ConfigDict(strict=True, extra="ignore")

    @classmethod
    def input_schema(cls) -> Dict[str, Any]:
        schema = cls.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("properties", {})
        return schema


class SwapRequest(ToolParams):
    src_chain_id: int = Field(default=8453, alias="srcChainId", description="Source chain id")
    dst_chain_id: int = Field(default=42161, alias="dstChainId", description="Destination chain id")
    src_token_address: str = Field(default=USDC_BASE, alias="srcTokenAddress", description="Token sold on the source chain")
    dst_token_address: str = Field(
        default=USDC_ARBITRUM,
        alias="dstTokenAddress",
        description="Token bought on the destination chain",
    )
    amount: str = Field(
        default="1000000",
        description="Amount in base units; values below 1e6 are treated as whole tokens",
    )
    invert: bool = Field(default=False, description="Swap in the opposite direction")

    def to_executor_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PortfolioQuery(ToolParams):
    chain_id: int = Field(default=1, alias="chainId", description="Chain id sent as chain_id")
    addresses: Optional[str] = Field(default=None, description="Comma-separated wallet addresses")
    use_cache: bool = Field(default=False, description="Let the API serve cached data")

    def query_params(self) -> Dict[str, Any]:
        """Endpoint query parameters in request order, chain_id excluded."""
        return {"addresses": self.addresses, "use_cache": self.use_cache}


class ProtocolsValueQuery(PortfolioQuery):
    pass


class GeneralValueQuery(PortfolioQuery):
    pass


class TokensDetailsQuery(PortfolioQuery):
    timerange: Timerange = Field(default="1day", description="Profit and loss window")
    closed: bool = Field(default=True, description="Include closed positions")
    closed_threshold: float = Field(default=1, description="Value below which a position counts as closed")

    def query_params(self) -> Dict[str, Any]:
        return {
            "addresses": self.addresses,
            "timerange": self.timerange,
            "closed": self.closed,
            "closed_threshold": self.closed_threshold,
            "use_cache": self.use_cache,
        }


class ValueChartQuery(PortfolioQuery):
    timerange: Timerange = Field(default="1month", description="Chart window")

    def query_params(self) -> Dict[str, Any]:
        return {
            "addresses": self.addresses,
            "timerange": self.timerange,
            "use_cache": self.use_cache,
        }


class SwapStatusQuery(ToolParams):
    order_hash: Optional[str] = Field(default=None, alias="orderHash", description="Order hash; omit to list all orders")


@dataclass(frozen=True)
class ToolResult:
    """Text returned to the client; ``is_error`` marks a failed invocation."""

    text: str
    is_error: bool = False

    def to_content(self) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }
