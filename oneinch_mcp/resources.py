"""URI-addressed resources (``swaps://{orderHash}``)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlsplit

from oneinch_mcp.order_status import OrderStatusReader

SWAPS_SCHEME = "swaps"
SWAPS_TEMPLATE = "swaps://{orderHash}"


class UnknownResourceError(Exception):
    """Raised when a resource URI does not match any registered template."""


def parse_order_hash(uri: str) -> Optional[str]:
    """Order hash addressed by a ``swaps://`` URI, or None for all orders."""
    parts = urlsplit(uri)
    if parts.scheme != SWAPS_SCHEME:
        raise UnknownResourceError(f"Unknown resource: {uri}")
    segment = parts.netloc or parts.path.lstrip("/").split("/", 1)[0]
    return unquote(segment) or None


def resource_templates() -> List[Dict[str, Any]]:
    return [
        {
            "uriTemplate": SWAPS_TEMPLATE,
            "name": "swap-status",
            "description": "Status of a swap order; an empty hash lists every order.",
            "mimeType": "text/plain",
        }
    ]


def resource_definitions() -> List[Dict[str, Any]]:
    return [
        {
            "uri": f"{SWAPS_SCHEME}://",
            "name": "swap-orders",
            "description": "Every recorded swap order.",
            "mimeType": "text/plain",
        }
    ]


def read_resource(uri: str, orders: OrderStatusReader) -> Dict[str, Any]:
    result = orders.read_status(parse_order_hash(uri))
    return {"contents": [{"uri": uri, "mimeType": "text/plain", "text": result.text}]}
