"""Read-only view of the swap executor's order status file.

The file is owned by the swap executor, which rewrites it while orders
progress. This module never creates or modifies it; a missing file is the
normal state before the first swap, and a file caught mid-write simply
reads as malformed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oneinch_mcp.schemas import ToolResult

logger = logging.getLogger(__name__)

NO_STORE_TEXT = "No swap orders found."
NO_ORDERS_TEXT = "No orders found."


class OrderRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    order_hash: str = Field(alias="orderHash")
    status: Any = None
    start_time: Any = Field(default=None, alias="startTime")
    last_updated: Any = Field(default=None, alias="lastUpdated")


class OrderStore(BaseModel):
    model_config = ConfigDict(extra="ignore")

    orders: List[OrderRecord]


class StoreState(str, Enum):
    EMPTY = "empty"
    PARSED = "parsed"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class StoreSnapshot:
    state: StoreState
    orders: List[OrderRecord] = field(default_factory=list)
    reason: str = ""


def read_store(path: Path) -> StoreSnapshot:
    """Load the order file as Empty, Parsed or Malformed."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return StoreSnapshot(StoreState.EMPTY)
    except OSError as exc:
        return StoreSnapshot(StoreState.MALFORMED, reason=str(exc))

    try:
        store = OrderStore.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        return StoreSnapshot(StoreState.MALFORMED, reason=str(exc))
    except ValidationError as exc:
        return StoreSnapshot(StoreState.MALFORMED, reason=_validation_reason(exc))
    return StoreSnapshot(StoreState.PARSED, orders=store.orders)


def _validation_reason(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "document"
    return f"{location}: {first['msg']}"


def format_timestamp(value: Any) -> str:
    """Render epoch milliseconds or an ISO string in local time."""
    moment = _parse_timestamp(value)
    if moment is None:
        return "Invalid Date"
    return moment.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        try:
            return _parse_timestamp(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
        if moment.tzinfo is None:
            moment = moment.astimezone()
        return moment
    return None


def format_order(order: OrderRecord) -> str:
    return (
        f"Order: {order.order_hash}\n"
        f"Status: {order.status}\n"
        f"Start Time: {format_timestamp(order.start_time)}\n"
        f"Last Updated: {format_timestamp(order.last_updated)}"
    )


class OrderStatusReader:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read_status(self, order_hash: Optional[str] = None) -> ToolResult:
        snapshot = read_store(self.path)
        if snapshot.state is StoreState.EMPTY:
            return ToolResult(NO_STORE_TEXT)
        if snapshot.state is StoreState.MALFORMED:
            logger.warning("Order status file %s is malformed: %s", self.path, snapshot.reason)
            return ToolResult(f"Error reading swap status: {snapshot.reason}", is_error=True)

        if not order_hash:
            if not snapshot.orders:
                return ToolResult(NO_ORDERS_TEXT)
            return ToolResult("\n\n".join(format_order(order) for order in snapshot.orders))

        for order in snapshot.orders:
            if order.order_hash == order_hash:
                return ToolResult(format_order(order))
        return ToolResult(f"Order {order_hash} not found.")
