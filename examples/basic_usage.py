#!/usr/bin/env python3
"""Basic usage example for didl.

This example demonstrates:
1. Defining a record with Pydantic
2. Encoding to a self-describing binary message
3. Decoding back to a Pydantic model
4. Decoding with an older view of the same record
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import Field

from didl import FixedInt, IDLModel, idl_hash


class Status(enum.Enum):
    """Order fulfilment status."""

    PENDING = 1
    SHIPPED = 2
    DELIVERED = 3


class Order(IDLModel):
    """Customer order.

    ``quantity`` is a fixed-width nat16; ``order_id`` is an unbounded nat.
    """

    order_id: int = Field(ge=0, description="Order number")
    item: str = Field(description="Item name")
    quantity: int = FixedInt(bits=16, description="Units ordered")
    status: Status
    note: Optional[str] = None


class OrderSummary(IDLModel):
    """Older reader that only knows the order number and item."""

    order_id: int = Field(ge=0)
    item: str


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("didl Basic Usage Example")
    print("=" * 60)
    print()

    # Create an order
    print("1. Creating an order...")
    order = Order(order_id=1001, item="widget", quantity=3, status=Status.SHIPPED, note="gift")
    print(f"   {order!r}")
    print()

    # Show the record type and field ids
    print("2. Record type...")
    print(f"   {Order.idl_type().name}")
    for name in Order.model_fields:
        print(f"   {name}: id {idl_hash(name)}")
    print()

    # Encode the order
    print("3. Encoding...")
    data = order.encode()
    print(f"   Encoded size: {len(data)} bytes")
    print(f"   Hex: {data.hex()}")
    print()

    # Decode the order
    print("4. Decoding...")
    decoded = Order.decode(data)
    print(f"   {decoded!r}")
    print()

    # Verify round-trip
    print("5. Verifying round-trip...")
    if decoded == order:
        print("   ✓ Round-trip successful! Decoded order matches original.")
    else:
        print("   ✗ Round-trip failed! Orders differ.")
    print()

    # Decode with the older view; unknown fields are skipped
    print("6. Decoding with an older record view...")
    summary = OrderSummary.decode(data)
    print(f"   {summary!r}")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
