"""Human-readable number generation.

Format:
  order: ORD-{date}-{random}   e.g. ORD-20261018-3F9A1C07

The random suffix comes from `secrets`, so concurrent requests never need
to count existing rows to pick a number; the unique index on
`orders.order_number` is the final guard.
"""

import secrets
from datetime import datetime, timezone


def generate_order_number() -> str:
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"ORD-{today}-{secrets.token_hex(4).upper()}"
