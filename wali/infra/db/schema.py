"""PostgreSQL schema for the order core."""
from __future__ import annotations

ORDERS_TABLE = """
CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    order_number TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    customer_id TEXT,
    driver_id TEXT,
    pickup JSONB NOT NULL,
    delivery JSONB NOT NULL,
    items JSONB NOT NULL DEFAULT '[]'::jsonb,
    price JSONB NOT NULL,
    tracking JSONB NOT NULL DEFAULT '[]'::jsonb,
    notes TEXT,
    scheduled_at TIMESTAMPTZ,
    proof_of_delivery VARCHAR(500),
    cancellation_reason TEXT,
    failure_reason TEXT,
    picked_up_at TIMESTAMPTZ,
    delivered_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    version INTEGER NOT NULL DEFAULT 1
)
"""

ORDER_NUMBER_COUNTERS_TABLE = """
CREATE TABLE IF NOT EXISTS order_number_counters (
    day DATE PRIMARY KEY,
    last_seq INTEGER NOT NULL
)
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)",
    "CREATE INDEX IF NOT EXISTS idx_orders_driver ON orders(driver_id) WHERE driver_id IS NOT NULL",
    "CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders(customer_id, created_at DESC)",
)

SCHEMA_STATEMENTS = (ORDERS_TABLE, ORDER_NUMBER_COUNTERS_TABLE, *INDEXES)
