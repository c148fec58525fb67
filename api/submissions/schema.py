"""
Submissions table DDL.

The same statement runs unchanged on PostgreSQL and SQLite.
"""

from __future__ import annotations

from core.db import Database

STATUSES = ("pending", "approved", "rejected")

# Largest value a Postgres INTEGER column holds.
MAX_QUANTITY = 2_147_483_647

QUANTITY_FIELDS = (
    "nexus_quantity",
    "sensor_power_unit_quantity",
    "type1_sensor_quantity",
    "type2_sensor_quantity",
    "shelf_mount_kit_quantity",
    "rack_mount_kit_quantity",
    "wifi_repeater_quantity",
    "c1_harness_quantity",
)

# Column order used for INSERT and for fallback records.
COLUMNS = (
    "id",
    "timestamp",
    "status",
    "status_updated",
    "distributor_name",
    "end_user",
    "install_date",
    "needed_by_date",
    *QUANTITY_FIELDS,
    "rsm",
    "acknowledgment",
    "invoice_number",
    "additional_notes",
)

CREATE_SUBMISSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS submissions (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    status TEXT DEFAULT 'pending',
    status_updated TEXT,
    distributor_name TEXT NOT NULL,
    end_user TEXT NOT NULL,
    install_date TEXT NOT NULL,
    needed_by_date TEXT NOT NULL,
    nexus_quantity INTEGER DEFAULT 0,
    sensor_power_unit_quantity INTEGER DEFAULT 0,
    type1_sensor_quantity INTEGER DEFAULT 0,
    type2_sensor_quantity INTEGER DEFAULT 0,
    shelf_mount_kit_quantity INTEGER DEFAULT 0,
    rack_mount_kit_quantity INTEGER DEFAULT 0,
    wifi_repeater_quantity INTEGER DEFAULT 0,
    c1_harness_quantity INTEGER DEFAULT 0,
    rsm TEXT NOT NULL,
    acknowledgment BOOLEAN DEFAULT FALSE,
    invoice_number TEXT,
    additional_notes TEXT
)
"""


async def ensure_schema(db: Database) -> None:
    """
    Create the submissions table if it is missing. Safe on every start.
    """
    await db.execute(CREATE_SUBMISSIONS_TABLE)
