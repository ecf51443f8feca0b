"""
Table definitions for hives, logs and tasks.

`ensure_schema()` only creates what is missing; it is not a migration tool.
Several workers may start at once, so DDL runs under a transaction-scoped
advisory lock.
"""

from __future__ import annotations

import logging

from . import db

logger = logging.getLogger(__name__)

# Arbitrary, stable key for pg_advisory_xact_lock.
SCHEMA_LOCK_KEY = 72_601_042

# Range of the `integer` columns holding hive names (hives.hive_name, *.hive_id).
INT4_MIN = -(2**31)
INT4_MAX = 2**31 - 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS hives (
  id bigserial PRIMARY KEY,
  hive_name integer NOT NULL,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now(),
  CONSTRAINT hives_hive_name_key UNIQUE (hive_name)
);

CREATE TABLE IF NOT EXISTS logs (
  id bigserial PRIMARY KEY,
  hive_id integer NOT NULL
    REFERENCES hives (hive_name) ON UPDATE CASCADE ON DELETE CASCADE,
  content text NOT NULL,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS tasks (
  id bigserial PRIMARY KEY,
  hive_id integer NOT NULL
    REFERENCES hives (hive_name) ON UPDATE CASCADE ON DELETE CASCADE,
  content text NOT NULL,
  created_at timestamptz NOT NULL DEFAULT now(),
  updated_at timestamptz NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS logs_hive_id_idx ON logs (hive_id);
CREATE INDEX IF NOT EXISTS logs_created_at_idx ON logs (created_at DESC, id DESC);
CREATE INDEX IF NOT EXISTS tasks_hive_id_idx ON tasks (hive_id);
CREATE INDEX IF NOT EXISTS tasks_created_at_idx ON tasks (created_at DESC, id DESC);
"""


async def ensure_schema() -> None:
    async with db.transaction() as conn:
        await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_KEY)
        # No arguments: asyncpg runs this as a simple multi-statement query.
        await conn.execute(SCHEMA_SQL)
    logger.info("schema_ready tables=hives,logs,tasks")
