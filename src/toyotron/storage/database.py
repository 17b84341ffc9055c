"""SQLite database connection manager with schema migration."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from toyotron.log import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS toyota_trim_specs (
    trim_id         INTEGER PRIMARY KEY,
    model_year      INTEGER,
    make            TEXT,
    model           TEXT,
    trim            TEXT,
    submodel        TEXT,
    description     TEXT,
    msrp            REAL,
    invoice         REAL,
    body_type       TEXT,
    body_seats      INTEGER,
    drive_type      TEXT,
    transmission    TEXT,
    fuel_type       TEXT,
    engine_type     TEXT,
    cylinders       INTEGER,
    horsepower_hp   REAL,
    torque_ft_lbs   REAL,
    city_mpg        REAL,
    highway_mpg     REAL,
    combined_mpg    REAL,
    image_url       TEXT
);

CREATE INDEX IF NOT EXISTS idx_trims_model ON toyota_trim_specs(model, model_year);

CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    email           TEXT,
    full_name       TEXT,
    phone           TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);

CREATE TABLE IF NOT EXISTS user_sessions (
    token           TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    expires_at      TEXT
);

CREATE TABLE IF NOT EXISTS user_preferences (
    user_id         TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    budget_min      INTEGER,
    budget_max      INTEGER,
    car_types_json  TEXT NOT NULL DEFAULT '[]',
    seats           INTEGER,
    mpg_priority    TEXT,
    use_case        TEXT
);

CREATE TABLE IF NOT EXISTS test_drive_bookings (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id             TEXT NOT NULL,
    car_id              INTEGER NOT NULL,
    preferred_location  TEXT NOT NULL,
    booking_date        TEXT NOT NULL,
    status              TEXT NOT NULL DEFAULT 'pending',
    contact_name        TEXT,
    contact_email       TEXT,
    contact_phone       TEXT,
    vehicle_make        TEXT,
    vehicle_model       TEXT,
    vehicle_year        INTEGER,
    vehicle_trim        TEXT,
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);
"""


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection and run migrations."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        if self._db_path != ":memory:":
            await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()
        logger.info("database_initialized", path=self._db_path)

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("database_closed")
