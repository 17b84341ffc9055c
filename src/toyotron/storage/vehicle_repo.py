"""Vehicle trim repository: a small predicate builder over ``toyota_trim_specs``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import aiosqlite

from toyotron.errors import StoreError
from toyotron.log import get_logger
from toyotron.storage.database import Database

logger = get_logger(__name__)

VEHICLE_COLUMNS: tuple[str, ...] = (
    "trim_id",
    "model_year",
    "make",
    "model",
    "trim",
    "submodel",
    "description",
    "msrp",
    "invoice",
    "body_type",
    "body_seats",
    "drive_type",
    "transmission",
    "fuel_type",
    "engine_type",
    "cylinders",
    "horsepower_hp",
    "torque_ft_lbs",
    "city_mpg",
    "highway_mpg",
    "combined_mpg",
    "image_url",
)
_COLUMN_SET = frozenset(VEHICLE_COLUMNS)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Predicate:
    op: str  # "ilike" | "any_ilike" | "eq" | "gte"
    columns: tuple[str, ...]
    value: Any


@dataclass
class VehicleQuery:
    """Chainable filter description, translated to SQL by the repository."""

    predicates: list[Predicate] = field(default_factory=list)
    order_by: Optional[str] = None
    ascending: bool = True
    limit_rows: Optional[int] = None

    def ilike(self, column: str, value: str) -> VehicleQuery:
        self.predicates.append(Predicate("ilike", (column,), value))
        return self

    def any_ilike(self, columns: Iterable[str], value: str) -> VehicleQuery:
        self.predicates.append(Predicate("any_ilike", tuple(columns), value))
        return self

    def eq(self, column: str, value: Any) -> VehicleQuery:
        self.predicates.append(Predicate("eq", (column,), value))
        return self

    def gte(self, column: str, value: Any) -> VehicleQuery:
        self.predicates.append(Predicate("gte", (column,), value))
        return self

    def order(self, column: str, ascending: bool = True) -> VehicleQuery:
        self.order_by = column
        self.ascending = ascending
        return self

    def limit(self, count: int) -> VehicleQuery:
        self.limit_rows = count
        return self


def _check_column(column: str) -> str:
    if column not in _COLUMN_SET:
        raise StoreError(f"Unknown vehicle column: {column}")
    return column


def build_select(query: VehicleQuery) -> tuple[str, list[Any]]:
    """Translate a VehicleQuery into SQL text and bound parameters."""
    clauses: list[str] = []
    params: list[Any] = []

    for pred in query.predicates:
        columns = [_check_column(c) for c in pred.columns]
        match pred.op:
            case "ilike":
                clauses.append(f"{columns[0]} LIKE ? ESCAPE '\\'")
                params.append(f"%{_escape_like(str(pred.value))}%")
            case "any_ilike":
                pattern = f"%{_escape_like(str(pred.value))}%"
                ors = " OR ".join(f"{c} LIKE ? ESCAPE '\\'" for c in columns)
                clauses.append(f"({ors})")
                params.extend([pattern] * len(columns))
            case "eq":
                clauses.append(f"{columns[0]} = ?")
                params.append(pred.value)
            case "gte":
                clauses.append(f"{columns[0]} >= ?")
                params.append(pred.value)
            case _:
                raise StoreError(f"Unsupported predicate: {pred.op}")

    sql = f"SELECT {', '.join(VEHICLE_COLUMNS)} FROM toyota_trim_specs"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    if query.order_by:
        column = _check_column(query.order_by)
        direction = "ASC" if query.ascending else "DESC"
        # Nulls always last, regardless of direction
        sql += f" ORDER BY {column} IS NULL, {column} {direction}, trim_id ASC"
    if query.limit_rows is not None:
        sql += " LIMIT ?"
        params.append(query.limit_rows)
    return sql, params


class VehicleRepository:
    """Read access (plus seeding) for trim-level vehicle specs."""

    def __init__(self, db: Database):
        self._db = db

    async def select(self, query: VehicleQuery) -> list[dict[str, Any]]:
        sql, params = build_select(query)
        try:
            cursor = await self._db.conn.execute(sql, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Vehicle query failed: {e}") from e
        return [dict(row) for row in rows]

    async def get(self, trim_id: int) -> Optional[dict[str, Any]]:
        try:
            cursor = await self._db.conn.execute(
                f"SELECT {', '.join(VEHICLE_COLUMNS)} FROM toyota_trim_specs WHERE trim_id = ?",
                (trim_id,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Vehicle lookup failed: {e}") from e
        return dict(row) if row else None

    async def insert_many(self, rows: Iterable[dict[str, Any]]) -> int:
        """Upsert raw vehicle rows; unknown keys are ignored. Returns the row count."""
        placeholders = ", ".join("?" for _ in VEHICLE_COLUMNS)
        values = [tuple(row.get(c) for c in VEHICLE_COLUMNS) for row in rows]
        await self._db.conn.executemany(
            f"INSERT OR REPLACE INTO toyota_trim_specs ({', '.join(VEHICLE_COLUMNS)}) "
            f"VALUES ({placeholders})",
            values,
        )
        await self._db.conn.commit()
        logger.info("vehicles_seeded", count=len(values))
        return len(values)
