"""User identity and quiz-preference lookups."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from toyotron.errors import StoreError
from toyotron.log import get_logger
from toyotron.storage.database import Database
from toyotron.storage.models import UserPreferences, UserProfile

logger = get_logger(__name__)


class UserRepository:
    def __init__(self, db: Database):
        self._db = db

    async def get_user_by_token(self, token: str) -> Optional[UserProfile]:
        """Resolve a bearer token to its user; expired tokens resolve to None."""
        try:
            cursor = await self._db.conn.execute(
                """SELECT u.id, u.email, u.full_name, u.phone, s.expires_at
                   FROM user_sessions s JOIN users u ON u.id = s.user_id
                   WHERE s.token = ?""",
                (token,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Session lookup failed: {e}") from e

        if row is None:
            return None
        expires_at = row["expires_at"]
        if expires_at:
            expiry = datetime.fromisoformat(expires_at)
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            if expiry <= datetime.now(timezone.utc):
                logger.info("session_token_expired", user_id=row["id"])
                return None
        return UserProfile(
            id=row["id"], email=row["email"], full_name=row["full_name"], phone=row["phone"]
        )

    async def get_user_by_email(self, email: str) -> Optional[UserProfile]:
        try:
            cursor = await self._db.conn.execute(
                "SELECT id, email, full_name, phone FROM users WHERE lower(email) = lower(?)",
                (email.strip(),),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"User lookup failed: {e}") from e
        if row is None:
            return None
        return UserProfile(
            id=row["id"], email=row["email"], full_name=row["full_name"], phone=row["phone"]
        )

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        try:
            cursor = await self._db.conn.execute(
                "SELECT * FROM user_preferences WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Preference lookup failed: {e}") from e

        if row is None:
            return None
        return UserPreferences(
            budget_min=row["budget_min"],
            budget_max=row["budget_max"],
            car_types=json.loads(row["car_types_json"] or "[]"),
            seats=row["seats"],
            mpg_priority=row["mpg_priority"],
            use_case=row["use_case"],
        )

    async def create_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        token: Optional[str] = None,
    ) -> UserProfile:
        await self._db.conn.execute(
            "INSERT OR REPLACE INTO users (id, email, full_name, phone) VALUES (?, ?, ?, ?)",
            (user_id, email, full_name, phone),
        )
        if token:
            await self._db.conn.execute(
                "INSERT OR REPLACE INTO user_sessions (token, user_id) VALUES (?, ?)",
                (token, user_id),
            )
        await self._db.conn.commit()
        return UserProfile(id=user_id, email=email, full_name=full_name, phone=phone)

    async def save_preferences(self, user_id: str, prefs: UserPreferences) -> None:
        await self._db.conn.execute(
            """INSERT INTO user_preferences
               (user_id, budget_min, budget_max, car_types_json, seats, mpg_priority, use_case)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id) DO UPDATE SET
                 budget_min = excluded.budget_min,
                 budget_max = excluded.budget_max,
                 car_types_json = excluded.car_types_json,
                 seats = excluded.seats,
                 mpg_priority = excluded.mpg_priority,
                 use_case = excluded.use_case""",
            (
                user_id,
                prefs.budget_min,
                prefs.budget_max,
                json.dumps(prefs.car_types),
                prefs.seats,
                prefs.mpg_priority,
                prefs.use_case,
            ),
        )
        await self._db.conn.commit()
