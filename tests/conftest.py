"""Shared fixtures: a seeded in-memory catalog, users, and a scripted model client."""

from __future__ import annotations

import copy
import logging
from typing import Any

import pytest
import structlog

from toyotron.ai.client import AIClient, AIResponse, ToolCall
from toyotron.ai.tools.base import ToolContext
from toyotron.config import AppConfig
from toyotron.storage.booking_repo import BookingRepository
from toyotron.storage.database import Database
from toyotron.storage.models import UserPreferences
from toyotron.storage.user_repo import UserRepository
from toyotron.storage.vehicle_repo import VehicleRepository

USER_TOKEN = "token-jane"


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch):
    """Undo CLI logging setup so later tests don't log to a closed capture stream."""
    configure = structlog.configure
    monkeypatch.setattr(
        structlog, "configure", lambda **kw: configure(**{**kw, "cache_logger_on_first_use": False})
    )
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


VEHICLE_ROWS: list[dict[str, Any]] = [
    {
        "trim_id": 1,
        "model_year": 2024,
        "make": "Toyota",
        "model": "RAV4",
        "trim": "LE",
        "description": "Compact SUV",
        "msrp": 29000,
        "invoice": 27500,
        "body_type": "SUV",
        "body_seats": 5,
        "drive_type": "AWD",
        "transmission": "8-Speed Automatic",
        "fuel_type": "Gasoline",
        "engine_type": "Gas",
        "cylinders": 4,
        "horsepower_hp": 203,
        "torque_ft_lbs": 184,
        "city_mpg": 27,
        "highway_mpg": 35,
        "combined_mpg": 30,
    },
    {
        # transmission stored inside drive_type upstream
        "trim_id": 2,
        "model_year": 2024,
        "make": "Toyota",
        "model": "RAV4 Hybrid",
        "trim": "XSE",
        "description": "Hybrid compact SUV",
        "msrp": 36000,
        "invoice": 34000,
        "body_type": "SUV",
        "body_seats": 5,
        "drive_type": 'AWD,"transmission":"CVT"',
        "transmission": None,
        "fuel_type": "Hybrid",
        "engine_type": "Hybrid",
        "cylinders": 4,
        "horsepower_hp": 219,
        "combined_mpg": 39,
    },
    {
        "trim_id": 3,
        "model_year": 2024,
        "make": "Toyota",
        "model": "Highlander",
        "trim": "XLE",
        "msrp": 45000,
        "body_type": "SUV",
        "body_seats": 8,
        "drive_type": "AWD",
        "transmission": "8-Speed Automatic",
        "engine_type": "Gas",
        "horsepower_hp": 265,
        "combined_mpg": 24,
    },
    {
        # invoice-only pricing
        "trim_id": 4,
        "model_year": 2024,
        "make": "Toyota",
        "model": "Corolla Cross",
        "trim": "L",
        "msrp": None,
        "invoice": 23000,
        "body_type": "SUV",
        "body_seats": 5,
        "drive_type": "FWD",
        "transmission": "CVT",
        "engine_type": "Gas",
        "horsepower_hp": 169,
        "combined_mpg": 32,
    },
    {
        "trim_id": 5,
        "model_year": 2024,
        "make": "Toyota",
        "model": "Camry",
        "trim": "LE",
        "msrp": 27000,
        "body_type": "Sedan",
        "body_seats": 5,
        "drive_type": "FWD",
        "transmission": "8-Speed Automatic",
        "engine_type": "Gas",
        "horsepower_hp": 203,
        "combined_mpg": 32,
    },
    {
        # no price at all
        "trim_id": 6,
        "model_year": 2024,
        "make": "Toyota",
        "model": "Grand Highlander",
        "trim": "XLE",
        "msrp": None,
        "invoice": None,
        "body_type": "SUV",
        "body_seats": 7,
        "drive_type": "AWD",
        "engine_type": "Gas",
        "horsepower_hp": 265,
        "combined_mpg": None,
    },
    {
        "trim_id": 7,
        "model_year": 2024,
        "make": "Toyota",
        "model": "bZ4X",
        "trim": "XLE",
        "msrp": 43000,
        "body_type": "SUV",
        "body_seats": 5,
        "drive_type": "FWD",
        "fuel_type": "Electric",
        "engine_type": "Electric",
        "horsepower_hp": 201,
        "combined_mpg": None,
    },
    {
        "trim_id": 8,
        "model_year": 2024,
        "make": "Toyota",
        "model": "Sienna",
        "trim": "LE",
        "msrp": 39000,
        "body_type": "Minivan",
        "body_seats": 8,
        "drive_type": "FWD",
        "engine_type": "Hybrid",
        "horsepower_hp": 245,
        "combined_mpg": 36,
    },
]


class FakeAIClient(AIClient):
    """Scripted model: returns queued responses in order and records every call.

    Once one response is left it is repeated. Exceptions in the queue are raised.
    """

    def __init__(self, responses: list[Any] | None = None):
        self.responses: list[Any] = list(responses or [AIResponse(text="Hello!")])
        self.calls: list[dict[str, Any]] = []
        self.started = False
        self.closed = False

    async def chat(self, system, messages, model="", max_tokens=1000, temperature=0.7, tools=None):
        self.calls.append(
            {"system": system, "messages": copy.deepcopy(messages), "model": model, "tools": tools}
        )
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True


def tool_step(name: str, arguments: dict[str, Any] | None, call_id: str = "call_1", text: str = "") -> AIResponse:
    """A model step that requests a single tool call."""
    return AIResponse(
        text=text,
        tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)],
        stop_reason="tool_calls",
    )


async def seed(db: Database) -> None:
    await VehicleRepository(db).insert_many(VEHICLE_ROWS)
    users = UserRepository(db)
    await users.create_user(
        "user-1", email="jane@example.com", full_name="Jane Doe", phone="214-555-0100", token=USER_TOKEN
    )
    await users.save_preferences(
        "user-1",
        UserPreferences(
            budget_min=2500000,
            budget_max=4000000,
            car_types=["SUV"],
            seats=5,
            mpg_priority="high",
            use_case="family",
        ),
    )
    await users.create_user("user-2", email=None, full_name="No Email", token="token-no-email")


@pytest.fixture
async def db():
    database = Database(":memory:")
    await database.initialize()
    await seed(database)
    yield database
    await database.close()


@pytest.fixture
def vehicles(db):
    return VehicleRepository(db)


@pytest.fixture
def users(db):
    return UserRepository(db)


@pytest.fixture
def booking_repo(db):
    return BookingRepository(db)


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        data_dir=str(tmp_path),
        public_url="https://toyotron.test",
        storage={"db_path": str(tmp_path / "toyotron.db")},
    )


@pytest.fixture
async def user(users):
    return await users.get_user_by_token(USER_TOKEN)


@pytest.fixture
def context():
    return ToolContext()
