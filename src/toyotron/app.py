"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from typing import Optional

from toyotron.ai.agent import ChatAgent
from toyotron.ai.client import AIClient, create_ai_client
from toyotron.ai.guardrails import GuardrailFilter
from toyotron.ai.tools.registry import build_registry
from toyotron.bookings.client import BookingClient
from toyotron.bookings.service import BookingService
from toyotron.config import AppConfig
from toyotron.core.session import SessionResolver
from toyotron.errors import ConfigurationError
from toyotron.log import get_logger
from toyotron.notifications.confirmation import BookingConfirmation
from toyotron.notifications.email import ResendMailer
from toyotron.storage.booking_repo import BookingRepository
from toyotron.storage.database import Database
from toyotron.storage.user_repo import UserRepository
from toyotron.storage.vehicle_repo import VehicleRepository

logger = get_logger(__name__)


class ToyotronApp:
    """Top-level application orchestrator."""

    def __init__(self, config: AppConfig, ai_client: Optional[AIClient] = None):
        self.config = config
        self.db = Database(config.storage.db_path)
        self.vehicles = VehicleRepository(self.db)
        self.users = UserRepository(self.db)
        self.bookings = BookingService(self.vehicles, BookingRepository(self.db))
        self.sessions = SessionResolver(self.users)
        self.guardrails = GuardrailFilter()

        self.mailer = ResendMailer(config.email)
        self.confirmations = BookingConfirmation(
            self.mailer, config.booking, config.email.organizer_email
        )
        # Without a remote bookings endpoint, the scheduler books in-process
        self.booking_client: Optional[BookingClient] = (
            BookingClient(config.booking.base_url, timeout=config.booking.timeout)
            if config.booking.base_url
            else None
        )
        self.tool_registry = build_registry(
            config,
            self.vehicles,
            self.booking_client or self.bookings,
            self.confirmations,
        )

        self._ai_client = ai_client
        self._llm_error: Optional[str] = None
        self.agent: Optional[ChatAgent] = None

    async def start(self) -> None:
        """Initialize and start all components."""
        await self.db.initialize()

        if self._ai_client is None:
            try:
                self._ai_client = create_ai_client(self.config)
            except ConfigurationError as e:
                self._llm_error = str(e)
                logger.warning("llm_not_configured", error=self._llm_error)

        if self._ai_client is not None:
            await self._ai_client.start()
            self.agent = ChatAgent(
                ai_client=self._ai_client,
                registry=self.tool_registry,
                guardrails=self.guardrails,
                llm_config=self.config.llm,
            )

        if not self.mailer.configured:
            logger.warning("email_not_configured")

        logger.info(
            "toyotron_started",
            llm_backend=self.config.llm.backend,
            chat_enabled=self.agent is not None,
            tools=self.tool_registry.names(),
            remote_bookings=self.booking_client is not None,
        )

    def require_agent(self) -> ChatAgent:
        if self.agent is None:
            raise ConfigurationError(self._llm_error or "LLM API key is not configured.")
        return self.agent

    async def stop(self) -> None:
        """Gracefully shut down all components."""
        if self._ai_client is not None:
            await self._ai_client.close()
        if self.booking_client is not None:
            await self.booking_client.close()
        await self.mailer.close()
        await self.db.close()
        logger.info("toyotron_stopped")
