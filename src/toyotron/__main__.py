"""CLI entry point for toyotron."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from toyotron.config import AppConfig, load_config
from toyotron.log import setup_logging


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
    parser.add_argument("-e", "--env", default=".env", help="Path to .env file")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="toyotron",
        description="Toyota shopping assistant with LLM tool calling",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    _add_config_args(serve_parser)
    serve_parser.add_argument("--host", default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")

    check_parser = subparsers.add_parser("config-check", help="Validate configuration")
    _add_config_args(check_parser)

    model_parser = subparsers.add_parser("model-info", help="Show LLM configuration")
    _add_config_args(model_parser)

    seed_parser = subparsers.add_parser("seed", help="Load trim specs into the database")
    _add_config_args(seed_parser)
    seed_parser.add_argument(
        "--vehicles", required=True, help="JSON file with a list of trim-spec rows"
    )

    args = parser.parse_args()

    if args.command is None:
        # Default to serve
        args = parser.parse_args(["serve"])

    if args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "model-info":
        _model_info(args.config, args.env)
    elif args.command == "seed":
        _seed(args.config, args.env, args.vehicles)
    elif args.command == "serve":
        _serve(args.config, args.env, args.host, args.port)


def _load_or_exit(config_path: str, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Copy config.example.yaml to config.yaml and fill in your keys.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _status(value: object) -> str:
    return "set" if value else "NOT SET"


def _check_config(config_path: str, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load_or_exit(config_path, env_path)
    print(f"Configuration valid: {config_path}")
    print(f"  Data directory : {config.data_dir}")
    print(f"  Storage        : {config.storage.db_path}")
    print(f"  Public URL     : {config.public_url}")
    print(f"  LLM backend    : {config.llm.backend} ({config.llm.model})")
    if config.llm.backend == "anthropic":
        print(f"  Anthropic key  : {_status(config.anthropic.api_key)}")
    else:
        print(f"  LLM endpoint   : {config.llm.api_url}")
        print(f"  LLM key        : {_status(config.llm.api_key)}")
    print(f"  Resend key     : {_status(config.email.resend_api_key)}")
    print(f"  Bookings       : {config.booking.base_url or 'in-process'}")
    print(f"  Webhook secret : {_status(config.webhooks.signing_secret)}")


def _model_info(config_path: str, env_path: str) -> None:
    """Show LLM configuration."""
    config = _load_or_exit(config_path, env_path)
    llm = config.llm

    print("AI Model Configuration")
    print("=" * 50)
    print(f"    Backend  : {llm.backend}")
    print(f"    Model    : {llm.model}")
    if llm.backend == "openai_compatible":
        from toyotron.ai.client import normalize_chat_url

        print(f"    Endpoint : {normalize_chat_url(llm.api_url)}")
    print(f"    Tokens   : {llm.max_tokens}")
    print(f"    Temp     : {llm.temperature}")
    print(f"    Steps    : {llm.max_steps}")
    print("    Tools    : searchToyotaTrims, displayCarRecommendations, scheduleTestDrive, estimateFinancing")
    print()


def _seed(config_path: str, env_path: str, vehicles_path: str) -> None:
    """Load trim-spec rows from a JSON file."""
    config = _load_or_exit(config_path, env_path)
    setup_logging(config.log_level, json_output=config.log_json)

    try:
        rows = json.loads(Path(vehicles_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Could not read {vehicles_path}: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(rows, list):
        print(f"{vehicles_path} must contain a JSON list of rows", file=sys.stderr)
        sys.exit(1)

    async def _async_seed() -> int:
        from toyotron.storage.database import Database
        from toyotron.storage.vehicle_repo import VehicleRepository

        db = Database(config.storage.db_path)
        await db.initialize()
        try:
            return await VehicleRepository(db).insert_many(rows)
        finally:
            await db.close()

    count = asyncio.run(_async_seed())
    print(f"Seeded {count} trims into {config.storage.db_path}")


def _serve(config_path: str, env_path: str, host: str | None, port: int | None) -> None:
    """Load config and run the API under uvicorn."""
    import uvicorn

    from toyotron.app import ToyotronApp
    from toyotron.web.server import create_app

    config = _load_or_exit(config_path, env_path)
    setup_logging(config.log_level, json_output=config.log_json)

    app = create_app(ToyotronApp(config))
    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
