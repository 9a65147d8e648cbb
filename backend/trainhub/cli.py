import argparse
import asyncio
import json
import logging
import sys

from trainhub.api.commands import CommandDispatcher
from trainhub.infra.db import TrainingStore
from trainhub.infra.logging import configure_logging
from trainhub.settings import Settings, settings

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trainhub", description="Training progress commands")
    parser.add_argument("--database-url", dest="database_url", default=None, help="Override DATABASE_URL")
    subparsers = parser.add_subparsers(dest="action", required=True)

    subparsers.add_parser("init-db", help="Create the training tables")
    subparsers.add_parser("commands", help="List the available command names")

    call = subparsers.add_parser("call", help="Run one command and print its result envelope")
    call.add_argument("command", help="Command name, e.g. listPrograms")
    call.add_argument("--payload", default=None, help="JSON object passed as the command payload")
    return parser


def _parse_payload(parser: argparse.ArgumentParser, raw: str | None) -> dict | None:
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        parser.error(f"--payload is not valid JSON: {exc.msg}")
    if not isinstance(payload, dict):
        parser.error("--payload must be a JSON object")
    return payload


async def run(argv: list[str] | None = None, *, app_settings: Settings | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    resolved = app_settings or settings
    if args.database_url:
        resolved = resolved.model_copy(update={"database_url": args.database_url})
    configure_logging(resolved.log_level)

    if args.action == "commands":
        for name in CommandDispatcher.command_names():
            print(name)
        return 0

    payload = _parse_payload(parser, getattr(args, "payload", None))
    store = TrainingStore(resolved.database_url, echo=resolved.database_echo)
    await store.open()
    try:
        if args.action == "init-db" or resolved.database_auto_create:
            await store.create_all()
        if args.action == "init-db":
            logger.info("database_initialized")
            return 0
        result = await CommandDispatcher(store, resolved).dispatch(args.command, payload)
    finally:
        await store.close()

    print(json.dumps(result.envelope(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(run(argv))


if __name__ == "__main__":
    sys.exit(main())
