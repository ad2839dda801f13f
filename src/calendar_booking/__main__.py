"""CLI entry point for the booking engine."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .app import SchedulingService, build_service
from .calendars.google_calendar import GoogleCalendarClient
from .config import AppConfig, load_config
from .models.booking import BookingCreate, BookingUpdate
from .store.base import BookingStore
from .store.memory import InMemoryBookingStore
from .store.sql import SqlBookingStore
from .utils.exceptions import BookingEngineError, LocalConflictError
from .utils.intervals import parse_datetime
from .utils.logging import setup_logging


def _emit(value: Any) -> None:
    """Print a model, list of models or plain value as one JSON document."""
    if isinstance(value, BaseModel):
        payload: Any = value.model_dump(mode="json")
    elif isinstance(value, list):
        payload = [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
    else:
        payload = value
    print(json.dumps(payload))


def _create_store(app_config: AppConfig) -> BookingStore:
    if not app_config.database_url:
        return InMemoryBookingStore()
    store = SqlBookingStore(app_config.database_url)
    store.create_schema()
    return store


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Calendar Booking - manage bookings with external calendar conflict checks"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("booking_config.yaml"),
        help="YAML configuration overrides (default: booking_config.yaml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument(
        "--no-calendar",
        action="store_true",
        help="Skip external calendar checks and mirroring",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    def with_identity(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--identity", required=True, help="Identity provider subject")
        return p

    p = with_identity("resolve-owner", "Create or refresh the owner for an identity")
    p.add_argument("--email", required=True)
    p.add_argument("--name")
    p.add_argument("--picture")

    p = with_identity("create", "Create a booking")
    p.add_argument("--title", required=True)
    p.add_argument("--start", required=True, help="ISO-8601 start time")
    p.add_argument("--end", required=True, help="ISO-8601 end time")

    with_identity("list", "List all bookings")
    with_identity("upcoming", "List upcoming bookings")

    p = with_identity("get", "Show one booking")
    p.add_argument("booking_id")

    p = with_identity("update", "Update a booking")
    p.add_argument("booking_id")
    p.add_argument("--title")
    p.add_argument("--start", help="ISO-8601 start time")
    p.add_argument("--end", help="ISO-8601 end time")

    p = with_identity("delete", "Delete a booking")
    p.add_argument("booking_id")

    p = with_identity("check", "Check an interval for conflicts")
    p.add_argument("--start", required=True)
    p.add_argument("--end", required=True)
    p.add_argument("--exclude-id")

    with_identity("auth-url", "Print the calendar consent URL")
    p = with_identity("connect", "Connect an external calendar with a consent code")
    p.add_argument("--code", required=True)
    with_identity("disconnect", "Disconnect the external calendar")
    with_identity("status", "Show external calendar connection status")

    p = with_identity("events", "List external calendar events")
    p.add_argument("--start", required=True)
    p.add_argument("--end", required=True)

    return parser


def _run(service: SchedulingService, args: argparse.Namespace) -> None:
    identity = args.identity
    command = args.command

    if command == "resolve-owner":
        _emit(service.resolve_owner(identity, args.email, args.name, args.picture))
    elif command == "create":
        data = BookingCreate(
            title=args.title,
            start_time=parse_datetime(args.start),
            end_time=parse_datetime(args.end),
        )
        _emit(service.create_booking(identity, data))
    elif command == "list":
        _emit(service.list_bookings(identity))
    elif command == "upcoming":
        _emit(service.get_upcoming_bookings(identity))
    elif command == "get":
        _emit(service.get_booking(identity, args.booking_id))
    elif command == "update":
        changes = BookingUpdate(
            title=args.title,
            start_time=parse_datetime(args.start) if args.start else None,
            end_time=parse_datetime(args.end) if args.end else None,
        )
        _emit(service.update_booking(identity, args.booking_id, changes))
    elif command == "delete":
        _emit(service.delete_booking(identity, args.booking_id))
    elif command == "check":
        report = service.check_conflicts(
            identity, parse_datetime(args.start), parse_datetime(args.end), args.exclude_id
        )
        _emit(
            {
                "hasConflicts": report.has_conflicts,
                "externalConflict": report.external_conflict,
                "conflicts": [b.model_dump(mode="json") for b in report.conflicts],
            }
        )
    elif command == "auth-url":
        _emit({"url": service.get_authorization_url(identity)})
    elif command == "connect":
        service.connect_external_calendar(identity, args.code)
        _emit({"success": True, "message": "External calendar connected"})
    elif command == "disconnect":
        service.disconnect_external_calendar(identity)
        _emit({"success": True, "message": "External calendar disconnected"})
    elif command == "status":
        _emit(service.calendar_status(identity))
    elif command == "events":
        _emit(
            service.list_external_events(
                identity, parse_datetime(args.start), parse_datetime(args.end)
            )
        )


def main() -> int:
    """Main CLI entry point."""
    args = _build_parser().parse_args()

    try:
        app_config = load_config(args.config)
        log_level = "DEBUG" if args.verbose else app_config.log_level
        logger = setup_logging(level=log_level, log_file=app_config.log_file)
    except BookingEngineError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        calendar = None if args.no_calendar else GoogleCalendarClient(app_config.google)
        service = build_service(app_config, _create_store(app_config), calendar)
        _run(service, args)
        return 0

    except LocalConflictError as e:
        logger.error(f"{e}: {', '.join(b.id for b in e.conflicts)}")
        return 1
    except BookingEngineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
