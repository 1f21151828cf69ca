"""Pickup management CLI.

Usage:
    python src/manage.py setup-db             # Create the saga tables
    python src/manage.py drop-db              # Drop the saga tables
    python src/manage.py show <order_id>      # Print an order saga's status and history
    python src/manage.py resume <order_id>    # Replay an order saga and consume pending inputs
    python src/manage.py list --status running  # List order sagas
"""

import argparse
import sys

from pickup.config import Settings
from pickup.errors import NotFoundError
from pickup.utils.db import create_db_engine, drop_db, setup_db


def setup_database(settings):
    print(f"Creating saga tables on {settings.database_uri}...")
    setup_db(create_db_engine(settings.database_uri))
    print("Done.")


def drop_database(settings):
    print(f"Dropping saga tables on {settings.database_uri}...")
    drop_db(create_db_engine(settings.database_uri))
    print("Done.")


def show_order(settings, order_id):
    from pickup.bootstrap import build_host
    from pickup.saga.workflow import execution_id_for

    host = build_host(settings, create_schema=True)
    try:
        execution = host.get_execution(execution_id_for(order_id))
    except NotFoundError as exc:
        print(exc)
        return 1

    print(f"{execution.id}  {execution.status.value}  (version {execution.version})")
    if execution.error:
        print(f"  error: {execution.error}")
    for entry in execution.history:
        print(f"  {entry.sequence:>4}  {entry.kind.value:<20} {entry.name}")
    return 0


def resume_order(settings, order_id):
    from pickup.bootstrap import build_host
    from pickup.saga.workflow import execution_id_for

    host = build_host(settings, create_schema=True)
    try:
        execution = host.resume(execution_id_for(order_id))
    except NotFoundError as exc:
        print(exc)
        return 1

    print(f"{execution.id}  {execution.status.value}  (version {execution.version})")
    return 0


def list_orders(settings, status):
    from pickup.bootstrap import build_host
    from pickup.host.execution import ExecutionStatus

    host = build_host(settings, create_schema=True)
    for execution_id in host.list_execution_ids(ExecutionStatus(status) if status else None):
        print(execution_id)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Pickup saga management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create the saga tables")
    subparsers.add_parser("drop-db", help="Drop the saga tables")
    show_parser = subparsers.add_parser("show", help="Show an order saga")
    show_parser.add_argument("order_id")
    resume_parser = subparsers.add_parser("resume", help="Replay an order saga")
    resume_parser.add_argument("order_id")
    list_parser = subparsers.add_parser("list", help="List order sagas")
    list_parser.add_argument("--status", choices=["running", "completed", "failed"])

    args = parser.parse_args()
    settings = Settings.from_env()

    if args.command == "setup-db":
        setup_database(settings)
    elif args.command == "drop-db":
        drop_database(settings)
    elif args.command == "show":
        sys.exit(show_order(settings, args.order_id))
    elif args.command == "resume":
        sys.exit(resume_order(settings, args.order_id))
    elif args.command == "list":
        sys.exit(list_orders(settings, args.status))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
