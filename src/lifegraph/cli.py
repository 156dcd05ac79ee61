"""Command-line interface for the LifeGraph vault.

Provides subcommands for initializing the vault, syncing connectors,
listing stored items and managing the login session.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from .auth import AuthError, AuthSession
from .config import VaultConfig, load_config
from .connectors import ConnectorRegistry
from .items import Item, ItemKind, ensure_utc
from .logging import JSONLLogger
from .storage import SQLiteStorage, StorageError, SyncStateStore
from .vault import SyncOrchestrator, SyncReport

logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> VaultConfig:
    """Load config from --config, or the default location."""
    return load_config(Path(args.config).expanduser() if args.config else None)


def _build_orchestrator(config: VaultConfig) -> SyncOrchestrator:
    """Wire storage, checkpoints and configured connectors."""
    assert config.db_path is not None and config.log_dir is not None
    registry = ConnectorRegistry.from_specs(config.connectors)
    return SyncOrchestrator(
        SQLiteStorage(config.db_path),
        registry,
        state_store=SyncStateStore(config.db_path),
        event_logger=JSONLLogger(config.log_dir),
        connector_timeout=config.connector_timeout,
    )


def _format_kind(item: Item) -> str:
    if isinstance(item.kind, ItemKind):
        return item.kind.value
    return f"other:{item.kind.tag}"


def _format_properties(item: Item, width: int = 50) -> str:
    text = json.dumps(item.properties, ensure_ascii=False, sort_keys=True)
    if len(text) > width:
        text = text[: width - 3] + "..."
    return text


def _print_report(report: SyncReport) -> None:
    print(f"\nSync ({report.mode.value}) saved {report.total_saved} item(s) [run {report.run_id}]")
    for result in report.results:
        if result.ok:
            status = "\033[32mok\033[0m"
            detail = f"{result.mode.value}: fetched {result.items_fetched}, saved {result.items_saved}"
        else:
            status = "\033[31mFAILED\033[0m"
            detail = result.error or ""
        print(f"  {result.connector_id:<20} {status:<15} {detail}")


def _parse_since(value: str) -> datetime:
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value}") from None


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"Must be 0 or more: {value}")
    return number


def _interval(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a number: {value}") from None
    if not seconds >= 1:
        raise argparse.ArgumentTypeError(f"Interval must be at least 1 second: {value}")
    return seconds


def cmd_init(args: argparse.Namespace) -> int:
    """Create the database schema."""
    config = _load_config(args)
    assert config.db_path is not None

    try:
        with SQLiteStorage(config.db_path) as storage:
            storage.init()
        state_store = SyncStateStore(config.db_path)
        state_store.init()
        state_store.close()
    except StorageError as e:
        print(f"Error: {e}")
        return 1

    print(f"Vault initialized at {config.db_path}")
    return 0


async def _run_sync(args: argparse.Namespace, orchestrator: SyncOrchestrator) -> None:
    ready = await orchestrator.initialize()
    for connector_id, error in orchestrator.init_errors.items():
        print(f"Warning: connector '{connector_id}' failed to initialize: {error}")
    if not ready:
        print("No connectors ready.")
        return

    if args.watch:
        print(f"Watching {len(ready)} connector(s) every {args.interval:g}s (Ctrl+C to stop)")
        await orchestrator.run_periodic(args.interval, on_report=_print_report)
        return

    if args.full:
        report = await orchestrator.full_sync()
    elif args.since is not None:
        report = await orchestrator.incremental_sync(args.since)
    else:
        report = await orchestrator.sync()
    _print_report(report)


def cmd_sync(args: argparse.Namespace) -> int:
    """Run configured connectors and persist their items."""
    config = _load_config(args)
    if args.interval is None:
        args.interval = config.sync_interval

    try:
        orchestrator = _build_orchestrator(config)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        asyncio.run(_run_sync(args, orchestrator))
    except StorageError as e:
        logger.error("Storage failure during sync: %s", e)
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        orchestrator.close()
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List stored items, newest first."""
    config = _load_config(args)
    assert config.db_path is not None

    try:
        with SQLiteStorage(config.db_path) as storage:
            storage.init()
            items = storage.get_all_items()
    except StorageError as e:
        print(f"Error: {e}")
        return 1

    if not items:
        print("No items stored.")
        return 0

    shown = items[: args.limit] if args.limit else items

    print(f"\n{'Timestamp':<28} {'Kind':<14} {'Connector':<14} Properties")
    print("-" * 100)
    for item in shown:
        timestamp = item.timestamp.isoformat(timespec="seconds")
        print(
            f"{timestamp:<28} {_format_kind(item):<14} "
            f"{item.connector_id:<14} {_format_properties(item)}"
        )

    print(f"\nShowing {len(shown)} of {len(items)} item(s)")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show item count and checkpoints for the configured connectors."""
    config = _load_config(args)
    assert config.db_path is not None

    try:
        configured = ConnectorRegistry.from_specs(config.connectors).ids
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        with SQLiteStorage(config.db_path) as storage:
            storage.init()
            count = storage.count_items()
        state_store = SyncStateStore(config.db_path)
        state_store.init()
        states = {s.connector_id: s for s in state_store.list_states()}
        state_store.close()
    except StorageError as e:
        print(f"Error: {e}")
        return 1

    print(f"Vault: {config.db_path}")
    print(f"Items: {count}")
    if not states:
        print("No sync runs recorded.")

    # Checkpoints of connectors since removed from the config are still shown.
    connector_ids = configured + [c for c in states if c not in configured]
    if not connector_ids:
        return 0

    print(f"\n{'Connector':<20} {'Status':<10} {'Last synced':<28} Items")
    print("-" * 70)
    for connector_id in connector_ids:
        state = states.get(connector_id)
        if state is None:
            print(f"{connector_id:<20} {'pending':<10} {'never':<28} 0")
            continue
        last = state.last_synced_at.isoformat(timespec="seconds") if state.last_synced_at else "never"
        label = connector_id if connector_id in configured else f"{connector_id} (removed)"
        print(f"{label:<20} {state.last_status:<10} {last:<28} {state.items_synced}")
        if state.last_error:
            print(f"  last error: {state.last_error}")
    return 0


def cmd_login(args: argparse.Namespace) -> int:
    """Log in with the identity provider."""
    config = _load_config(args)
    assert config.auth_path is not None

    try:
        user = AuthSession(config.auth_path).login()
    except (AuthError, OSError) as e:
        print(f"Error: login failed: {e}")
        return 1

    print(f"Logged in as {user.name} <{user.email}>")
    return 0


def cmd_whoami(args: argparse.Namespace) -> int:
    """Show the logged-in user."""
    config = _load_config(args)
    assert config.auth_path is not None

    try:
        session = AuthSession(config.auth_path).load()
    except AuthError as e:
        print(f"Error: {e}")
        return 1

    if not session.logged_in or session.user is None:
        print("Not logged in.")
        return 1

    print(f"{session.user.name} <{session.user.email}>")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    """Clear the login session."""
    config = _load_config(args)
    assert config.auth_path is not None

    AuthSession(config.auth_path).logout()
    print("Logged out.")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the vault CLI."""
    parser = argparse.ArgumentParser(
        prog="lifegraph",
        description="Personal data vault: sync connectors into a local database",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to config.json (default: ~/.lifegraph/config.json)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    subparsers.add_parser("init", help="Create the vault database")

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Sync connectors into the vault")
    mode = sync_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--full",
        action="store_true",
        help="Force a full sync on every connector",
    )
    mode.add_argument(
        "--since",
        type=_parse_since,
        help="Incremental sync from this ISO timestamp",
    )
    mode.add_argument(
        "-w", "--watch",
        action="store_true",
        help="Keep syncing on a schedule",
    )
    sync_parser.add_argument(
        "-i", "--interval",
        type=_interval,
        help="Seconds between runs in watch mode",
    )

    # list command
    list_parser = subparsers.add_parser("list", help="List stored items")
    list_parser.add_argument(
        "-n", "--limit",
        type=_non_negative_int,
        default=0,
        help="Show at most N items (0 for all)",
    )

    subparsers.add_parser("status", help="Show vault and checkpoint status")
    subparsers.add_parser("login", help="Log in with the identity provider")
    subparsers.add_parser("whoami", help="Show the logged-in user")
    subparsers.add_parser("logout", help="Clear the login session")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the vault CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "sync": cmd_sync,
        "list": cmd_list,
        "status": cmd_status,
        "login": cmd_login,
        "whoami": cmd_whoami,
        "logout": cmd_logout,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(run_cli())
