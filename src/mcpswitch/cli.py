# CLI interface for mcpswitch
import argparse
import logging
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from mcpswitch import __version__
from mcpswitch.config import DATABASE_ARG_PREFIX
from mcpswitch.errors import RegistryLoadError
from mcpswitch.models import ErrorInfo, Registry, Settings
from mcpswitch.notifier import (
    BATCH_ERROR,
    REGISTRY_ERROR,
    REGISTRY_UPDATED,
    SETTINGS_ERROR,
    SETTINGS_UPDATED,
    Notifier,
)
from mcpswitch.picker import SelectionCancelled, interactive_select
from mcpswitch.platform_config import PlatformConfigManager
from mcpswitch.session import SelectionSession, build_document
from mcpswitch.store import ConfigStore
from mcpswitch.utils.validation import validate_registry, validate_settings
from mcpswitch.watcher import FileWatcher

# ABOUTME: Exit codes
# 0 = success, 1 = saved but batch command failed, 2 = config/usage error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# ABOUTME: How long save/select wait for the batch command before giving up on it
BATCH_WAIT_SECONDS = 300.0


@dataclass
class App:
    """Wiring of store, watcher, notifier and platform config manager."""
    notifier: Notifier
    watcher: FileWatcher
    store: ConfigStore
    platforms: PlatformConfigManager
    batch_errors: list[str] = field(default_factory=list)

    def close(self) -> None:
        # Observer first, so no reload is in flight while the store unwatches
        self.watcher.stop()
        self.store.stop()
        self.notifier.close()


def build_app(database: str | None, cwd: Path | None = None) -> App:
    """Create the application objects without loading anything.

    ABOUTME: --database is handed to the store as a start argument
    """
    notifier = Notifier()
    watcher = FileWatcher()
    argv = [f"{DATABASE_ARG_PREFIX}{database}"] if database else []
    store = ConfigStore(notifier, watcher, cwd=cwd, argv=argv)
    app = App(
        notifier=notifier,
        watcher=watcher,
        store=store,
        platforms=PlatformConfigManager(store, notifier),
    )
    notifier.subscribe(BATCH_ERROR, lambda info: app.batch_errors.append(info.message))
    return app


def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _wait_for_batch(app: App) -> int:
    """Wait for the post-save command and map its outcome to an exit code."""
    if not app.platforms.wait_for_commands(timeout=BATCH_WAIT_SECONDS):
        print("  Batch command still running, not waiting for it.")
        return EXIT_SUCCESS
    app.notifier.flush()
    if app.batch_errors:
        print()
        for message in app.batch_errors:
            print(f"  Batch command error: {message}")
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def _print_tool(tool_id: str, registry: Registry) -> None:
    server = registry.servers[tool_id]
    print(f"  {tool_id}")
    print(f"    command: {server.command}")
    if server.args:
        print(f"    args: {' '.join(server.args)}")
    if server.env:
        print(f"    env: {', '.join(f'{k}={v}' for k, v in server.env.items())}")


def cmd_platforms(app: App, args: argparse.Namespace) -> int:
    """List configured platforms and where their config is written."""
    settings = app.store.get_settings()
    if app.store.settings_error:
        print(f"Warning: {app.store.settings_error.message}")
        print()

    print(f"Platforms in {app.store.settings_path}:")
    print()
    for platform in settings.platforms:
        print(f"  {platform.name}")
        print(f"    output: {app.platforms.config_path(platform.name)}")
        if platform.batch:
            print(f"    batch: {platform.batch}")
        print()

    print(f"Total: {len(settings.platforms)} platform(s)")
    return EXIT_SUCCESS


def cmd_tools(app: App, args: argparse.Namespace) -> int:
    """List the tools in the tool database."""
    registry = app.store.get_registry()

    print(f"MCP Servers in {app.store.registry_path}:")
    print()
    for tool_id in registry.ids():
        _print_tool(tool_id, registry)
        print()

    print(f"Total: {len(registry)} server(s)")
    return EXIT_SUCCESS


def cmd_show(app: App, args: argparse.Namespace) -> int:
    """Show the tools enabled for a platform."""
    registry = app.store.get_registry()
    document = app.platforms.read(args.platform)
    servers = document.get("mcpServers")
    enabled = list(servers) if isinstance(servers, dict) else []

    print(f"Platform '{args.platform}' ({app.platforms.config_path(args.platform)}):")
    print()
    if not enabled:
        print("  No servers enabled.")
    for tool_id in enabled:
        note = "" if tool_id in registry else " (not in tool database)"
        print(f"  {tool_id}{note}")

    print()
    print(f"Total: {len(enabled)} enabled")
    return EXIT_SUCCESS


def cmd_save(app: App, args: argparse.Namespace) -> int:
    """Edit a platform's selection from the command line and save it.

    ABOUTME: Starts from the saved selection unless --only is given
    ABOUTME: Waits for the batch command so its failure shows in the exit code
    """
    registry = app.store.get_registry()
    enable = set(args.enable or [])
    disable = set(args.disable or [])

    unknown = sorted((enable | disable) - set(registry.ids()))
    if unknown:
        print(f"Error: unknown tool(s): {', '.join(unknown)}")
        print(f"Known tools: {', '.join(registry.ids())}")
        return EXIT_CONFIG_ERROR

    if args.only:
        selected = enable
    else:
        document = app.platforms.read(args.platform)
        servers = document.get("mcpServers")
        selected = set(servers) if isinstance(servers, dict) else set()
        selected |= enable
    selected -= disable

    result = app.platforms.write(args.platform, build_document(registry, selected))
    if not result.success:
        print("Error Saving Configuration")
        print(f"Could not save configuration to {result.path}.")
        print(f"Error: {result.error}")
        return EXIT_FATAL

    enabled = [tool_id for tool_id in registry.ids() if tool_id in selected]
    print(f"Saved {len(enabled)} server(s) for '{args.platform}' to {result.path}")
    return _wait_for_batch(app)


def cmd_select(app: App, args: argparse.Namespace) -> int:
    """Pick the tools for a platform interactively, then save."""
    session = SelectionSession(app.store, app.platforms, app.notifier)
    with session.open(preferred_platform=args.platform):
        if args.platform and session.platform != args.platform:
            print(f"Error: unknown platform '{args.platform}'")
            print(f"Known platforms: {', '.join(session.settings.platform_names()) or '(none)'}")
            return EXIT_CONFIG_ERROR
        if not session.platform:
            print(f"Error: no platforms defined in {app.store.settings_path}")
            return EXIT_CONFIG_ERROR
        if session.registry is None:
            print(f"Error: {session.registry_error}")
            return EXIT_FATAL

        try:
            chosen = interactive_select(
                session.registry.ids(),
                preselected=set(session.selected_ids()),
                title=f"Select MCP servers for {session.platform}:",
            )
        except SelectionCancelled:
            print("Operation cancelled.")
            return EXIT_SUCCESS

        session.set_selection(set(chosen))
        result = session.save()

    if not result.success:
        print("Error Saving Configuration")
        print(f"Could not save configuration to {result.path}.")
        print(f"Error: {result.error}")
        return EXIT_FATAL

    print(f"Saved {len(chosen)} server(s) for '{session.platform}' to {result.path}")
    return _wait_for_batch(app)


def cmd_check(app: App, args: argparse.Namespace) -> int:
    """Validate settings and tool database without writing anything."""
    settings = app.store.get_settings()
    registry = app.store.get_registry()

    print(f"Checking {app.store.settings_path}...")
    if app.store.settings_error:
        print(f"  ✗ {app.store.settings_error.message}")
    else:
        print(f"  ✓ {len(settings.platforms)} platform(s) defined")
    print(f"Checking {app.store.registry_path}...")
    print(f"  ✓ {len(registry)} server(s) defined")
    print()

    problems = validate_settings(settings) + validate_registry(registry)
    errors = [p for p in problems if p.severity == "error"]
    warnings = [p for p in problems if p.severity == "warning"]

    for problem in problems:
        mark = "✗" if problem.severity == "error" else "⚠"
        print(f"  {mark} {problem.subject}: {problem.message}")

    if problems:
        print()
    print(f"Check complete: {len(errors)} error(s), {len(warnings)} warning(s)")

    if errors or app.store.settings_error:
        return EXIT_CONFIG_ERROR
    return EXIT_SUCCESS


def _print_settings(settings: Settings) -> None:
    names = ", ".join(settings.platform_names()) or "(none)"
    print(f"[settings] updated: platforms {names}")


def _print_registry(registry: Registry) -> None:
    print(f"[database] updated: {len(registry)} server(s): {', '.join(registry.ids())}")


def _print_error(prefix: str) -> Callable[[ErrorInfo], None]:
    def handler(info: ErrorInfo) -> None:
        print(f"[{prefix}] error: {info.message}")
    return handler


def cmd_watch(app: App, args: argparse.Namespace) -> int:
    """Watch settings and tool database, printing every notification."""
    app.notifier.subscribe(SETTINGS_UPDATED, _print_settings)
    app.notifier.subscribe(SETTINGS_ERROR, _print_error("settings"))
    app.notifier.subscribe(REGISTRY_UPDATED, _print_registry)
    app.notifier.subscribe(REGISTRY_ERROR, _print_error("database"))
    app.notifier.subscribe(BATCH_ERROR, _print_error("batch"))

    _print_settings(app.store.get_settings())
    _print_registry(app.store.get_registry())
    print(f"Watching {app.store.settings_path} and {app.store.registry_path}. Press Ctrl+C to stop.")

    app.watcher.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        print()
        print("Stopped.")
    return EXIT_SUCCESS


COMMANDS = {
    "platforms": cmd_platforms,
    "tools": cmd_tools,
    "show": cmd_show,
    "save": cmd_save,
    "select": cmd_select,
    "check": cmd_check,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpswitch",
        description="Enable MCP servers per platform and write each platform's config file"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"mcpswitch v{__version__}"
    )
    parser.add_argument(
        "--database",
        metavar="PATH",
        help="Tool database to use when settings.json has no database_path"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log progress (-v) or debug details (-vv)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("platforms", help="List platforms and their output files")
    subparsers.add_parser("tools", help="List MCP servers in the tool database")
    subparsers.add_parser("check", help="Validate settings and tool database")
    subparsers.add_parser("watch", help="Watch settings and tool database for changes")

    show_parser = subparsers.add_parser("show", help="Show servers enabled for a platform")
    show_parser.add_argument("platform", help="Platform name")

    save_parser = subparsers.add_parser("save", help="Enable/disable servers for a platform and save")
    save_parser.add_argument("platform", help="Platform name")
    save_parser.add_argument(
        "--enable", "-e",
        action="append",
        metavar="ID",
        help="Server to enable (repeatable)"
    )
    save_parser.add_argument(
        "--disable", "-d",
        action="append",
        metavar="ID",
        help="Server to disable (repeatable)"
    )
    save_parser.add_argument(
        "--only",
        action="store_true",
        help="Enable exactly the --enable servers, ignoring the saved selection"
    )

    select_parser = subparsers.add_parser("select", help="Choose servers for a platform interactively")
    select_parser.add_argument("platform", nargs="?", help="Platform name (default: first platform)")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args, loads both documents, dispatches to the command
    ABOUTME: A tool database that cannot be loaded ends the run with EXIT_FATAL
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    configure_logging(args.verbose)

    app = build_app(args.database)
    try:
        try:
            app.store.start()
        except RegistryLoadError as e:
            print("Error Loading Configuration")
            print(str(e))
            print()
            print("The application will now exit.")
            return EXIT_FATAL

        return COMMANDS[args.command](app, args)
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
