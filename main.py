"""Command-line interface for the vendor console."""

from __future__ import annotations
import argparse
import asyncio
import logging
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from vendoradmin.auth import AuthClient, AuthenticationFailed
from vendoradmin.client import VendorClient
from vendoradmin.config import ConfigurationError, ConsoleSettings, load_settings
from vendoradmin.console import ActionOutcome, Confirmer, Notifier, VendorConsole
from vendoradmin.security import CredentialProvider, EnvTokenProvider, StaticTokenProvider, TOKEN_ENV_VAR

logger = logging.getLogger("vendoradmin.main")

HELP_TEXT = """Commands:
  n                 next page
  p                 previous page
  g <page>          go to page
  f <record>        freeze or unfreeze a record
  r <record>        switch a record between vendor and user
  d <record>        delete a record
  refresh           reload the current page
  q                 quit
<record> is either the record id or its position on the page."""


def _add_config_option(parser: argparse.ArgumentParser, default: object) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=default,
        help="Path to a YAML settings file (default: $VENDORADMIN_CONFIG)",
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Vendor console utilities")
    _add_config_option(parser, None)
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", host="127.0.0.1", port=8000)

    serve_parser = subparsers.add_parser("serve", help="Start the web console")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the web console")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port for the web console (default: 8000)")
    _add_config_option(serve_parser, argparse.SUPPRESS)

    console_parser = subparsers.add_parser("console", help="Launch the interactive terminal console")
    _add_config_option(console_parser, argparse.SUPPRESS)
    console_parser.add_argument(
        "--token",
        default=None,
        help=f"Bearer token to use (default: ${TOKEN_ENV_VAR})",
    )
    console_parser.add_argument(
        "--email",
        default=None,
        help="Sign in with this account email instead of supplying a token",
    )

    return parser.parse_args(argv)


class PromptConfirmer(Confirmer):
    def __init__(self, read_line: Callable[[str], str] = input) -> None:
        self._read_line = read_line

    def confirm(self, message: str) -> bool:
        answer = self._read_line(f"{message} [y/N]: ").strip().lower()
        return answer in {"y", "yes"}


class PrintNotifier(Notifier):
    def error(self, message: str) -> None:
        print(f"Error: {message}")

    def success(self, message: str) -> None:
        print(message)


def _format_console(console: VendorConsole) -> str:
    lines: List[str] = []
    if console.error:
        lines.append(f"! {console.error}")

    stats = console.stats
    lines.append(
        f"Total users: {stats.total_on_server} | Vendors: {stats.vendor_count} | Frozen: {stats.frozen_count}"
    )

    if not console.records:
        lines.append("No vendors registered.")
        return "\n".join(lines)

    for position, record in enumerate(console.records, start=1):
        flags = [record.role.label]
        if record.is_frozen:
            flags.append("frozen")
        phone = f" {record.contact_phone}" if record.contact_phone else ""
        lines.append(
            f"{position}. {record.display_name} <{record.email}>{phone} [{', '.join(flags)}] id={record.id}"
        )

    pagination = console.pagination
    if pagination.show_controls:
        strip = " ".join(
            "..." if number is None else (f"[{number}]" if number == pagination.page else str(number))
            for number in pagination.window()
        )
        lines.append(f"{pagination.summary}  {strip}")
    return "\n".join(lines)


def _resolve_record_id(console: VendorConsole, token: str) -> str:
    if token.isdigit():
        position = int(token)
        if 1 <= position <= len(console.records):
            return console.records[position - 1].id
    return token


def _parse_command(line: str) -> Tuple[str, Optional[str]]:
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return "", None
    command = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else None
    return command, argument


async def _console_loop(console: VendorConsole, *, read_line: Callable[[str], str] = input) -> None:
    await console.load()
    print(_format_console(console))

    while True:
        try:
            line = read_line("> ")
        except EOFError:
            break
        command, argument = _parse_command(line)
        if command in {"q", "quit", "exit"}:
            break
        if command in {"", "help", "?"}:
            print(HELP_TEXT)
            continue

        if command == "n":
            moved = await console.next_page()
        elif command == "p":
            moved = await console.previous_page()
        elif command == "g":
            try:
                moved = await console.go_to_page(int(argument or ""))
            except ValueError:
                print("Usage: g <page>")
                continue
        elif command == "refresh":
            await console.refresh()
            moved = True
        elif command in {"f", "r", "d"}:
            if not argument:
                print(f"Usage: {command} <record>")
                continue
            record_id = _resolve_record_id(console, argument)
            if command == "f":
                outcome = await console.toggle_freeze(record_id)
            elif command == "r":
                outcome = await console.toggle_role(record_id)
            else:
                outcome = await console.delete(record_id)
            if outcome is ActionOutcome.MISSING:
                print(f"No record {argument} on this page.")
            elif outcome is ActionOutcome.DECLINED:
                print("Cancelled.")
            moved = outcome is ActionOutcome.APPLIED
        else:
            print(f"Unknown command {command!r}. Type 'help' for a list of commands.")
            continue

        if not moved and command in {"n", "p", "g"}:
            print("That page does not exist.")
            continue
        print(_format_console(console))


def _resolve_credentials(settings: ConsoleSettings, token: str | None, email: str | None) -> CredentialProvider:
    if token:
        return StaticTokenProvider(token)
    if email:
        password = getpass("Password: ")
        auth = AuthClient(settings.api_base_url, timeout=settings.request_timeout, verify=settings.verify)
        result = asyncio.run(auth.login(email, password))
        logger.info("Signed in as %s", result.user_name)
        return StaticTokenProvider(result.token)
    return EnvTokenProvider()


def _run_console(settings: ConsoleSettings, *, token: str | None, email: str | None) -> int:
    try:
        credentials = _resolve_credentials(settings, token, email)
    except AuthenticationFailed as exc:
        print(f"Sign-in failed: {exc}")
        return 1

    client = VendorClient(
        settings.api_base_url,
        credentials,
        timeout=settings.request_timeout,
        verify=settings.verify,
    )
    console = VendorConsole(client, confirmer=PromptConfirmer(), notifier=PrintNotifier())
    try:
        asyncio.run(_console_loop(console))
    except KeyboardInterrupt:
        print()
    return 0


def _serve(settings: ConsoleSettings, *, host: str, port: int) -> None:
    import uvicorn

    from vendoradmin.web import create_app

    if not settings.session_secret:
        raise SystemExit("Set VENDORADMIN_SESSION_SECRET before starting the web console.")

    app = create_app(settings)
    logger.info("Starting vendor console on http://%s:%s (API %s)", host, port, settings.api_base_url)
    uvicorn.run(app, host=host, port=port, proxy_headers=True)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    if args.command == "console":
        return _run_console(
            settings,
            token=args.token or os.getenv(TOKEN_ENV_VAR),
            email=args.email,
        )

    _serve(settings, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
