"""
hostpanel.cli - Command-Line Interface

Read-mostly commands against a configured hosting panel. Connections come
from HOSTPANEL_* environment variables (see hostpanel.settings).

Usage:
    python -m hostpanel.cli providers
    python -m hostpanel.cli --provider cpanel account list
    python -m hostpanel.cli --provider cpanel account info exuser
    python -m hostpanel.cli --provider plesk account suspend 12
    python -m hostpanel.cli --provider directadmin mail list example.com
    python -m hostpanel.cli --provider ispconfig database info 7
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from hostpanel.panels.base import HostingPanel
from hostpanel.panels.errors import PanelConfigError
from hostpanel.panels.factory import (
    UnknownPanelProviderError,
    create_panel_from_settings,
    list_supported_providers,
)
from hostpanel.panels.types import PanelResult
from hostpanel.settings import HostPanelSettings, get_settings

logger = logging.getLogger(__name__)

PanelCall = Callable[[HostingPanel, argparse.Namespace], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _account_list(panel: HostingPanel, _args: argparse.Namespace) -> Any:
    return await panel.list_web_hosting_accounts()


async def _account_info(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.get_web_hosting_account_info(args.id)


async def _account_suspend(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.suspend_web_hosting_account(args.id)


async def _account_unsuspend(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.unsuspend_web_hosting_account(args.id)


async def _account_delete(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.delete_web_hosting_account(args.id)


async def _mail_list(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.list_mail_accounts(args.domain)


async def _mail_info(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.get_mail_account_info(args.id)


async def _database_list(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.list_databases(args.domain)


async def _database_info(panel: HostingPanel, args: argparse.Namespace) -> Any:
    return await panel.get_database_info(args.id)


def _to_json(outcome: Any) -> str:
    if isinstance(outcome, list):
        payload: Any = [item.model_dump(mode="json") for item in outcome]
    else:
        payload = outcome.model_dump(mode="json")
    return json.dumps(payload, indent=2)


async def run_panel_command(
    args: argparse.Namespace, settings: HostPanelSettings | None = None
) -> int:
    """Run a panel command and print its outcome as JSON.

    Returns:
        Process exit code: 1 when the adapter cannot be built or a
        single-result call fails, otherwise 0.
    """
    settings = settings or get_settings()
    try:
        panel = create_panel_from_settings(settings, args.provider)
    except (PanelConfigError, UnknownPanelProviderError) as e:
        print(json.dumps({"success": False, "message": str(e)}, indent=2), file=sys.stderr)
        return 1

    call: PanelCall = args.func
    async with panel:
        outcome = await call(panel, args)

    print(_to_json(outcome))
    if isinstance(outcome, PanelResult) and not outcome.success:
        logger.warning(
            f"{args.resource} {args.action} failed: {outcome.message}",
            extra={"provider": panel.PROVIDER, "code": outcome.error_code},
        )
        return 1
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="hostpanel",
        description="hostpanel - Hosting Control Panel Provisioning",
    )
    parser.add_argument(
        "--provider", help="Panel provider (defaults to HOSTPANEL_PROVIDER)"
    )
    parser.add_argument(
        "--log-level", help="Logging level (defaults to HOSTPANEL_LOG_LEVEL)"
    )
    subparsers = parser.add_subparsers(dest="resource", help="Available commands")

    subparsers.add_parser("providers", help="List supported providers")

    # ── account command group ──
    account_parser = subparsers.add_parser("account", help="Web hosting accounts")
    account_sub = account_parser.add_subparsers(dest="action", help="Account actions")

    list_p = account_sub.add_parser("list", help="List hosting accounts")
    list_p.set_defaults(func=_account_list)

    for name, func, help_text in (
        ("info", _account_info, "Show a hosting account"),
        ("suspend", _account_suspend, "Suspend a hosting account"),
        ("unsuspend", _account_unsuspend, "Reactivate a hosting account"),
        ("delete", _account_delete, "Delete a hosting account"),
    ):
        action_p = account_sub.add_parser(name, help=help_text)
        action_p.add_argument("id", help="Account id")
        action_p.set_defaults(func=func)

    # ── mail command group ──
    mail_parser = subparsers.add_parser("mail", help="Mail accounts")
    mail_sub = mail_parser.add_subparsers(dest="action", help="Mail actions")

    mail_list_p = mail_sub.add_parser("list", help="List mailboxes of a domain")
    mail_list_p.add_argument("domain", help="Domain name")
    mail_list_p.set_defaults(func=_mail_list)

    mail_info_p = mail_sub.add_parser("info", help="Show a mailbox")
    mail_info_p.add_argument("id", help="Mail account id")
    mail_info_p.set_defaults(func=_mail_info)

    # ── database command group ──
    db_parser = subparsers.add_parser("database", help="Databases")
    db_sub = db_parser.add_subparsers(dest="action", help="Database actions")

    db_list_p = db_sub.add_parser("list", help="List databases of a domain")
    db_list_p.add_argument("domain", help="Domain name")
    db_list_p.set_defaults(func=_database_list)

    db_info_p = db_sub.add_parser("info", help="Show a database")
    db_info_p.add_argument("id", help="Database id")
    db_info_p.set_defaults(func=_database_info)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.resource == "providers":
        for name in list_supported_providers():
            print(name)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    exit_code = asyncio.run(run_panel_command(args, settings))
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
