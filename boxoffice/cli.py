#!/usr/bin/env python3
"""
BOXOFFICE CLI

Command-line interface for the ticketing dev network.

Usage:
    boxoffice <command> [subcommand] [options]

Commands:
    accounts    List the deterministic dev-network accounts
    simulate    Deploy a ticket sale, fund buyers, buy and withdraw
    manifest    Deployment manifest tools
    config      Configuration management

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from boxoffice import __version__
from boxoffice.chain import DevChain, TransactionReverted
from boxoffice.config import ConfigError, get_config, get_config_manager
from boxoffice.deploy import ManifestError, deploy_ticketing, load_manifest
from boxoffice.hardening import ValidationErrors
from boxoffice.observability import (
    Layer,
    configure_logging,
    generate_correlation_id,
    get_logger,
    operation_timer,
    set_correlation_id,
)
from boxoffice.units import format_units

log = get_logger("cli", Layer.CLI)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return _format_text(data)


def _format_text(data: Any, indent: int = 0) -> str:
    pad = "  " * indent
    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, (dict, list)) and value:
                lines.append(f"{pad}{key}:")
                lines.append(_format_text(value, indent + 1))
            else:
                lines.append(f"{pad}{key}: {value}")
        return "\n".join(lines)
    if isinstance(data, list):
        return "\n".join(
            f"{pad}-\n{_format_text(item, indent + 1)}" if isinstance(item, (dict, list))
            else f"{pad}- {item}"
            for item in data
        )
    return f"{pad}{data}"


class BoxOfficeCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="boxoffice",
            description="Event ticketing on a local dev network",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"boxoffice {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="YAML configuration file",
        )
        self.parser.add_argument(
            "--log-level",
            choices=["debug", "info", "warning", "error", "critical"],
            help="Override observability.log_level",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all command groups."""
        accounts = self.subparsers.add_parser("accounts", help="List dev accounts")
        accounts.add_argument("--count", "-n", type=int, help="Number of accounts to show")

        simulate = self.subparsers.add_parser("simulate", help="Run a ticket sale end to end")
        simulate.add_argument("--manifest", "-m", help="Deployment manifest (YAML)")
        simulate.add_argument("--event", "-e", help="Event tag to buy (default: first manifest event)")
        simulate.add_argument("--token", "-t", default="dai", help="Payment token symbol (default: dai)")
        simulate.add_argument("--purchases", "-p", type=int, default=1, help="Number of buyers (default: 1)")
        simulate.add_argument("--virtual", action="store_true", help="Buy virtual instead of in-person tickets")
        simulate.add_argument("--withdraw", action="store_true", help="Sweep revenue to the treasury afterwards")

        manifest = self.subparsers.add_parser("manifest", help="Deployment manifest tools")
        manifest_sub = manifest.add_subparsers(dest="subcommand")
        validate = manifest_sub.add_parser("validate", help="Validate a manifest file")
        validate.add_argument("path", help="Manifest file")

        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")
        config_sub.add_parser("show", help="Show current configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        set_correlation_id(generate_correlation_id())
        try:
            self._configure(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except (ConfigError, ManifestError, ValidationErrors, TransactionReverted) as e:
            log.error("Command failed", error_code=type(e).__name__, command=parsed.command)
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 2

    def _configure(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        else:
            mgr.load_defaults()
        if args.log_level:
            mgr.set("observability.log_level", args.log_level)

        observability = mgr.config.observability
        configure_logging(observability.log_level.get(), observability.log_format.get())

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}".strip())

        return handler(args)

    # Account handlers
    def _handle_accounts(self, args: argparse.Namespace) -> Any:
        if args.count is not None and args.count < 0:
            raise CLIError("--count must be non-negative")

        chain = DevChain()
        signers = chain.accounts[: args.count] if args.count is not None else chain.accounts
        return {
            "chain_id": chain.chain_id,
            "accounts": [{"index": s.index, "address": s.address} for s in signers],
        }

    # Simulation handlers
    def _handle_simulate(self, args: argparse.Namespace) -> Any:
        if args.purchases < 0:
            raise CLIError("--purchases must be non-negative")

        chain = DevChain()
        if args.purchases > len(chain.accounts) - 1:
            raise CLIError(
                f"--purchases {args.purchases} exceeds the {len(chain.accounts) - 1} available buyer accounts"
            )

        manifest = load_manifest(args.manifest) if args.manifest else None
        deployment = deploy_ticketing(chain, manifest)
        event_tag = args.event or deployment.events[0]
        symbol = args.token.strip().lower()
        if symbol not in deployment.tokens:
            raise CLIError(f"Unknown payment token {args.token!r}; expected one of {sorted(deployment.tokens)}")

        token = deployment.token(symbol)
        decimals = token.decimals()
        price = deployment.ticket.quote(symbol, event_tag)

        purchases: List[Dict[str, Any]] = []
        with operation_timer(log, "purchase_tickets", event=event_tag, token=symbol):
            for buyer in chain.accounts[1: args.purchases + 1]:
                deployment.fund(buyer, symbol, format_units(price, decimals))
                try:
                    receipt = deployment.buy(buyer, symbol, event_tag, in_person=not args.virtual)
                except TransactionReverted as e:
                    log.revert("Purchase reverted", e.reason, buyer=buyer.address)
                    purchases.append({"buyer": buyer.address, "status": "reverted", "reason": e.reason})
                    continue
                purchases.append({
                    "buyer": buyer.address,
                    "status": "ok",
                    "token_id": receipt.return_value,
                    "tx_hash": receipt.tx_hash,
                })

        withdrawn: Dict[str, str] = {}
        if args.withdraw:
            receipt = deployment.ticket.withdraw_token()
            withdrawn = {
                sym: format_units(amount, deployment.token(sym).decimals())
                for sym, amount in receipt.return_value.items()
            }

        return {
            "deployment": deployment.summary(),
            "event": event_tag,
            "token": symbol,
            "price": format_units(price, decimals),
            "purchases": purchases,
            "tickets_sold": deployment.ticket.tickets_sold(event_tag),
            "withdrawn": withdrawn,
            "balances": {
                "ticket_contract": format_units(token.balance_of(deployment.ticket.address), decimals),
                "treasury": format_units(token.balance_of(deployment.treasury), decimals),
            },
            "block_number": chain.block_number,
        }

    # Manifest handlers
    def _handle_manifest_validate(self, args: argparse.Namespace) -> Any:
        manifest = load_manifest(args.path)
        return {"valid": True, "events": [event["tag"] for event in manifest["events"]]}

    # Config handlers
    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        return get_config().to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        errors = get_config_manager().validate()
        if errors:
            raise CLIError("; ".join(errors), exit_code=2)
        return {"valid": True, "errors": []}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        return get_config_manager().export_schema()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    return BoxOfficeCLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
