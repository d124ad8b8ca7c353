#!/usr/bin/env python3
"""
CLDX Treasury CLI

Drives a persisted treasury deployment:
- Deployment of CLDX, ECO and the vesting wallet
- Vesting grants, schedule listing and releases
- Pause control, eco wallet allowlist and swaps
- Treasury withdrawals

Amounts are given in whole tokens (decimals allowed) and converted to
18-decimal base units. Every command acts as ``--caller`` (msg.sender),
defaulting to the wallet owner. State is saved only after a command
succeeds.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.config import (
    LOG_FILE,
    LOG_LEVEL,
    NETWORK,
    STATE_DB_PATH,
    ConfigurationError,
    LedgerConfig,
)
from ..core.constants import DEFAULT_TREASURY_OWNER, SECONDS_PER_DAY, from_wei, to_wei
from ..core.exceptions import LedgerError
from ..core.logging_config import setup_logging
from ..treasury.deployment import Deployment, deploy_treasury
from ..treasury.state_store import load_deployment, save_deployment

logger = logging.getLogger(__name__)
console = Console()

SWAP_DIRECTIONS = ("cldx-to-eco", "eco-to-cldx")


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _parse_amount(value: str) -> int:
    try:
        return to_wei(value)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid token amount: {value!r}") from exc


def _load(ctx: click.Context) -> Deployment:
    deployment = load_deployment(ctx.obj["db_path"], time_provider=ctx.obj["time_provider"])
    if deployment is None:
        raise click.ClickException("No deployment found. Run `cldx deploy` first.")
    return deployment


def _save(ctx: click.Context, deployment: Deployment) -> None:
    save_deployment(ctx.obj["db_path"], deployment)


def _caller(deployment: Deployment, caller: Optional[str]) -> str:
    return caller or deployment.wallet.owner()


def _emit(ctx: click.Context, payload: dict[str, Any], title: str) -> None:
    if ctx.obj["json_output"]:
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(show_header=False, box=box.ROUNDED)
    for key, value in payload.items():
        table.add_row(f"[bold cyan]{key}", str(value))
    console.print(Panel(table, title=f"[bold green]{title}", border_style="green"))


@click.group()
@click.option(
    "--db",
    "db_path",
    default=str(STATE_DB_PATH),
    type=click.Path(dir_okay=False, path_type=Path),
    help="SQLite state database",
    show_default=True,
)
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option(
    "--timestamp",
    type=int,
    default=None,
    help="Evaluate the command at this unix time instead of the wall clock.",
)
@click.option("--verbose", is_flag=True, help="Log structured JSON to stderr")
@click.pass_context
def cli(ctx: click.Context, db_path: Path, json_output: bool, timestamp: Optional[int], verbose: bool):
    """
    Cloudax treasury vesting wallet CLI.

    Manage CLDX vesting grants, releases, CLDX/ECO swaps and treasury
    withdrawals against a locally persisted deployment.
    """
    ctx.ensure_object(dict)
    setup_logging(name="cldx", log_file=LOG_FILE, level=LOG_LEVEL, environment=NETWORK, enable_console=verbose)

    ctx.obj["db_path"] = db_path
    ctx.obj["json_output"] = json_output
    ctx.obj["time_provider"] = (lambda: timestamp) if timestamp is not None else None


@cli.command("deploy")
@click.option("--owner", default=DEFAULT_TREASURY_OWNER, show_default=True, help="Treasury owner")
@click.option("--supply", default="1000000000", show_default=True, help="CLDX minted to the owner")
@click.option("--eco-supply", default="1000000000", show_default=True, help="ECO minted to the owner")
@click.option("--fund", default="0", show_default=True, help="CLDX moved into the vesting wallet")
@click.option("--eco-reserve", default="0", show_default=True, help="ECO moved into the swap reserve")
@click.option("--no-trading", is_flag=True, help="Leave CLDX trading disabled")
@click.option("--force", is_flag=True, help="Replace an existing deployment")
@click.pass_context
def deploy(
    ctx: click.Context,
    owner: str,
    supply: str,
    eco_supply: str,
    fund: str,
    eco_reserve: str,
    no_trading: bool,
    force: bool,
):
    """Deploy CLDX, ECO and the treasury vesting wallet."""
    try:
        if not force and load_deployment(ctx.obj["db_path"]) is not None:
            raise click.ClickException("A deployment already exists. Use --force to replace it.")

        deployment = deploy_treasury(
            owner=owner,
            cldx_supply=_parse_amount(supply),
            eco_supply=_parse_amount(eco_supply),
            wallet_funding=_parse_amount(fund),
            eco_reserve=_parse_amount(eco_reserve),
            enable_trading=not no_trading,
            config=LedgerConfig.from_env(),
            time_provider=ctx.obj["time_provider"],
        )
        _save(ctx, deployment)
        _emit(
            ctx,
            {
                "wallet": deployment.wallet.address,
                "owner": deployment.wallet.owner(),
                "cldx": deployment.cldx.address,
                "eco": deployment.eco.address,
                "trading_enabled": deployment.cldx.is_trading_enabled(),
            },
            "Treasury Deployed",
        )
    except (LedgerError, ConfigurationError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("initialize")
@click.argument("beneficiary")
@click.argument("amount")
@click.option("--months", default=12, show_default=True, type=click.IntRange(min=1), help="Vesting months")
@click.option("--cliff-days", default=0, show_default=True, type=click.IntRange(min=0), help="Cliff before the first unit")
@click.option("--start", type=int, default=None, help="Grant start time (defaults to now)")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def initialize(
    ctx: click.Context,
    beneficiary: str,
    amount: str,
    months: int,
    cliff_days: int,
    start: Optional[int],
    caller: Optional[str],
):
    """
    Create a vesting grant of AMOUNT tokens for BENEFICIARY.

    Example:
        cldx initialize 0xabc... 100 --months 12
    """
    deployment = _load(ctx)
    try:
        units = deployment.wallet.initialize(
            _caller(deployment, caller),
            months,
            beneficiary,
            _parse_amount(amount),
            start_time=start,
            cliff_duration=cliff_days * SECONDS_PER_DAY,
        )
        _save(ctx, deployment)
        _emit(
            ctx,
            {
                "beneficiary": beneficiary.lower(),
                "schedules_created": units,
                "schedules_total": deployment.wallet.get_vesting_schedules_count(),
                "allocation": str(_parse_amount(amount)),
            },
            "Vesting Grant Created",
        )
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("schedules")
@click.option("--beneficiary", help="Only show schedules of this beneficiary")
@click.option("--limit", default=20, show_default=True, help="Rows to show in table mode")
@click.pass_context
def schedules(ctx: click.Context, beneficiary: Optional[str], limit: int):
    """List vesting schedules."""
    deployment = _load(ctx)
    wallet = deployment.wallet
    try:
        now = wallet.get_current_time()
        rows = []
        for index in range(wallet.get_vesting_schedules_count()):
            schedule = wallet.get_vesting_schedule(index)
            if beneficiary and schedule.beneficiary != beneficiary.lower():
                continue
            rows.append(
                {
                    "index": index,
                    "beneficiary": schedule.beneficiary,
                    "total_allocation": str(schedule.total_allocation),
                    "released": str(schedule.released),
                    "releasable": str(wallet.compute_schedule_releasable_amount(index)),
                    "start_time": schedule.start_time,
                    "end_time": schedule.end_time,
                    "status": schedule.status(now).value,
                }
            )

        if ctx.obj["json_output"]:
            click.echo(json.dumps({"count": len(rows), "schedules": rows}, indent=2))
            return

        table = Table(title=f"Vesting Schedules ({len(rows)})", box=box.ROUNDED)
        table.add_column("#", justify="right")
        table.add_column("Beneficiary", style="cyan")
        table.add_column("Allocation", justify="right")
        table.add_column("Released", justify="right")
        table.add_column("Releasable", justify="right", style="green")
        table.add_column("Status")
        for row in rows[:limit]:
            table.add_row(
                str(row["index"]),
                row["beneficiary"][:12] + "...",
                from_wei(int(row["total_allocation"])),
                from_wei(int(row["released"])),
                from_wei(int(row["releasable"])),
                row["status"],
            )
        console.print(table)
        if len(rows) > limit:
            console.print(f"[dim]... {len(rows) - limit} more[/]")
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("release")
@click.option("--beneficiary", help="Release for this beneficiary")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def release(ctx: click.Context, beneficiary: Optional[str], caller: Optional[str]):
    """Release vested CLDX."""
    deployment = _load(ctx)
    try:
        released = deployment.wallet.release(_caller(deployment, caller), beneficiary)
        _save(ctx, deployment)
        _emit(ctx, {"released": str(released), "tokens": from_wei(released)}, "Tokens Released")
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("pause")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def pause(ctx: click.Context, caller: Optional[str]):
    """Pause releases."""
    deployment = _load(ctx)
    try:
        deployment.wallet.pause(_caller(deployment, caller))
        _save(ctx, deployment)
        _emit(ctx, {"paused": deployment.wallet.paused()}, "Releases Paused")
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("unpause")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def unpause(ctx: click.Context, caller: Optional[str]):
    """Resume releases."""
    deployment = _load(ctx)
    try:
        deployment.wallet.unpause(_caller(deployment, caller))
        _save(ctx, deployment)
        _emit(ctx, {"paused": deployment.wallet.paused()}, "Releases Resumed")
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("approve-wallet")
@click.argument("wallet_address")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def approve_wallet(ctx: click.Context, wallet_address: str, caller: Optional[str]):
    """Allow WALLET_ADDRESS to swap."""
    deployment = _load(ctx)
    try:
        marker = deployment.wallet.aprove_eco_wallet(_caller(deployment, caller), wallet_address)
        _save(ctx, deployment)
        _emit(ctx, {"wallet": wallet_address.lower(), "marker": marker}, "Eco Wallet Approved")
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("remove-wallet")
@click.argument("wallet_address")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def remove_wallet(ctx: click.Context, wallet_address: str, caller: Optional[str]):
    """Remove WALLET_ADDRESS from the swap allowlist."""
    deployment = _load(ctx)
    try:
        deployment.wallet.remove_eco_wallet(_caller(deployment, caller), wallet_address)
        _save(ctx, deployment)
        _emit(
            ctx,
            {"wallet": wallet_address.lower(), "marker": deployment.wallet.eco_approval_wallet(wallet_address)},
            "Eco Wallet Removed",
        )
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("swap")
@click.argument("direction", type=click.Choice(SWAP_DIRECTIONS))
@click.argument("amount")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def swap(ctx: click.Context, direction: str, amount: str, caller: Optional[str]):
    """
    Swap AMOUNT tokens in DIRECTION.

    The caller's allowance to the wallet on the sold token is set to AMOUNT
    before settling.
    """
    deployment = _load(ctx)
    wallet = deployment.wallet
    try:
        actor = _caller(deployment, caller)
        value = _parse_amount(amount)
        if direction == "cldx-to-eco":
            deployment.cldx.approve(actor, wallet.address, value)
            paid = wallet.swap_cldx_to_eco(actor, value)
        else:
            deployment.eco.approve(actor, wallet.address, value)
            paid = wallet.swap_eco_to_cldx(actor, value)
        _save(ctx, deployment)
        _emit(
            ctx,
            {"direction": direction, "amount_in": str(value), "amount_out": str(paid)},
            "Swap Settled",
        )
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("withdrawable")
@click.pass_context
def withdrawable(ctx: click.Context):
    """Show CLDX the owner can withdraw."""
    deployment = _load(ctx)
    amount = deployment.wallet.get_withdrawable_amount()
    _emit(
        ctx,
        {
            "wallet": deployment.wallet.address,
            "balance": str(deployment.cldx.balance_of(deployment.wallet.address)),
            "withdrawable": str(amount),
            "tokens": from_wei(amount),
        },
        "Withdrawable CLDX",
    )


@cli.command("withdraw")
@click.argument("amount")
@click.option("--caller", help="Acting address (defaults to the owner)")
@click.pass_context
def withdraw(ctx: click.Context, amount: str, caller: Optional[str]):
    """Withdraw unreserved CLDX to the owner."""
    deployment = _load(ctx)
    try:
        withdrawn = deployment.wallet.withdraw(_caller(deployment, caller), _parse_amount(amount))
        _save(ctx, deployment)
        _emit(
            ctx,
            {"withdrawn": str(withdrawn), "owner_balance": str(deployment.cldx.balance_of(deployment.wallet.owner()))},
            "Treasury Withdrawal",
        )
    except (LedgerError, ValueError) as exc:
        _handle_cli_error(exc)


@cli.command("balance")
@click.argument("address")
@click.pass_context
def balance(ctx: click.Context, address: str):
    """Show CLDX and ECO balances of ADDRESS."""
    deployment = _load(ctx)
    _emit(
        ctx,
        {
            "address": address.lower(),
            "cldx": str(deployment.cldx.balance_of(address)),
            "eco": str(deployment.eco.balance_of(address)),
        },
        "Balances",
    )


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
