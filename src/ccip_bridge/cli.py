"""ccip-bridge command line.

    # Bridge token 42 from Fuji to Arbitrum Sepolia
    ccip-bridge transfer --token-id 42 --from avalanche-fuji --to arbitrum-sepolia \\
        --receiver 0xReceiver

    # Inspect recorded transfers
    ccip-bridge show <transfer-id>
    ccip-bridge list --status failed
    ccip-bridge export ./data/nft_transfers.json
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError as SettingsValidationError
from rich.console import Console
from rich.table import Table

from ccip_bridge.audit import AuditLog
from ccip_bridge.config.settings import AppConfig, ChainId
from ccip_bridge.datastore.client import Datastore
from ccip_bridge.errors.bridge_errors import BridgeError, ValidationError
from ccip_bridge.errors.store_errors import NotFoundError
from ccip_bridge.ledger.evm import EVMBridgeClient
from ccip_bridge.models.base import Base
from ccip_bridge.models.transfer import TransferRecord, TransferStatus
from ccip_bridge.orchestrator import (
    EXIT_FAILED,
    EXIT_INVALID_REQUEST,
    TransferOrchestrator,
    TransferOutcome,
    TransferRequest,
)
from ccip_bridge.store.transfer_store import TransferStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ccip_bridge.ledger.client import LedgerSubmissionClient

app = typer.Typer(
    name="ccip-bridge",
    help="Bridge NFTs between chains over Chainlink CCIP and track every transfer.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def configure_logging(debug: bool) -> None:
    """Configure the root logger once for the CLI process."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def build_ledger_client(config: AppConfig) -> LedgerSubmissionClient:
    """Ledger client used by ``transfer``."""
    return EVMBridgeClient(config)


async def _with_store(config: AppConfig, fn: Callable[[TransferStore], Awaitable[Any]]) -> Any:
    datastore = Datastore(config.db)
    await datastore.open(base=Base)
    try:
        return await fn(TransferStore(datastore))
    finally:
        await datastore.close()


async def _run_transfer(config: AppConfig, request: TransferRequest) -> TransferOutcome:
    client = build_ledger_client(config)
    audit = AuditLog(config.audit.log_path)

    async def run(store: TransferStore) -> TransferOutcome:
        orchestrator = TransferOrchestrator(
            store,
            client,
            audit,
            confirmation_timeout=config.ledger.confirmation_timeout,
        )
        return await orchestrator.run(request)

    try:
        return await _with_store(config, run)
    finally:
        close = getattr(client, "close", None)
        if close is not None:
            await close()


def _print_record(record: TransferRecord) -> None:
    console.print_json(data=record.to_dict())


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML config file (env vars still win)."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Verbose logging.")] = False,
) -> None:
    """Load configuration and logging for all commands."""
    try:
        config = AppConfig.from_yaml(config_path) if config_path else AppConfig()
    except (SettingsValidationError, OSError, ValueError) as exc:
        console.print(f"[bold red]Failed to load configuration: {exc}[/bold red]")
        raise typer.Exit(code=EXIT_FAILED) from exc
    if debug:
        config.debug = True
    configure_logging(config.debug)
    ctx.obj = config


@app.command("transfer")
def transfer(
    ctx: typer.Context,
    asset_id: Annotated[
        str, typer.Option("--token-id", "--asset-id", help="Token ID of the NFT to bridge.")
    ],
    source: Annotated[ChainId, typer.Option("--from", help="Source chain.")],
    destination: Annotated[ChainId, typer.Option("--to", help="Destination chain.")],
    receiver: Annotated[
        str, typer.Option("--receiver", help="Address to receive the NFT on the destination chain.")
    ],
) -> None:
    """Send an NFT to another chain and record the transfer."""
    config: AppConfig = ctx.obj
    request = TransferRequest(
        asset_id=asset_id,
        source_chain=source,
        destination_chain=destination,
        receiver=receiver,
    )
    try:
        request.validate()
    except ValidationError as exc:
        console.print(f"[bold red]Invalid transfer request: {exc.message}[/bold red]")
        raise typer.Exit(code=EXIT_INVALID_REQUEST) from exc

    try:
        outcome = asyncio.run(_run_transfer(config, request))
    except BridgeError as exc:
        console.print(f"[bold red]Transfer aborted [{exc.code}]: {exc.message}[/bold red]")
        raise typer.Exit(code=EXIT_FAILED) from exc

    _print_record(outcome.record)
    if outcome.error is not None:
        console.print(f"[bold red]Transfer failed: {outcome.error}[/bold red]")
        if outcome.record.outcome_unknown:
            console.print(
                "[yellow]The source-chain send may still be included; "
                "check the transaction before retrying.[/yellow]"
            )
    else:
        console.print("[green]Transfer completed.[/green]")
    raise typer.Exit(code=outcome.exit_code)


@app.command("show")
def show(
    ctx: typer.Context,
    transfer_id: Annotated[str, typer.Argument(help="Transfer ID.")],
) -> None:
    """Print one transfer record as JSON."""
    config: AppConfig = ctx.obj
    try:
        record = asyncio.run(_with_store(config, lambda store: store.get(transfer_id)))
    except NotFoundError as exc:
        console.print(f"[bold red]{exc.message}[/bold red]")
        raise typer.Exit(code=EXIT_FAILED) from exc
    _print_record(record)


@app.command("list")
def list_transfers(
    ctx: typer.Context,
    status: Annotated[
        TransferStatus | None, typer.Option("--status", "-s", help="Only this status.")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Maximum rows.")] = 20,
) -> None:
    """List recorded transfers, newest first."""
    config: AppConfig = ctx.obj
    records: list[TransferRecord] = asyncio.run(
        _with_store(config, lambda store: store.list_transfers(status=status, limit=limit))
    )
    if not records:
        console.print("[dim]No transfers recorded.[/dim]")
        return

    table = Table(title="Transfers")
    table.add_column("Transfer ID")
    table.add_column("Token")
    table.add_column("Route")
    table.add_column("Status")
    table.add_column("Source tx")
    table.add_column("Created")
    for record in records:
        table.add_row(
            record.transfer_id,
            record.asset_id,
            f"{record.source_chain} → {record.destination_chain}",
            record.status,
            record.source_tx_hash or "-",
            record.created_at.isoformat(timespec="seconds"),
        )
    console.print(table)


@app.command("export")
def export(
    ctx: typer.Context,
    output: Annotated[
        Path, typer.Argument(help="Destination JSON file.")
    ] = Path("./data/nft_transfers.json"),
) -> None:
    """Write every transfer record to a JSON file."""
    config: AppConfig = ctx.obj
    snapshot = asyncio.run(_with_store(config, lambda store: store.export_snapshot()))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
    console.print(f"Exported {len(snapshot)} transfers to {output}")


if __name__ == "__main__":
    app()
