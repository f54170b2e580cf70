"""CLI commands for jpyc-relay.

Each meta-transaction command signs with ``USER_PRIVATE_KEY`` (the token
holder) and submits with ``RELAYER_PRIVATE_KEY`` (who pays gas), exercising
the same adapter the checkout server uses.  ``serve`` runs that server.
"""

import asyncio
import os
import time
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from web3 import Web3

from jpyc_relay import __version__
from jpyc_relay.adapters.evm.adapter import EVMAdapter
from jpyc_relay.adapters.evm.constants import amount_to_value, get_chain_config, value_to_amount
from jpyc_relay.adapters.evm.schemas import EVMTransactionConfirmation
from jpyc_relay.adapters.evm.signatures import sign_erc3009_authorization, sign_permit
from jpyc_relay.config import RelaySettings
from jpyc_relay.engine.exceptions import ConfigurationError
from jpyc_relay.utils import logger, setup_logger

app = typer.Typer(
    name="jpyc-relay",
    help=f"jpyc-relay {__version__} - JPYC EIP-3009 / EIP-2612 relay and checkout server",
    no_args_is_help=True,
)

console = Console()

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _load_settings() -> RelaySettings:
    try:
        return RelaySettings.from_env()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e


def _build_adapter(settings: RelaySettings) -> EVMAdapter:
    return EVMAdapter(settings.chain, settings.relayer_private_key)


def _run_with_adapter(settings: RelaySettings, operation: Callable[[EVMAdapter], Awaitable[T]]) -> T:
    """Open an adapter, run one async operation, always close the adapter."""
    async def _run() -> T:
        async with _build_adapter(settings) as adapter:
            return await operation(adapter)

    return asyncio.run(_run())


def _require_user_key(settings: RelaySettings) -> str:
    try:
        return settings.require_user_key()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e


def _checksum(address: str, option: str) -> str:
    if not Web3.is_address(address):
        raise typer.BadParameter(f"{address!r} is not a valid address", param_hint=option)
    return Web3.to_checksum_address(address)


def _scaled(amount: str, settings: RelaySettings) -> int:
    try:
        return amount_to_value(amount=amount, decimals=settings.chain.decimals)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--amount") from e


def _explorer_link(settings: RelaySettings, tx_hash: str) -> Optional[str]:
    try:
        return f"{get_chain_config(settings.chain.chain_id).explorer_url}/tx/{tx_hash}"
    except ValueError:
        return None


def _report(settings: RelaySettings, title: str, confirmation: EVMTransactionConfirmation) -> None:
    """Print a confirmation; exit 1 unless it succeeded."""
    logger.debug(f"Confirmation: {confirmation.to_canonical_json()}")
    table = Table(title=title)
    table.add_column("Field", style="dim")
    table.add_column("Value", style="cyan")
    table.add_row("status", confirmation.status.value)
    if confirmation.tx_hash:
        table.add_row("tx_hash", confirmation.tx_hash)
    if confirmation.block_number is not None:
        table.add_row("block", str(confirmation.block_number))
    if confirmation.gas_used is not None:
        table.add_row("gas_used", str(confirmation.gas_used))
    if confirmation.error_message:
        table.add_row("error", confirmation.error_message)
    console.print(table)

    if not confirmation.is_success():
        console.print(f"[red]✗[/red] {confirmation.get_confirmation_status()}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {confirmation.get_confirmation_status()}")
    link = _explorer_link(settings, confirmation.tx_hash)
    if link:
        console.print(f"[dim]{link}[/dim]")


def _submit_authorization(settings: RelaySettings, recipient: str, value: int, authorization_type: str) -> None:
    user_key = _require_user_key(settings)
    authorization = sign_erc3009_authorization(
        private_key=user_key,
        token=settings.chain.token_address,
        chain_id=settings.chain.chain_id,
        authorizer=settings.user_address,
        recipient=recipient,
        value=value,
        valid_after=0,
        valid_before=int(time.time()) + settings.authorization_ttl,
        authorization_type=authorization_type,
        domain_name=settings.chain.token_name,
        domain_version=settings.chain.token_version,
    )
    console.print(
        f"Signed {authorization.primary_type}: from [cyan]{authorization.authorizer}[/cyan] "
        f"to [cyan]{authorization.recipient}[/cyan] value {value} nonce [dim]{authorization.nonce}[/dim]"
    )

    async def _send(adapter: EVMAdapter) -> EVMTransactionConfirmation:
        if authorization_type == "receive":
            return await adapter.receive_with_authorization(authorization)
        return await adapter.transfer_with_authorization(authorization)

    confirmation = _run_with_adapter(settings, _send)
    _report(settings, authorization.primary_type, confirmation)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default: LOG_LEVEL or INFO)"),
) -> None:
    """JPYC meta-transaction relay."""
    setup_logger(log_level or os.getenv("LOG_LEVEL") or "INFO")


@app.command("transfer-with-authorization")
def transfer_with_authorization(
    to: str = typer.Option(..., "--to", help="Recipient address"),
    amount: str = typer.Option("100", "--amount", help="Amount in JPYC"),
) -> None:
    """Sign an ERC-3009 TransferWithAuthorization as the user; the relayer submits it."""
    settings = _load_settings()
    _submit_authorization(settings, _checksum(to, "--to"), _scaled(amount, settings), "transfer")


@app.command("receive-with-authorization")
def receive_with_authorization(
    amount: str = typer.Option("100", "--amount", help="Amount in JPYC"),
) -> None:
    """Sign an ERC-3009 ReceiveWithAuthorization paying the relayer; the relayer submits it."""
    settings = _load_settings()
    _submit_authorization(settings, settings.relayer_address, _scaled(amount, settings), "receive")


@app.command("permit")
def permit(
    spender: str = typer.Option(..., "--spender", help="Address granted the allowance"),
    amount: str = typer.Option("100", "--amount", help="Allowance in JPYC"),
) -> None:
    """Sign an EIP-2612 permit as the user (nonce read on-chain); the relayer submits it."""
    settings = _load_settings()
    user_key = _require_user_key(settings)
    spender_address = _checksum(spender, "--spender")
    value = _scaled(amount, settings)

    async def _send(adapter: EVMAdapter) -> EVMTransactionConfirmation:
        nonce = await adapter.get_permit_nonce(settings.user_address)
        signed = sign_permit(
            private_key=user_key,
            token=settings.chain.token_address,
            chain_id=settings.chain.chain_id,
            owner=settings.user_address,
            spender=spender_address,
            value=value,
            nonce=nonce,
            deadline=int(time.time()) + settings.authorization_ttl,
            domain_name=settings.chain.token_name,
            domain_version=settings.chain.token_version,
        )
        console.print(
            f"Signed Permit: owner [cyan]{signed.owner}[/cyan] spender [cyan]{signed.spender}[/cyan] "
            f"value {value} nonce {nonce}"
        )
        return await adapter.permit(signed)

    try:
        confirmation = _run_with_adapter(settings, _send)
    except Exception as e:
        logger.exception("Permit failed")
        console.print(f"[red]Permit failed:[/red] {e}")
        raise typer.Exit(1) from e
    _report(settings, "Permit", confirmation)


@app.command("transfer-from")
def transfer_from(
    sender: str = typer.Option(..., "--from", help="Token owner that granted the allowance"),
    to: str = typer.Option(..., "--to", help="Recipient address"),
    amount: str = typer.Option("100", "--amount", help="Amount in JPYC"),
) -> None:
    """Call transferFrom as the relayer, spending an allowance granted by permit."""
    settings = _load_settings()
    sender_address = _checksum(sender, "--from")
    recipient = _checksum(to, "--to")
    value = _scaled(amount, settings)

    confirmation = _run_with_adapter(
        settings, lambda adapter: adapter.transfer_from(sender_address, recipient, value)
    )
    _report(settings, "transferFrom", confirmation)


@app.command("balance")
def balance(
    address: Optional[str] = typer.Option(None, "--address", help="Address (default: user, else relayer)"),
) -> None:
    """Show the JPYC balance of an address."""
    settings = _load_settings()
    target = _checksum(address, "--address") if address else (settings.user_address or settings.relayer_address)

    try:
        value = _run_with_adapter(settings, lambda adapter: adapter.get_balance(target))
    except Exception as e:
        console.print(f"[red]Balance lookup failed:[/red] {e}")
        raise typer.Exit(1) from e

    amount = value_to_amount(value=value, decimals=settings.chain.decimals)
    console.print(f"[cyan]{target}[/cyan]: {amount:f} JPYC [dim]({value})[/dim]")


@app.command("info")
def info() -> None:
    """Show token name, total supply and the configured accounts."""
    settings = _load_settings()

    async def _read(adapter: EVMAdapter):
        return await adapter.get_token_name(), await adapter.get_total_supply()

    try:
        name, total_supply = _run_with_adapter(settings, _read)
    except Exception as e:
        console.print(f"[red]Token lookup failed:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title="JPYC")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="cyan")
    table.add_row("name", name)
    table.add_row("total_supply", f"{value_to_amount(value=total_supply, decimals=settings.chain.decimals):f}")
    table.add_row("token", settings.chain.token_address)
    table.add_row("chain_id", str(settings.chain.chain_id))
    table.add_row("relayer", settings.relayer_address)
    table.add_row("user", settings.user_address or "-")
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Run the checkout relay HTTP server."""
    import uvicorn

    from jpyc_relay.servers.apps import CheckoutServer

    settings = _load_settings()
    server = CheckoutServer(settings)
    console.print(f"Checkout relay on [cyan]http://{host}:{port}[/cyan] (relayer {settings.relayer_address})")
    uvicorn.run(server, host=host, port=port, log_level=settings.log_level.lower())
