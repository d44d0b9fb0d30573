"""CLI for the AI custodial wallet - manage wallets and run the MCP server."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="custodial-wallet",
    help="Encrypted custodial wallets and coin data for AI agents.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_config_path: Optional[Path] = None


def _version_callback(value: bool):
    if value:
        from custodial_wallet import __version__
        console.print(f"custodial-wallet {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    """Log to stderr so stdout stays free for the stdio transport."""
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=False)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML config file",
        envvar="CUSTODIAL_WALLET_CONFIG",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Encrypted custodial wallets and coin data for AI agents."""
    global _config_path
    _config_path = config
    _setup_logging(verbose)


def _run(coro):
    """Run an async function synchronously."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            import concurrent.futures
            with concurrent.futures.ThreadPoolExecutor() as pool:
                return pool.submit(asyncio.run, coro).result()
        return loop.run_until_complete(coro)
    except RuntimeError:
        return asyncio.run(coro)


def _runtime():
    from custodial_wallet.config import load_config
    from custodial_wallet.runtime import WalletRuntime

    import yaml

    try:
        config = load_config(_config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)
    runtime = WalletRuntime(config)
    runtime.install()
    return runtime


def _invoke(name: str, **arguments: Any) -> dict:
    """Call a registered action and exit on an error status."""
    from custodial_wallet.tools.registry import ToolRegistry
    import custodial_wallet.tools  # noqa: F401

    _runtime()
    result = _run(ToolRegistry.get().call(name, arguments))
    if result.get("status") != "success":
        console.print(f"[red]{result.get('message', 'Unknown error')}[/red]")
        raise typer.Exit(1)
    return result


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


# ------------------------------------------------------------------
# Top-level commands
# ------------------------------------------------------------------


@app.command("generate-secret")
def generate_secret_cmd():
    """Generate a new 32-byte hex secret for the SECRET variable."""
    from custodial_wallet.wallet.keys import generate_secret

    result = generate_secret()
    console.print(Panel(
        f"[cyan]{result['secret']}[/cyan]\n\n"
        f"[dim]Set it as SECRET in your environment or .env file.\n"
        f"Losing it makes every stored wallet unreadable.[/dim]",
        title="Store Secret",
    ))


@app.command()
def gas():
    """Show current gas fees on the configured chain."""
    result = _invoke("check_gas")

    table = Table(title="Gas Fees")
    table.add_column("Field", style="cyan")
    table.add_column("Wei", justify="right")
    table.add_column("Gwei", justify="right")
    for name in ("maxFeePerGas", "maxPriorityFeePerGas"):
        table.add_row(name, result[name], result[f"{name}Gwei"])
    console.print(table)


@app.command()
def tools():
    """List the actions exposed to agents."""
    from custodial_wallet.tools.registry import ToolRegistry
    import custodial_wallet.tools  # noqa: F401

    table = Table(title="Available Actions")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Aliases", style="dim")
    for t in ToolRegistry.get().get_tools():
        table.add_row(t.name, t.description, ", ".join(t.similes))
    console.print(table)


@app.command()
def serve():
    """Run the MCP server on stdin/stdout."""
    from custodial_wallet.server import run_stdio

    runtime = _runtime()
    try:
        asyncio.run(run_stdio(runtime))
    except KeyboardInterrupt:
        err_console.print("[yellow]Server stopped.[/yellow]")


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage custodial wallets in the encrypted store.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("create")
def wallet_create():
    """Generate a new wallet and store its key encrypted."""
    wallet = _invoke("create_wallet")["wallet"]
    console.print(Panel(
        f"[bold green]Wallet created![/bold green]\n\n"
        f"Id: {wallet['id']}\n"
        f"Address: [cyan]{wallet['publicKey']}[/cyan]\n\n"
        f"[dim]The private key is kept in the encrypted store.[/dim]",
        title="Custodial Wallet",
    ))


@wallet_app.command("list")
def wallet_list():
    """List stored wallets (id and address)."""
    wallets = _invoke("list_wallets")["wallets"]
    if not wallets:
        console.print("[yellow]No wallets yet.[/yellow] Run 'custodial-wallet wallet create' first.")
        return

    table = Table(title="Wallets")
    table.add_column("Id", style="dim")
    table.add_column("Address", style="cyan")
    for w in wallets:
        table.add_row(w["id"], w["publicKey"])
    console.print(table)


@wallet_app.command("send")
def wallet_send(
    amount: str = typer.Argument(help="Amount of ETH to send (e.g. 0.01)"),
    sender: str = typer.Option(..., "--from", "-f", help="Managed sender address (0x...)"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient address (0x...)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Send ETH from a managed wallet."""
    console.print(f"\n[bold]Send {amount} ETH[/bold]")
    console.print(f"  From: {sender}")
    console.print(f"  To: {to}\n")
    if not yes:
        typer.confirm("Confirm this transaction?", abort=True)

    result = _invoke("transfer_funds", fromAddress=sender, toAddress=to, value=amount)
    console.print(Panel(
        f"[bold green]Transaction sent![/bold green]\n\n"
        f"Tx: [cyan]{result['transactionHash']}[/cyan]\n"
        f"Value: {result['valueSentEther']} ETH\n"
        f"Estimated fee: {result['estimatedFeeEther']} ETH",
        title="Transaction Sent",
    ))


# ------------------------------------------------------------------
# coin sub-commands
# ------------------------------------------------------------------

coin_app = typer.Typer(
    name="coin",
    help="Query coin metadata and balances.",
    no_args_is_help=True,
)
app.add_typer(coin_app, name="coin")


@coin_app.command("info")
def coin_info(address: str = typer.Argument(help="Coin contract address (0x...)")):
    """Show metadata for a coin."""
    result = _invoke("get_coin", address=address)
    result.pop("status", None)
    _print_json(result)


@coin_app.command("balances")
def coin_balances(
    identifier: str = typer.Argument(help="Wallet address or profile handle"),
    count: int = typer.Option(20, "--count", "-n", help="Items per page"),
    after: Optional[str] = typer.Option(None, "--after", help="Pagination cursor"),
):
    """Show coin balances for an address or profile."""
    result = _invoke("get_coin_balance", identifier=identifier, count=count, after=after)

    table = Table(title=f"Coin Balances ({result.get('totalBalances', 0)} total)")
    table.add_column("Coin", style="cyan")
    table.add_column("Symbol")
    table.add_column("Balance", justify="right")
    for node in result.get("balances", []):
        coin = node.get("coin") or {}
        table.add_row(coin.get("name", "?"), coin.get("symbol", ""), str(node.get("balance", "")))
    console.print(table)

    cursor = (result.get("pagination") or {}).get("endCursor")
    if cursor:
        console.print(f"[dim]Next page: --after {cursor}[/dim]")


@coin_app.command("last-traded")
def coin_last_traded(
    count: int = typer.Option(20, "--count", "-n", help="Items per page"),
    after: Optional[str] = typer.Option(None, "--after", help="Pagination cursor"),
):
    """Show the most recently traded coins."""
    result = _invoke("get_last_traded_coin", count=count, after=after)

    table = Table(title="Last Traded Coins")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Symbol")
    table.add_column("Address")
    for token in result.get("tokens", []):
        table.add_row(
            str(token.get("rank", "")),
            token.get("name") or "?",
            token.get("symbol") or "",
            token.get("address") or "",
        )
    console.print(table)

    cursor = (result.get("pagination") or {}).get("nextCursor")
    if cursor:
        console.print(f"[dim]Next page: --after {cursor}[/dim]")
