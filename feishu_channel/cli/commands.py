"""CLI commands for feishu-channel."""

import asyncio
import importlib
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from feishu_channel import __logo__, __version__

app = typer.Typer(
    name="feishu-channel",
    help=f"{__logo__} feishu-channel - Feishu/Lark channel adapter",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} feishu-channel v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """feishu-channel - Feishu/Lark channel adapter."""
    pass


def load_dispatcher(ref: str):
    """Import a reply dispatcher from a ``module:attribute`` string."""
    module_name, _, attr = ref.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"expected 'module:attribute', got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"cannot import {module_name!r}: {exc}") from exc
    target = getattr(module, attr, None)
    if target is None:
        raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}")
    return target


# ============================================================================
# Gateway
# ============================================================================


@app.command()
def gateway(
    dispatcher: str = typer.Option(
        "feishu_channel.runtime.reply:echo_dispatcher",
        "--dispatcher",
        "-d",
        help="Reply dispatcher as module:attribute",
    ),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Start every enabled Feishu account and dispatch replies."""
    from loguru import logger

    from feishu_channel.channels.manager import ChannelManager
    from feishu_channel.config.loader import load_config
    from feishu_channel.runtime.reply import FeishuRuntime, set_feishu_runtime
    from feishu_channel.settings import get_settings
    from feishu_channel.utils.log import configure_logging

    configure_logging(get_settings().log_level, verbose)

    config = load_config(config_path)
    dispatch_reply = load_dispatcher(dispatcher)
    set_feishu_runtime(
        FeishuRuntime(
            dispatch_reply=dispatch_reply,
            load_config=lambda: load_config(config_path),
        )
    )

    channels = ChannelManager(config)
    if not channels.enabled_channels:
        console.print("[red]No enabled Feishu account with app_id/app_secret[/red]")
        raise typer.Exit(1)

    console.print(f"{__logo__} Starting feishu-channel gateway...")
    console.print(f"[green]✓[/green] Accounts: {', '.join(channels.enabled_channels)}")

    async def run():
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        await channels.start_all()
        try:
            await stop_event.wait()
        finally:
            console.print("\nShutting down...")
            await channels.stop_all()
            logger.info("Gateway stopped")

    asyncio.run(run())


# ============================================================================
# Account Commands
# ============================================================================


@app.command()
def accounts(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show configured Feishu accounts."""
    from feishu_channel.config.accounts import resolve_all_accounts
    from feishu_channel.config.loader import load_config

    config = load_config(config_path)

    table = Table(title="Feishu Accounts")
    table.add_column("Account", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Mode", style="yellow")
    table.add_column("Domain")
    table.add_column("Credentials")

    for account in resolve_all_accounts(config):
        cfg = account.config
        mode = cfg.connection_mode
        if mode == "webhook":
            mode = f"webhook :{cfg.webhook_port}{cfg.webhook_path}"
        creds = (
            f"app_id: {account.app_id[:10]}..."
            if account.configured
            else "[dim]not configured[/dim]"
        )
        table.add_row(
            account.account_id + (f" ({account.name})" if account.name else ""),
            "✓" if account.enabled else "✗",
            mode,
            cfg.domain,
            creds,
        )

    console.print(table)


@app.command()
def probe(
    account_id: str = typer.Option(None, "--account", "-a", help="Account id"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Check an account's credentials by fetching the bot identity."""
    from feishu_channel.channels.feishu import FeishuChannel
    from feishu_channel.config.accounts import resolve_feishu_account
    from feishu_channel.config.loader import load_config

    config = load_config(config_path)
    account = resolve_feishu_account(config, account_id)
    if not account.configured:
        console.print(f"[red]Account {account.account_id} has no app_id/app_secret[/red]")
        raise typer.Exit(1)

    channel = FeishuChannel(account, config)
    channel.ensure_client()
    result = asyncio.run(channel.sender.probe())

    if result.ok:
        console.print(
            f"[green]✓[/green] {account.account_id}: {result.bot_name or '(unnamed bot)'} "
            f"open_id={result.bot_open_id} ({result.elapsed_ms} ms)"
        )
    else:
        console.print(f"[red]✗[/red] {account.account_id}: {result.error} ({result.elapsed_ms} ms)")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
