"""CLI commands for lio-agent."""

import asyncio
import sys

import typer
from rich.console import Console
from rich.table import Table

from lio_agent import __brand__, __logo__, __version__

app = typer.Typer(
    name="lio-agent",
    help=f"{__logo__} {__brand__} - LINE assistant",
    no_args_is_help=True,
)

console = Console()


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _configure_logging(verbose: bool) -> None:
    from loguru import logger

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _make_provider(config):
    from lio_agent.config.loader import get_config_path
    from lio_agent.providers.factory import build_provider

    try:
        return build_provider(config)
    except ValueError as e:
        _cli_fail(str(e), f"Set providers.<name>.apiKey in {get_config_path()}")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """lio-agent - LINE assistant."""
    pass


@app.command("version")
def version_command():
    """Show lio-agent version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


@app.command()
def onboard():
    """Initialize lio-agent configuration and workspace."""
    from lio_agent.config.loader import get_config_path, load_config, save_config
    from lio_agent.config.schema import Config
    from lio_agent.utils.helpers import ensure_dir

    config_path = get_config_path()
    if config_path.exists():
        config = load_config()
        save_config(config)
        console.print(f"[green]✓[/green] Refreshed config at {config_path} (existing values preserved)")
    else:
        config = Config()
        save_config(config)
        console.print(f"[green]✓[/green] Created config at {config_path}")

    workspace = ensure_dir(config.workspace_path)
    ensure_dir(workspace / "state" / "store")
    console.print(f"[green]✓[/green] Created workspace at {workspace}")

    console.print(f"\n{__logo__} {__brand__} is ready!")
    console.print("\n  Next: set [cyan]line.channelAccessToken[/cyan], [cyan]line.channelSecret[/cyan] "
                  "and a provider apiKey, then run [cyan]lio-agent gateway[/cyan]")


@app.command()
def gateway(
    port: int = typer.Option(None, "--port", "-p", help="Webhook port (default: gateway.port)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the LINE webhook gateway."""
    from lio_agent.agent.loop import AgentLoop
    from lio_agent.bus.queue import MessageBus
    from lio_agent.channels.line import LineChannel
    from lio_agent.channels.line_api import LineMessagingClient
    from lio_agent.config.loader import get_config_path, load_config

    _configure_logging(verbose)
    config = load_config()
    if port is not None:
        config.gateway.port = port

    if not config.line.channel_access_token or not config.line.channel_secret:
        _cli_fail(
            "LINE channel credentials are not configured.",
            f"Set line.channelAccessToken and line.channelSecret in {get_config_path()}",
        )

    provider = _make_provider(config)
    bus = MessageBus()
    agent = AgentLoop(bus=bus, provider=provider, config=config)
    client = LineMessagingClient(
        config.line.channel_access_token,
        api_base=config.line.api_base,
        data_api_base=config.line.data_api_base,
    )
    channel = LineChannel(config.line, bus, client, agent.uploader, gateway=config.gateway)
    agent.register_channel(channel)

    console.print(f"{__logo__} Starting {__brand__} gateway on port {config.gateway.port}...")
    if not config.storage.presign_url:
        console.print("[yellow]Storage presignUrl not set: voice, images and files will fall back to text[/yellow]")

    async def run():
        start_error = ""
        try:
            await asyncio.gather(agent.run(), channel.start())
        except OSError as e:
            start_error = str(e)
        except KeyboardInterrupt:
            console.print("\nShutting down...")
        finally:
            await channel.stop()
            await agent.shutdown()
            if start_error:
                console.print(f"[red]Gateway startup failed:[/red] {start_error}")
                raise typer.Exit(1)

    asyncio.run(run())


@app.command()
def ask(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to Lio"),
    user: str = typer.Option("cli-user", "--user", "-u", help="User identifier for history and tasks"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Talk to Lio from the terminal."""
    from lio_agent.agent.loop import AgentLoop
    from lio_agent.bus.queue import MessageBus
    from lio_agent.config.loader import load_config
    from lio_agent.store.models import TextPart

    _configure_logging(verbose)
    config = load_config()
    agent_loop = AgentLoop(bus=MessageBus(), provider=_make_provider(config), config=config)

    if message:
        async def run_once():
            response = await agent_loop.process_direct([TextPart(text=message)], sender_id=user)
            console.print(f"\n{__logo__} {response}")

        asyncio.run(run_once())
        return

    from prompt_toolkit import PromptSession
    from prompt_toolkit.history import FileHistory
    from prompt_toolkit.styles import Style

    history_dir = config.workspace_path / "state"
    history_dir.mkdir(parents=True, exist_ok=True)
    session = PromptSession(history=FileHistory(str(history_dir / "cli_history")))
    style = Style.from_dict({"prompt": "bold green"})

    console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")

    async def run_interactive():
        while True:
            try:
                user_input = await session.prompt_async("You: ", style=style)
                if not user_input.strip():
                    continue
                response = await agent_loop.process_direct([TextPart(text=user_input)], sender_id=user)
                console.print(f"\n{__logo__} {response}\n")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break

    asyncio.run(run_interactive())


@app.command()
def status():
    """Show lio-agent status."""
    from lio_agent.config.loader import get_config_path, get_data_dir, load_config

    data_dir = get_data_dir()
    config_path = get_config_path()
    config = load_config()
    workspace = config.workspace_path

    def _mark(ok: bool, label: str = "✓") -> str:
        return f"[green]{label}[/green]" if ok else "[dim]not set[/dim]"

    console.print(f"{__logo__} {__brand__} Status\n")

    table = Table(show_header=False, box=None)
    table.add_row("Data dir", f"{data_dir} {_mark(data_dir.exists())}")
    table.add_row("Config", f"{config_path} {_mark(config_path.exists())}")
    table.add_row("Workspace", f"{workspace} {_mark(workspace.exists())}")
    table.add_row("Model", config.agents.defaults.model)
    table.add_row("Planner model", config.agents.defaults.planner_model or "(same as model)")
    table.add_row("Model API key", _mark(bool(config.get_api_key())))
    table.add_row("LINE channel", _mark(bool(config.line.channel_access_token and config.line.channel_secret)))
    table.add_row("ElevenLabs", _mark(bool(config.providers.elevenlabs.api_key)))
    table.add_row("Image API key", _mark(bool(config.get_api_key(config.media.image_model))))
    table.add_row("Storage", _mark(bool(config.storage.presign_url)))
    table.add_row("File parser", _mark(bool(config.tools.file.parse_url)))
    table.add_row("Webhook", f"{config.gateway.host}:{config.gateway.port}{config.gateway.callback_path}")
    console.print(table)


if __name__ == "__main__":
    app()
