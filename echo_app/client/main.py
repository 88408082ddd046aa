"""
Echo Client Main Entry Point

Terminal front end for the echo client: find a server on the local subnet,
connect, send lines of text and show what comes back.
"""

import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from echo_app import __version__
from echo_app.client.echo_client import EchoClient
from echo_app.discovery.local_network import get_preferred_local_address
from echo_app.shared.config import ConfigurationLoader
from echo_app.shared.constants import HELP_COMMAND, LOG_COMMAND, QUIT_COMMAND, SCAN_COMMAND
from echo_app.shared.exceptions import (
    ConfigurationError,
    EchoAppError,
    SessionError,
    ValidationError,
)
from echo_app.shared.logging_config import get_logger, setup_logging


console = Console()
logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(description="LAN echo client")
    parser.add_argument("--host", help="Server IPv4 address; skips the subnet scan")
    parser.add_argument("--port", type=int, help="Server port (default 8080)")
    parser.add_argument("--subnet", help="Subnet prefix to scan, e.g. 192.168.1")
    parser.add_argument("--config-file", help="Configuration file path (JSON or YAML)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )
    parser.add_argument("--log-file", help="Log file path")
    parser.add_argument("--version", action="version", version=f"Echo Client {__version__}")
    return parser


def discover_server(client: EchoClient, subnet: Optional[str] = None) -> Optional[str]:
    """
    Scan the subnet for a server, showing a spinner while it runs.

    Returns:
        The address found, or None.
    """
    subnet = subnet or client.default_subnet()
    port = client.config.port

    try:
        with console.status(f"[cyan]Scanning {subnet}.1-254 on port {port}...[/cyan]"):
            address = client.scan(subnet, port)
    except ValidationError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return None

    if address:
        console.print(f"[green]Found server at {address}:{port}[/green]")
    else:
        console.print(f"[yellow]No server found on {subnet}.0/24 port {port}.[/yellow]")
    return address


def prompt_address(client: EchoClient, suggestion: Optional[str]) -> str:
    """Ask for the server address, suggesting the scanned or typical one."""
    default = suggestion or f"{client.default_subnet()}."
    return Prompt.ask("[cyan]Enter Server IP[/cyan]", default=default).strip()


def connect_with_feedback(client: EchoClient, address: str) -> bool:
    """
    Connect and print the outcome.

    Returns:
        True if connected.
    """
    try:
        with console.status(f"[cyan]Connecting to {address}:{client.config.port}...[/cyan]"):
            client.connect(address)
    except ValidationError as e:
        console.print(f"[bold red]Invalid IP:[/bold red] {e}")
        console.print("Please enter a valid IP address format (e.g., 192.168.1.100)")
        return False
    except SessionError as e:
        console.print(Panel(
            f"{e}\n\n[bold]Troubleshooting:[/bold]\n" + "\n".join(f"• {line}" for line in e.hint.splitlines()),
            title="Connection Error",
            border_style="red"
        ))
        return False

    console.print(f"[bold green]Connected to {address}:{client.config.port}[/bold green]")
    return True


def print_log(client: EchoClient) -> None:
    """Print the message log, most recent first."""
    table = Table(title="Message log", show_header=False)
    for line in client.messages.formatted():
        table.add_row(line)
    console.print(table)


def print_help() -> None:
    console.print(
        f"[dim]{SCAN_COMMAND} rescan  {LOG_COMMAND} show log  {QUIT_COMMAND} disconnect  "
        f"{HELP_COMMAND} this help[/dim]"
    )


def run_session(client: EchoClient) -> bool:
    """
    Read lines and send them until the user quits or the session ends.

    Returns:
        True if the user asked to quit.
    """
    print_help()

    while client.is_connected():
        try:
            line = Prompt.ask("[cyan]>[/cyan]", default="", show_default=False)
        except (KeyboardInterrupt, EOFError):
            return True

        text = line.strip()
        if not text:
            continue

        if text == QUIT_COMMAND:
            client.disconnect()
            return True
        if text == HELP_COMMAND:
            print_help()
            continue
        if text == LOG_COMMAND:
            print_log(client)
            continue
        if text == SCAN_COMMAND:
            discover_server(client)
            continue

        try:
            client.send(text)
        except (SessionError, ValidationError) as e:
            console.print(f"[bold red]Error sending message: {e}[/bold red]")

    return False


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the echo client."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        config = ConfigurationLoader.load_client_config(args.config_file)
        if args.port is not None:
            config.port = args.port
        if args.subnet is not None:
            config.subnet = args.subnet
        config.validate()
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error: {e}[/bold red]")
        return 2

    client = EchoClient(config)
    client.set_callbacks(
        on_message=lambda text: console.print(f"[cyan]📨 Server:[/cyan] {text}"),
        on_disconnected=lambda reason: console.print(f"[yellow]🔴 Disconnected ({reason})[/yellow]")
    )

    local_ip = get_preferred_local_address() or "No network adapter found"
    console.print(Panel(
        f"[bold cyan]Echo Client {__version__}[/bold cyan]\nThis device IP: {local_ip}",
        border_style="cyan"
    ))

    try:
        suggestion = args.host or discover_server(client)

        while True:
            address = args.host if args.host and suggestion == args.host else prompt_address(client, suggestion)
            suggestion = None

            if connect_with_feedback(client, address) and run_session(client):
                break
            if not Confirm.ask("[cyan]Connect again?[/cyan]", default=True):
                break

        return 0

    except (KeyboardInterrupt, EOFError):
        console.print("\n[bold blue]Client cancelled.[/bold blue]")
        return 0
    except EchoAppError as e:
        console.print(f"[bold red]An error occurred: {e}[/bold red]")
        logger.exception("Client error")
        return 1
    finally:
        client.shutdown()


if __name__ == "__main__":
    sys.exit(main())
