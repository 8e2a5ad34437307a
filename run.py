#!/usr/bin/env python3
"""
SolanaPod Launcher
The single entry point for all SolanaPod components (API server, pod, native shell).
"""

import logging
import sys
import threading

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from shared.config import api_port, api_url, load_store_config

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
)
logger = logging.getLogger("solanapod")

console = Console()


class SolanaPodLauncher:
    def __init__(self):
        self.api_thread = None

    def store_config(self):
        try:
            return load_store_config()
        except ValueError as e:
            logger.error("Blob store config: %s", e)
            return None

    def is_configured(self):
        return self.store_config() is not None

    def start_api_background(self):
        """Run the API server on a daemon thread so the menu stays usable."""
        if self.api_thread and self.api_thread.is_alive():
            console.print("[green]API server already running.[/green]")
            return
        from shared.api import start_api
        self.api_thread = threading.Thread(target=start_api, kwargs={"port": api_port()}, daemon=True)
        self.api_thread.start()
        console.print(f"[bold green]API server started on port {api_port()}.[/bold green]")

    def launch_pod(self, relay=False):
        from player.cli import play
        args = ["--relay"] if relay else []
        play.main(args=args, standalone_mode=False)

    def launch_shell(self):
        from shell.companion import main
        main.main(args=[], standalone_mode=False)

    def show_status(self):
        config = self.store_config()
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_row("API", api_url())
        table.add_row("Blob store", config.provider.value if config else "[yellow]not configured[/yellow]")
        table.add_row("API thread", "running" if self.api_thread and self.api_thread.is_alive() else "stopped")
        console.print(Panel(table, title="Status", border_style="dim"))

    def show_menu(self):
        """Display the main TUI menu."""
        banner = Panel.fit(
            "[bold magenta]SOLANAPOD[/bold magenta] [white]Click-wheel music player[/white]",
            border_style="magenta"
        )
        console.print(banner)

        table = Table(show_header=False, box=None)
        table.add_column("Key", style="bold magenta")
        table.add_column("Option", style="white")
        table.add_row("1", "Start API server (background)")
        table.add_row("2", "Play on this machine")
        table.add_row("3", "Play and report to the native shell")
        table.add_row("4", "Native shell (follow the pod)")
        table.add_row("5", "Status")
        table.add_row("q", "Exit")
        console.print(Panel(table, title="Main Menu", border_style="dim"))

        choice = Prompt.ask("[bold cyan]>[/bold cyan] Select an option",
                            choices=["1", "2", "3", "4", "5", "q"], default="2")
        if choice == "1":
            self.start_api_background()
        elif choice == "2":
            self.launch_pod()
        elif choice == "3":
            self.launch_pod(relay=True)
        elif choice == "4":
            self.launch_shell()
        elif choice == "5":
            self.show_status()
        elif choice == "q":
            console.print("[italic]Happy listening![/italic]")
            sys.exit(0)

    def run(self):
        if not self.is_configured():
            console.print(Panel(
                "[bold yellow]No blob store configured.[/bold yellow]\n"
                "The catalog still plays; run [cyan]python -m blob_tool init[/cyan] to add your own tracks.",
                border_style="yellow"
            ))

        if "--daemon" in sys.argv:
            console.print("[bold green]SolanaPod API is running.[/bold green]")
            from shared.api import start_api
            start_api(port=api_port())
            return

        while True:
            self.show_menu()


if __name__ == "__main__":
    launcher = SolanaPodLauncher()
    launcher.run()
