from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, MofNCompleteColumn, TimeElapsedColumn

from .utils import clean_banner

_console = Console()


class ScannerUI:
    def __init__(self, console: Optional[Console] = None):
        self.console = console if console is not None else _console

    def display_welcome(self):
        self.console.rule("[bold red]PORTPROBE - Multi-Worker TCP Port Scanner[/bold red]")

    def get_target(self):
        return Prompt.ask("[bold blue]Enter Target IP/Hostname[/bold blue]", console=self.console)

    def get_ports(self):
        return Prompt.ask("[bold blue]Enter Ports (e.g. 80 443 1000-2000)[/bold blue]",
                          default="1-1024", console=self.console)

    def display_start(self, config):
        if config.is_range_scan:
            ports_line = f"Ports: {config.start_port} - {config.end_port}"
        else:
            ports_line = f"Ports: {config.port_count} selected"
        lines = [
            f"[bold green]Starting Scan on {config.host}[/bold green]",
            ports_line,
            f"Timeout: {config.timeout_ms} ms",
            f"Workers: {config.workers}",
            f"Banner Grabbing: {'Enabled' if config.grab_banner else 'Disabled'}",
        ]
        self.console.print(Panel.fit("\n".join(lines), border_style="blue"))

    def create_progress(self, auto_refresh: bool = True):
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[progress.percentage]{task.percentage:>5.1f}%"),
            TimeElapsedColumn(),
            console=self.console,
            auto_refresh=auto_refresh
        )

    def show_probe(self, outcome):
        """Per-port line for verbose mode."""
        if outcome.is_open:
            self.console.print(f"[green][OPEN][/green] Port {outcome.port}")
        else:
            self.console.print(f"[dim][CLOSED] Port {outcome.port}[/dim]")

    def display_results(self, result):
        """
        Displays the open ports of a ScanResult in a Rich table.
        """
        self.console.print("\n")

        if not result.open_ports:
            self.console.print("[yellow]No open TCP ports found in the specified range.[/yellow]")
        else:
            table = Table(title=f"Scan Results for {result.host}", show_header=True, header_style="bold magenta")
            table.add_column("Port", style="cyan", justify="right")
            table.add_column("State", style="green")
            table.add_column("Service", style="yellow")
            table.add_column("Banner", style="white")

            for outcome in result.open_ports:
                table.add_row(
                    str(outcome.port),
                    "OPEN",
                    outcome.service or "N/A",
                    clean_banner(outcome.banner) or "N/A"
                )
            self.console.print(table)

        # Summary Stats
        self.console.print(f"\n[bold]Scan completed in {result.duration_ms} ms.[/bold]")
        self.console.print(f"[bold]Open ports found: {len(result.open_ports)}[/bold]")
        if result.not_open_count > 0:
            self.console.print(f"[dim]Not shown: {result.not_open_count} not-open ports[/dim]")
        if not result.is_complete:
            self.console.print(
                f"[yellow]Only {result.completed} of {result.total_ports} ports finished.[/yellow]"
            )

    def show_message(self, msg, style="bold red"):
        self.console.print(f"[{style}]{msg}[/{style}]")

    def show_saved(self, filename):
        self.console.print(f"[dim]Results saved to {filename}[/dim]")
