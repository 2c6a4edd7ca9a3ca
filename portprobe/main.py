import argparse
import socket
import sys

from .config import DEFAULT_TIMEOUT_MS, DEFAULT_WORKERS, ScanConfig
from .errors import HostResolutionError, ScanError, ScanInterrupted
from .exporter import FORMATS, ResultExporter
from .scanner import ScanEngine
from .services import TOP_PORTS
from .ui import ScannerUI
from .utils import parse_ports, parse_range

DEFAULT_PORTS = "1-1024"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portprobe",
        description="portprobe - Multi-Worker TCP Port Scanner",
        epilog="Only scan systems you own or have permission to test!"
    )
    parser.add_argument("-t", "--target", help="Target IP or Hostname")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("-p", "--ports", help="Ports to scan (e.g. 1-1024 or 22,80,443)")
    selection.add_argument("--top-ports", action="store_true", help="Scan the curated list of common ports")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT_MS,
                        help=f"Connection timeout in ms (Default: {DEFAULT_TIMEOUT_MS})")
    parser.add_argument("-c", "--threads", type=int, default=DEFAULT_WORKERS,
                        help=f"Concurrent workers (Default: {DEFAULT_WORKERS}, Max: 500)")
    parser.add_argument("-b", "--banner", action="store_true", help="Enable banner grabbing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Disable progress display")
    parser.add_argument("-o", "--output", choices=FORMATS, help="Export results (txt|csv|json)")
    parser.add_argument("--output-file", help="Export file path (Default: scan_<host>_<time>.<format>)")
    return parser


def resolve_host(target: str) -> str:
    try:
        return socket.gethostbyname(target)
    except (socket.gaierror, UnicodeError) as e:
        raise HostResolutionError(f"Could not resolve hostname {target}") from e


def build_config(host: str, ports_text: str, args: argparse.Namespace) -> ScanConfig:
    """
    Turns CLI input into a ScanConfig. A single "start-end" token becomes a
    range scan; anything else becomes an explicit, ordered port list.
    """
    options = dict(
        timeout_ms=args.timeout,
        workers=args.threads,
        grab_banner=args.banner,
        show_progress=not args.quiet,
        verbose=args.verbose,
    )
    if args.top_ports:
        return ScanConfig.for_ports(host, TOP_PORTS, **options)

    port_range = parse_range(ports_text)
    if port_range:
        return ScanConfig.for_range(host, *port_range, **options)
    return ScanConfig.for_ports(host, parse_ports(ports_text), **options)


def main(argv=None):
    # 1. CLI Argument Parsing
    args = build_parser().parse_args(argv)

    ui = ScannerUI()
    if not args.target:
        ui.display_welcome()

    try:
        # 2. Input Resolution (CLI vs Interactive)
        target = args.target or ui.get_target()
        target_ip = resolve_host(target)
        if target_ip != target:
            ui.console.print(f"[green]Resolved {target} to {target_ip}[/green]")

        if args.ports:
            ports_text = args.ports
        elif args.target or args.top_ports:
            ports_text = DEFAULT_PORTS
        else:
            ports_text = ui.get_ports()

        # 3. Validate & clamp
        config = build_config(target_ip, ports_text, args)

        # 4. Run
        ui.display_start(config)
        result = ScanEngine(ui=ui).scan(config)
        ui.display_results(result)

        # 5. Export
        if args.output:
            filename = args.output_file or ResultExporter.default_filename(config.host, args.output)
            try:
                ResultExporter.export(result, args.output, filename)
            except OSError as e:
                ui.console.print(f"[bold red]Failed to export results:[/bold red] {e}")
                sys.exit(1)
            ui.show_saved(filename)

    except ScanInterrupted as e:
        ui.display_results(e.partial)
        ui.console.print("\n[yellow]Scan interrupted by user.[/yellow]")
        sys.exit(130)
    except KeyboardInterrupt:
        ui.console.print("\n[yellow]Scan interrupted by user.[/yellow]")
        sys.exit(130)
    except ScanError as e:
        ui.console.print(f"[bold red]Error:[/bold red] {e}")
        if args.verbose:
            ui.console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
