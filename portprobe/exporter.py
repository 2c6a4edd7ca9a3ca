"""
Writes a ScanResult to disk as plain text, CSV or JSON.
"""

import csv
import json
from datetime import datetime

from .collector import ScanResult
from .errors import ConfigurationError

FORMATS = ("txt", "csv", "json")

RULE = "=" * 47
THIN_RULE = "-" * 47


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def describe(outcome) -> str:
    """One-line summary, e.g. 'Port 22 (SSH) - Banner: SSH-2.0-OpenSSH_8.2'"""
    text = f"Port {outcome.port}"
    if outcome.service:
        text += f" ({outcome.service})"
    if outcome.banner:
        text += f" - Banner: {outcome.banner}"
    return text


class ResultExporter:

    @staticmethod
    def default_filename(host: str, fmt: str) -> str:
        millis = int(datetime.now().timestamp() * 1000)
        return f"scan_{host.replace('.', '_').replace(':', '_')}_{millis}.{fmt}"

    @classmethod
    def export(cls, result: ScanResult, fmt: str, filename: str) -> str:
        fmt = fmt.lower()
        writers = {
            "txt": cls.to_text,
            "csv": cls.to_csv,
            "json": cls.to_json,
        }
        if fmt not in writers:
            raise ConfigurationError(f"Unsupported export format: {fmt!r} (use txt, csv or json)")
        writers[fmt](result, filename)
        return filename

    @staticmethod
    def to_text(result: ScanResult, filename: str):
        lines = [
            RULE,
            "           PORT SCAN REPORT",
            RULE,
            "",
            f"Target Host: {result.host}",
            f"Scan Date: {_timestamp()}",
            f"Duration: {result.duration_ms} ms",
            f"Ports Scanned: {result.completed}/{result.total_ports}",
            f"Total Open Ports: {len(result.open_ports)}",
            "",
            THIN_RULE,
            "OPEN PORTS:",
            THIN_RULE,
        ]
        lines.extend(describe(outcome) for outcome in result.open_ports)
        lines += ["", RULE, "End of Report", RULE]

        with open(filename, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    @staticmethod
    def to_csv(result: ScanResult, filename: str):
        with open(filename, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["Port", "Service", "Banner", "Status"])
            for outcome in result.open_ports:
                writer.writerow([outcome.port, outcome.service, outcome.banner, "OPEN"])

    @staticmethod
    def to_json(result: ScanResult, filename: str):
        data = {
            "scan_info": {
                "target": result.host,
                "timestamp": _timestamp(),
                "duration_ms": result.duration_ms,
                "total_ports": result.total_ports,
                "total_open_ports": len(result.open_ports),
            },
            "open_ports": [
                {"port": o.port, "service": o.service, "banner": o.banner}
                for o in result.open_ports
            ],
        }
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
