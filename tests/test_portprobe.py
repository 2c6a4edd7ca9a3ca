"""
Unit tests for portprobe configuration, parsing, collection, export and CLI.
Run with: pytest tests/ -v
"""
import csv
import json
import socket

import pytest
from pydantic import ValidationError

from portprobe.collector import ResultCollector, ScanResult
from portprobe.config import ScanConfig
from portprobe.errors import ConfigurationError, HostResolutionError, ScanInterrupted
from portprobe.exporter import ResultExporter, describe
from portprobe.main import build_config, build_parser, main, resolve_host
from portprobe.prober import ProbeOutcome
from portprobe.scanner import ScanEngine
from portprobe.services import SERVICE_MAP, TOP_PORTS, service_name
from portprobe.utils import clean_banner, enumerate_ports, parse_ports, parse_range


def sample_result():
    return ScanResult(
        host="192.168.1.1",
        open_ports=(
            ProbeOutcome.open(22, "SSH", "SSH-2.0-OpenSSH_8.2p1"),
            ProbeOutcome.open(80, "HTTP", 'say "hi"'),
        ),
        total_ports=100,
        completed=100,
        duration_ms=1234,
    )


class TestScanConfig:
    """Test Pydantic configuration clamping and validation"""

    def test_valid_range_config(self):
        config = ScanConfig.for_range("192.168.1.1", 1, 1024)
        assert config.host == "192.168.1.1"
        assert config.is_range_scan
        assert config.port_count == 1024
        assert config.timeout_ms == 200
        assert config.workers == 100
        assert config.show_progress
        assert not config.grab_banner
        assert not config.verbose

    def test_timeout_clamped_low(self):
        assert ScanConfig.for_range("h", 1, 2, timeout_ms=10).timeout_ms == 50

    def test_timeout_clamped_high(self):
        assert ScanConfig.for_range("h", 1, 2, timeout_ms=60000).timeout_ms == 5000

    def test_workers_clamped_high(self):
        assert ScanConfig.for_range("h", 1, 2, workers=10000).workers == 500

    def test_workers_clamped_low(self):
        assert ScanConfig.for_range("h", 1, 2, workers=0).workers == 1
        assert ScanConfig.for_range("h", 1, 2, workers=-5).workers == 1

    def test_timeout_in_seconds(self):
        assert ScanConfig.for_range("h", 1, 2, timeout_ms=250).timeout == pytest.approx(0.25)

    def test_range_endpoints_clamped(self):
        config = ScanConfig.for_range("h", 0, 70000)
        assert (config.start_port, config.end_port) == (1, 65535)

    def test_inverted_after_clamping_rejected(self):
        """start=70000 clamps to 65535 which is still past end=1"""
        with pytest.raises(ConfigurationError):
            ScanConfig.for_range("h", 70000, 1)

    def test_inverted_range_rejected(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.for_range("h", 100, 10)

    def test_port_list_keeps_order(self):
        config = ScanConfig.for_ports("h", [443, 22, 80])
        assert config.ports == (443, 22, 80)
        assert not config.is_range_scan
        assert config.port_count == 3

    def test_port_list_filters_invalid_and_repeats(self):
        config = ScanConfig.for_ports("h", [80, 0, 99999, 22, 80])
        assert config.ports == (80, 22)

    def test_empty_port_list_rejected(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.for_ports("h", [])

    def test_only_invalid_ports_rejected(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.for_ports("h", [0, 70000])

    def test_range_and_list_together_rejected(self):
        with pytest.raises(ValidationError):
            ScanConfig(host="h", start_port=1, end_port=2, ports=(80,))

    def test_no_selection_rejected(self):
        with pytest.raises(ValidationError):
            ScanConfig(host="h")

    def test_empty_host_rejected(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.for_range("", 1, 2)

    def test_config_is_immutable(self):
        config = ScanConfig.for_range("h", 1, 2)
        with pytest.raises(ValidationError):
            config.workers = 3


class TestPortEnumeration:
    """Test expansion of a config into ports"""

    def test_range_inclusive(self):
        config = ScanConfig.for_range("h", 8000, 8100)
        ports = enumerate_ports(config)
        assert ports[0] == 8000
        assert ports[-1] == 8100
        assert len(ports) == 101

    def test_single_port_range(self):
        assert enumerate_ports(ScanConfig.for_range("h", 22, 22)) == [22]

    def test_list_not_resorted(self):
        config = ScanConfig.for_ports("h", TOP_PORTS)
        assert enumerate_ports(config) == TOP_PORTS


class TestPortParser:
    """Test port parsing utility"""

    def test_parse_single_port(self):
        assert parse_ports("80") == [80]

    def test_parse_multiple_ports_keeps_order(self):
        assert parse_ports("443,22,80") == [443, 22, 80]

    def test_parse_range(self):
        assert parse_ports("20-25") == [20, 21, 22, 23, 24, 25]

    def test_parse_mixed(self):
        assert parse_ports("22,80-82 443") == [22, 80, 81, 82, 443]

    def test_parse_drops_repeats(self):
        assert parse_ports("80,80,79-81") == [80, 79, 81]

    def test_parse_invalid_removed(self):
        ports = parse_ports("80,99999,22")
        assert ports == [80, 22]

    def test_parse_garbage_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_ports("80,http")

    def test_parse_inverted_range_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_ports("22,90-80")

    def test_parse_range_detects_single_range(self):
        assert parse_range("8000-8100") == (8000, 8100)
        assert parse_range(" 1 - 1024 ") == (1, 1024)

    def test_parse_range_ignores_lists(self):
        assert parse_range("22,80") is None
        assert parse_range("22,80-90") is None
        assert parse_range("80") is None


class TestServices:
    """Test the static port to service table"""

    def test_known_ports(self):
        assert service_name(22) == "SSH"
        assert service_name(443) == "HTTPS"
        assert service_name(8080) == "HTTP-Proxy"

    def test_unknown_port(self):
        assert service_name(31337) == "Unknown"

    def test_top_ports_are_mapped(self):
        assert all(p in SERVICE_MAP for p in TOP_PORTS)
        assert len(set(TOP_PORTS)) == len(TOP_PORTS)


class TestCleanBanner:
    """Test banner post-processing for display"""

    def test_empty(self):
        assert clean_banner("") == ""

    def test_collapses_whitespace(self):
        assert clean_banner("220  ProFTPD\r\n ready") == "220 ProFTPD ready"

    def test_strips_control_chars(self):
        assert clean_banner("J\x00\x00\x00\n5.7.30") == "J 5.7.30"

    def test_truncates(self):
        assert clean_banner("x" * 80) == "x" * 50 + "..."


class TestResultCollector:
    """Test filtering and ordering of outcomes"""

    def test_filters_and_sorts(self):
        outcomes = [
            ProbeOutcome.open(443, "HTTPS"),
            ProbeOutcome.not_open(1),
            ProbeOutcome.open(22, "SSH"),
            ProbeOutcome.not_open(8080),
            ProbeOutcome.open(80, "HTTP"),
        ]
        result = ResultCollector.collect("h", outcomes, total_ports=5, duration_ms=10)
        assert [o.port for o in result.open_ports] == [22, 80, 443]
        assert result.completed == 5
        assert result.not_open_count == 2
        assert result.is_complete
        assert result.duration_ms == 10

    def test_no_open_ports(self):
        result = ResultCollector.collect("h", [ProbeOutcome.not_open(p) for p in range(1, 4)], 3, 0)
        assert result.open_ports == ()
        assert result.completed == 3

    def test_each_port_once(self):
        outcomes = [ProbeOutcome.open(80, "HTTP", "a"), ProbeOutcome.open(80, "HTTP", "b")]
        result = ResultCollector.collect("h", outcomes, 1, 0)
        assert len(result.open_ports) == 1

    def test_partial_result(self):
        result = ResultCollector.collect("h", [ProbeOutcome.open(1, "Unknown")], 10, 0)
        assert not result.is_complete
        assert result.completed == 1


class TestResultExporter:
    """Test text, CSV and JSON export"""

    def test_describe(self):
        assert describe(ProbeOutcome.open(22, "SSH", "SSH-2.0")) == "Port 22 (SSH) - Banner: SSH-2.0"
        assert describe(ProbeOutcome.open(9999, "Unknown")) == "Port 9999 (Unknown)"

    def test_text_export(self, tmp_path):
        path = tmp_path / "scan.txt"
        ResultExporter.export(sample_result(), "txt", str(path))
        text = path.read_text(encoding="utf-8")
        assert "Target Host: 192.168.1.1" in text
        assert "Duration: 1234 ms" in text
        assert "Total Open Ports: 2" in text
        assert "Port 22 (SSH) - Banner: SSH-2.0-OpenSSH_8.2p1" in text

    def test_csv_export(self, tmp_path):
        path = tmp_path / "scan.csv"
        ResultExporter.export(sample_result(), "CSV", str(path))
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Port", "Service", "Banner", "Status"]
        assert rows[1] == ["22", "SSH", "SSH-2.0-OpenSSH_8.2p1", "OPEN"]
        assert rows[2] == ["80", "HTTP", 'say "hi"', "OPEN"]

    def test_json_export(self, tmp_path):
        path = tmp_path / "scan.json"
        ResultExporter.export(sample_result(), "json", str(path))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["scan_info"]["target"] == "192.168.1.1"
        assert data["scan_info"]["duration_ms"] == 1234
        assert data["scan_info"]["total_open_ports"] == 2
        assert data["open_ports"][1] == {"port": 80, "service": "HTTP", "banner": 'say "hi"'}

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ResultExporter.export(sample_result(), "xml", str(tmp_path / "scan.xml"))

    def test_default_filename(self):
        name = ResultExporter.default_filename("10.0.0.1", "json")
        assert name.startswith("scan_10_0_0_1_")
        assert name.endswith(".json")


class TestCLI:
    """Test argument handling and the main entry point"""

    def test_build_config_range(self):
        args = build_parser().parse_args(["-t", "h", "-p", "8000-8100", "-c", "10", "--timeout", "20"])
        config = build_config("127.0.0.1", args.ports, args)
        assert config.is_range_scan
        assert (config.start_port, config.end_port) == (8000, 8100)
        assert config.workers == 10
        assert config.timeout_ms == 50

    def test_build_config_list_and_flags(self):
        args = build_parser().parse_args(["-t", "h", "-p", "443,22", "-b", "-q", "-v"])
        config = build_config("127.0.0.1", args.ports, args)
        assert config.ports == (443, 22)
        assert config.grab_banner
        assert not config.show_progress
        assert config.verbose

    def test_build_config_top_ports(self):
        args = build_parser().parse_args(["-t", "h", "--top-ports"])
        config = build_config("127.0.0.1", "1-1024", args)
        assert list(config.ports) == TOP_PORTS

    def test_build_config_inverted_range(self):
        args = build_parser().parse_args(["-t", "h", "-p", "70000-1"])
        with pytest.raises(ConfigurationError):
            build_config("127.0.0.1", args.ports, args)

    def test_resolve_host_failure(self, monkeypatch):
        def fail(name):
            raise socket.gaierror("no such host")

        monkeypatch.setattr(socket, "gethostbyname", fail)
        with pytest.raises(HostResolutionError):
            resolve_host("no.such.host.invalid")

    def test_main_unresolvable_host_exits(self, monkeypatch):
        """Host resolution failure is fatal and no scan is attempted"""
        def fail(name):
            raise socket.gaierror("no such host")

        def never(self, config):
            raise AssertionError("scan should not start")

        monkeypatch.setattr(socket, "gethostbyname", fail)
        monkeypatch.setattr(ScanEngine, "scan", never)
        with pytest.raises(SystemExit) as exc_info:
            main(["-t", "no.such.host.invalid", "-p", "80"])
        assert exc_info.value.code == 1

    def test_main_inverted_range_exits(self, monkeypatch):
        def never(self, config):
            raise AssertionError("scan should not start")

        monkeypatch.setattr(ScanEngine, "scan", never)
        with pytest.raises(SystemExit) as exc_info:
            main(["-t", "127.0.0.1", "-p", "70000-1"])
        assert exc_info.value.code == 1

    def test_main_scans_and_exports(self, monkeypatch, tmp_path):
        seen = {}

        def fake_scan(self, config):
            seen["config"] = config
            return sample_result()

        monkeypatch.setattr(ScanEngine, "scan", fake_scan)
        out = tmp_path / "out.json"
        main(["-t", "127.0.0.1", "-p", "22,80", "-q", "-o", "json", "--output-file", str(out)])

        assert seen["config"].ports == (22, 80)
        assert not seen["config"].show_progress
        assert json.loads(out.read_text(encoding="utf-8"))["scan_info"]["total_open_ports"] == 2

    def test_ports_and_top_ports_exclusive(self):
        """-p and --top-ports cannot be combined"""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["-t", "h", "-p", "80", "--top-ports"])
        assert exc_info.value.code == 2

    def test_main_interrupted_shows_partial(self, monkeypatch, capsys):
        """An interrupted scan prints what finished and exits 130"""
        partial = ScanResult(
            host="192.168.1.1",
            open_ports=(ProbeOutcome.open(22, "SSH"),),
            total_ports=100,
            completed=50,
            duration_ms=10,
        )

        def interrupted(self, config):
            raise ScanInterrupted(partial)

        monkeypatch.setattr(ScanEngine, "scan", interrupted)
        with pytest.raises(SystemExit) as exc_info:
            main(["-t", "127.0.0.1", "-p", "1-100", "-q"])

        assert exc_info.value.code == 130
        out = capsys.readouterr().out
        assert "Scan Results for 192.168.1.1" in out
        assert "Open ports found: 1" in out
        assert "Only 50 of 100 ports finished." in out
        assert "Scan interrupted by user." in out

    def test_main_keyboard_interrupt(self, monkeypatch, capsys):
        def interrupted(self, config):
            raise KeyboardInterrupt

        monkeypatch.setattr(ScanEngine, "scan", interrupted)
        with pytest.raises(SystemExit) as exc_info:
            main(["-t", "127.0.0.1", "-p", "80", "-q"])

        assert exc_info.value.code == 130
        assert "Scan interrupted by user." in capsys.readouterr().out
