"""Tests for the command line entry point"""

import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console

from machine_report.collectors.network import NetworkCollector
from machine_report.collectors.system import OsCollector
from machine_report.core.aggregator import build_snapshot
from machine_report.core.collector import SystemReportCollector
from machine_report.core.errors import MandatoryCollectorError
from machine_report.core.models import (
    CollectMode,
    CpuInfo,
    DiskReport,
    MemoryInfo,
    NetworkInfo,
    OsInfo,
    PlatformInfo,
    SessionInfo,
)
from machine_report.main import BAR_FILL, MachineReport, build_parser, main


def snapshot_for(mode):
    return build_snapshot(
        mode=mode,
        os_info=OsInfo(name="Ubuntu", version="24.04", kernel="6.8.0", hostname="devbox",
                       architecture="x86_64", uptime_seconds=3600),
        cpu=CpuInfo(brand="Test CPU", logical_cores=4, sockets=1, frequency_mhz=3000.0,
                    load_1m=10.0, load_5m=20.0, load_15m=30.0),
        memory=MemoryInfo(total_bytes=8 * 1024 ** 3, used_bytes=2 * 1024 ** 3),
        disk=DiskReport(),
        network=NetworkInfo(machine_ip="192.168.1.10"),
        session=SessionInfo(username="alice"),
        platform_info=PlatformInfo(),
    )


@pytest.fixture
def fake_collect():
    with patch.object(SystemReportCollector, 'collect', autospec=True,
                      side_effect=lambda self, mode=CollectMode.FULL: snapshot_for(mode)) as mocked:
        yield mocked


class TestParser:
    def test_flags(self):
        args = build_parser().parse_args(["--ascii", "--json", "--fast", "-t", "ACME", "--no-color"])
        assert args.ascii and args.json and args.fast and args.no_color
        assert args.title == "ACME"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            build_parser().parse_args(["--version"])
        assert excinfo.value.code == 0
        assert "machine-report 1.0.0" in capsys.readouterr().out


class TestMain:
    def test_json_output(self, config_file, fake_collect, capsys):
        assert main(["--json", "--config", str(config_file)]) == 0
        document = json.loads(capsys.readouterr().out)
        assert document["os"]["name"] == "Ubuntu"
        assert document["cpu"]["sockets"] == 1

    def test_table_output(self, config_file, fake_collect, capsys):
        assert main(["--no-color", "--ascii", "-t", "ACME CORP", "--config", str(config_file)]) == 0
        out = capsys.readouterr().out
        assert "ACME CORP" in out
        assert out.startswith("+")
        assert out.endswith("+\n")

    def test_fast_flag_selects_fast_mode(self, config_file, fake_collect, capsys):
        main(["--fast", "--json", "--config", str(config_file)])
        assert fake_collect.call_args[0][1] == CollectMode.FAST

    def test_mode_from_config_file(self, tmp_path, fake_collect, capsys):
        path = tmp_path / "fast.ini"
        path.write_text("[collection]\nmode = fast\n[logging]\nlog_file =\n", encoding="utf-8")
        main(["--json", "--config", str(path)])
        assert fake_collect.call_args[0][1] == CollectMode.FAST

    def test_mandatory_failure(self, config_file, capsys):
        error = MandatoryCollectorError('cpu', RuntimeError("psutil unavailable"))
        with patch.object(SystemReportCollector, 'collect', side_effect=error):
            assert main(["--config", str(config_file)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "cpu" in captured.err
        assert "psutil unavailable" in captured.err

    def test_mandatory_failure_reported_once(self, config_file, capsys):
        with patch.object(OsCollector, 'collect', side_effect=RuntimeError("uname failed")):
            assert main(["--fast", "--config", str(config_file)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        lines = captured.err.splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("Erreur:")
        assert "uname failed" in lines[0]

    def test_optional_failure_keeps_stderr_empty(self, config_file, capsys):
        with patch.object(NetworkCollector, 'collect', side_effect=OSError("no route")):
            assert main(["--config", str(config_file), "--fast", "--json"]) == 0
        captured = capsys.readouterr()
        assert captured.err == ""
        assert json.loads(captured.out)["network"]["machine_ip"] is None

    def test_invalid_configuration(self, tmp_path, capsys):
        path = tmp_path / "bad.ini"
        path.write_text("[report]\nformat = xml\n", encoding="utf-8")
        assert main(["--config", str(path)]) == 1
        assert "format" in capsys.readouterr().err.lower()

    def test_install_and_uninstall_are_exclusive(self, config_file, capsys):
        assert main(["--install", "--uninstall", "--config", str(config_file)]) == 2

    def test_install_then_uninstall(self, config_file, tmp_path, monkeypatch, capsys):
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setattr("machine_report.core.installer.Path.home", lambda: home)
        monkeypatch.setattr("machine_report.core.installer.sys.platform", "linux")

        assert main(["--install", "--config", str(config_file)]) == 0
        assert "machine-report --fast" in (home / ".bashrc").read_text(encoding="utf-8")
        assert "Installé dans" in capsys.readouterr().out

        assert main(["--uninstall", "--config", str(config_file)]) == 0
        assert "Retiré de" in capsys.readouterr().out
        assert main(["--uninstall", "--config", str(config_file)]) == 0
        assert "Rien à désinstaller" in capsys.readouterr().out


class TestColorOutput:
    def test_bar_fill_pattern(self):
        line = "│ USAGE        │ ████████░░░░░░░░░░░░░░░░░░░░░░░░ │"
        match = BAR_FILL.search(line)
        assert match.group(0) == "████████"

    def test_pattern_ignores_other_rows(self):
        assert BAR_FILL.search("│ OS           │ Ubuntu 24.04                     │") is None

    def test_color_console_output(self, config, logger):
        app = MachineReport(config, logger, collector=object())
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, color_system="standard", width=120)
        app.print_report("│ USAGE │ ███░ │\n", console=console)
        output = buffer.getvalue()
        assert "\x1b[" in output
        assert "███" in output

    def test_no_color_writes_plain_text(self, config, logger, capsys):
        config.set('report', 'color', 'false')
        app = MachineReport(config, logger, collector=object())
        app.print_report("plain")
        assert capsys.readouterr().out == "plain\n"

    def test_json_is_never_colored(self, config, logger):
        config.set('report', 'format', 'json')
        assert MachineReport(config, logger, collector=object()).use_color() is False
