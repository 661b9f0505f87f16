"""Shared fixtures: isolated configuration, logger, scripted command runner, fake probe."""

import logging

import pytest

from machine_report.collectors.platform import PlatformProbe
from machine_report.core.config import ReportConfig
from machine_report.core.logger import LOGGER_NAME, ReportLogger, own_handlers
from machine_report.core.models import PlatformInfo


class FakeRunner:
    """Command runner returning scripted outputs and recording every call."""

    def __init__(self, outputs=None):
        self.outputs = dict(outputs or {})
        self.calls = []

    def run(self, args):
        args = tuple(args)
        self.calls.append(args)
        return self.outputs.get(args)

    def called(self, *prefix):
        return [call for call in self.calls if call[:len(prefix)] == prefix]


class FakeProbe(PlatformProbe):
    """Deterministic probe: every fact succeeds, slow ones are skipped in fast mode."""

    PLATFORM_KEY = 'fake'
    FAST_MODE_SKIPS = frozenset({'sockets', 'zfs_health', 'last_login', 'virtualization'})

    def os_identity(self):
        return "TestOS", "1.0"

    def kernel(self):
        return "6.1.0-test"

    def cpu_brand(self):
        return "Test CPU @ 3.00GHz"

    def socket_count(self):
        return 2

    def load_averages(self, mode, usage_percent, logical_cores):
        return 10.0, 20.0, 30.0

    def machine_ip(self):
        return "192.168.1.10"

    def dns_servers(self):
        return ["1.1.1.1", "8.8.8.8", "1.1.1.1"]

    def last_login(self, username):
        return "Mon Jan 1 10:00", "10.0.0.5"

    def zfs_health(self):
        return "ONLINE"

    def collect(self, mode):
        skipped = set()
        virtualization = self._gated('virtualization', mode, lambda: "KVM", skipped)
        return PlatformInfo(
            virtualization=virtualization,
            gpus=("Test GPU",),
            shell="bash",
            terminal="xterm",
            locale="en_US",
            skipped=frozenset(skipped),
        )


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in own_handlers(logger):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[logging]\nlog_file =\nlog_level = WARNING\n", encoding="utf-8")
    return path


@pytest.fixture
def config(config_file):
    return ReportConfig(str(config_file))


@pytest.fixture
def logger(config):
    report_logger = ReportLogger(config)
    yield report_logger
    report_logger.close()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def fake_probe_class():
    return FakeProbe


@pytest.fixture
def fake_probe(config, logger, runner):
    return FakeProbe(config, logger, runner)
