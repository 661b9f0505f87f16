"""Tests for the CPU collector"""

from collections import namedtuple
from unittest.mock import MagicMock, patch

import pytest

from machine_report.collectors.cpu import CpuCollector
from machine_report.core.models import CollectMode


Frequency = namedtuple("Frequency", "current min max")


@pytest.fixture
def mock_psutil():
    with patch("machine_report.collectors.cpu.psutil") as mocked:
        mocked.cpu_percent.side_effect = [[0.0, 0.0], [50.0, 70.0]]
        mocked.cpu_count.side_effect = lambda logical=True: 8 if logical else 4
        mocked.cpu_freq.return_value = Frequency(2400.0, 800.0, 4200.0)
        yield mocked


class TestCpuCollector:
    def test_full_mode_resamples_after_settle(self, config, logger, fake_probe, mock_psutil):
        settle = MagicMock()
        info = CpuCollector(config, logger, fake_probe, settle).collect(CollectMode.FULL)

        settle.assert_called_once_with()
        assert mock_psutil.cpu_percent.call_count == 2
        assert info.usage_percent == 60.0
        assert info.logical_cores == 8
        assert info.physical_cores == 4
        assert info.sockets == 2
        assert info.frequency_mhz == 2400.0
        assert info.brand == "Test CPU @ 3.00GHz"
        assert (info.load_1m, info.load_5m, info.load_15m) == (10.0, 20.0, 30.0)

    def test_fast_mode_single_sample(self, config, logger, fake_probe, mock_psutil):
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FAST)

        assert mock_psutil.cpu_percent.call_count == 1
        assert info.usage_percent == 0.0
        assert info.sockets is None

    def test_physical_cores_default_to_logical(self, config, logger, fake_probe, mock_psutil):
        mock_psutil.cpu_count.side_effect = lambda logical=True: 8 if logical else None
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FULL)
        assert info.physical_cores == 8

    def test_missing_frequency(self, config, logger, fake_probe, mock_psutil):
        mock_psutil.cpu_freq.return_value = None
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FULL)
        assert info.frequency_mhz == 0.0

    def test_missing_load_averages(self, config, logger, fake_probe, mock_psutil):
        fake_probe.load_averages = lambda mode, usage, cores: None
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FULL)
        assert info.load_1m is None and info.load_15m is None

    def test_unknown_brand(self, config, logger, fake_probe, mock_psutil):
        fake_probe.cpu_brand = lambda: None
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FULL)
        assert info.brand == "Unknown"

    def test_derived_values(self, config, logger, fake_probe, mock_psutil):
        info = CpuCollector(config, logger, fake_probe).collect(CollectMode.FULL)
        assert info.frequency_ghz == pytest.approx(2.4)
