"""Tests for the per-OS probes: fallback chains, fast-mode gating, single expensive calls."""

import json
from collections import namedtuple
from unittest.mock import patch

import pytest

from machine_report.collectors.platform import GenericProbe, PlatformProbe, select_probe_class
from machine_report.collectors.platform.linux import LinuxProbe
from machine_report.collectors.platform.macos import MacOSProbe
from machine_report.collectors.platform.windows import WindowsProbe
from machine_report.core.models import CollectMode


Partition = namedtuple("Partition", "device mountpoint fstype opts")


def with_files(probe, files):
    """Replace file reads on a probe with an in-memory mapping."""
    probe._read_file = lambda path: files.get(path)
    return probe


class TestSelectProbeClass:
    @pytest.mark.parametrize("platform_name,expected", [
        ("linux", LinuxProbe),
        ("darwin", MacOSProbe),
        ("win32", WindowsProbe),
        ("freebsd13", GenericProbe),
    ])
    def test_selection(self, platform_name, expected):
        assert select_probe_class(platform_name) is expected

    def test_generic_probe_returns_empty_info(self, config, logger, runner):
        info = GenericProbe(config, logger, runner).collect(CollectMode.FULL)
        assert info.gpus == ()
        assert info.virtualization is None


class TestFastSkipConfiguration:
    def test_builtin_list(self, config, logger, runner):
        probe = LinuxProbe(config, logger, runner)
        assert probe.fast_skips == LinuxProbe.FAST_MODE_SKIPS
        assert probe.skips("sockets", CollectMode.FAST)
        assert not probe.skips("sockets", CollectMode.FULL)

    def test_config_override(self, config, logger, runner):
        config.set("collection", "fast_skip_linux", "gpus, zfs_health")
        probe = LinuxProbe(config, logger, runner)
        assert probe.fast_skips == frozenset({"gpus", "zfs_health"})
        assert not probe.skips("sockets", CollectMode.FAST)


class TestPosixLoadAverages:
    def test_normalized_and_capped(self, config, logger, runner):
        probe = with_files(PlatformProbe(config, logger, runner), {"/proc/loadavg": "2.00 4.00 16.00 1/100 42"})
        assert probe.load_averages(CollectMode.FAST, 0.0, 4) == (50.0, 100.0, 100.0)

    def test_getloadavg_fallback(self, config, logger, runner):
        probe = with_files(PlatformProbe(config, logger, runner), {})
        with patch("machine_report.collectors.platform.os.getloadavg", return_value=(1.0, 0.5, 0.25)):
            assert probe.load_averages(CollectMode.FULL, 0.0, 2) == (50.0, 25.0, 12.5)

    def test_all_methods_fail(self, config, logger, runner):
        probe = with_files(PlatformProbe(config, logger, runner), {})
        with patch("machine_report.collectors.platform.os.getloadavg", side_effect=OSError):
            assert probe.load_averages(CollectMode.FULL, 0.0, 2) is None


class TestLinuxProbe:
    @pytest.fixture
    def probe(self, config, logger, runner):
        return with_files(LinuxProbe(config, logger, runner), {})

    def test_os_identity_from_os_release(self, config, logger, runner):
        probe = with_files(LinuxProbe(config, logger, runner), {
            "/etc/os-release": 'NAME="Ubuntu"\nVERSION_ID="24.04"\nID=ubuntu\n',
        })
        assert probe.os_identity() == ("Ubuntu", "24.04")

    def test_sockets_from_lscpu(self, probe, runner):
        runner.outputs[("lscpu",)] = "Architecture:  x86_64\nSocket(s):     2\n"
        assert probe.socket_count() == 2

    def test_sockets_from_cpuinfo(self, config, logger, runner):
        probe = with_files(LinuxProbe(config, logger, runner), {
            "/proc/cpuinfo": "processor : 0\nphysical id : 0\nprocessor : 1\nphysical id : 1\n",
        })
        assert probe.socket_count() == 2

    def test_sockets_constant_default(self, probe):
        assert probe.socket_count() == 1

    def test_machine_ip_from_hostname(self, probe, runner):
        runner.outputs[("hostname", "-I")] = "127.0.0.1 192.168.1.5 fe80::1"
        assert probe.machine_ip() == "192.168.1.5"

    def test_machine_ip_falls_back_to_route(self, probe, runner):
        runner.outputs[("ip", "route", "get", "1")] = "1.0.0.0 via 10.0.0.1 dev eth0 src 10.0.0.42 uid 1000"
        assert probe.machine_ip() == "10.0.0.42"
        assert runner.called("hostname")

    def test_machine_ip_all_fail(self, probe):
        assert probe.machine_ip() is None

    def test_dns_from_resolv_conf_keeps_first_seen_order(self, config, logger, runner):
        probe = with_files(LinuxProbe(config, logger, runner), {
            "/etc/resolv.conf": "# generated\nnameserver 9.9.9.9\nnameserver 1.1.1.1\nnameserver 9.9.9.9\nsearch lan\n",
        })
        assert probe.dns_servers() == ["9.9.9.9", "1.1.1.1"]
        assert not runner.called("resolvectl")

    def test_dns_from_resolvectl(self, probe, runner):
        runner.outputs[("resolvectl", "status")] = (
            "Global\n"
            "       Protocols: +LLMNR\n"
            "Current DNS Server: 192.168.1.1\n"
            "       DNS Servers: 192.168.1.1 2001:4860:4860::8888\n"
            "                    8.8.4.4\n"
            "        DNS Domain: lan\n"
        )
        assert probe.dns_servers() == ["192.168.1.1", "2001:4860:4860::8888", "8.8.4.4"]

    def test_last_login_never_logged_in(self, probe, runner):
        runner.outputs[("lastlog", "-u", "alice")] = (
            "Username         Port     From             Latest\n"
            "alice                                      **Never logged in**\n"
        )
        assert probe.last_login("alice") == ("Never logged in", None)

    def test_last_login_from_last_hides_local_tty(self, probe, runner):
        runner.outputs[("last", "-1", "alice")] = "alice    pts/0        pts/1    Mon Jan  6 09:12   still logged in\n"
        assert probe.last_login("alice") == ("Mon Jan 6 09:12", None)

    def test_last_login_prefers_lastlog2(self, probe, runner):
        runner.outputs[("lastlog2", "--user", "alice")] = (
            "Username Time                TTY   Remote host\n"
            "alice    2024-01-06 09:12:00 pts/0 10.0.0.7\n"
        )
        assert probe.last_login("alice") == ("2024-01-06 09:12:00 pts/0", "10.0.0.7")
        assert not runner.called("lastlog")

    def test_removable_from_sysfs(self, config, logger, runner):
        probe = with_files(LinuxProbe(config, logger, runner), {"/sys/block/sdb/removable": "1"})
        assert probe.is_removable(Partition("/dev/sdb1", "/media/usb", "vfat", "rw"))
        assert not probe.is_removable(Partition("/dev/nvme0n1p2", "/", "ext4", "rw"))

    def test_fast_mode_skips_slow_probes(self, probe, runner, monkeypatch):
        monkeypatch.setenv("DISPLAY", ":0")
        runner.outputs[("lspci",)] = "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 620"
        info = probe.collect(CollectMode.FAST)
        assert info.gpus == ()
        assert info.display_resolution is None
        assert {"gpus", "display_resolution"} <= info.skipped
        assert not runner.called("lspci")
        assert not runner.called("xrandr")

    def test_full_mode_collects_gpus_and_resolution(self, probe, runner, monkeypatch):
        monkeypatch.delenv("XDG_SESSION_TYPE", raising=False)
        monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)
        monkeypatch.setenv("DISPLAY", ":0")
        runner.outputs[("lspci",)] = (
            "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 620\n"
            "01:00.0 3D controller: NVIDIA Corporation GP108M\n"
            "00:1f.3 Audio device: Intel Corporation Sunrise Point\n"
        )
        runner.outputs[("xrandr", "--current")] = (
            "Screen 0: minimum 320 x 200\n"
            "eDP-1 connected primary 1920x1080+0+0\n"
            "   1920x1080     60.01*+\n"
        )
        info = probe.collect(CollectMode.FULL)
        assert info.gpus == ("Intel Corporation UHD Graphics 620", "NVIDIA Corporation GP108M")
        assert info.display_resolution == "1920x1080"
        assert info.display_server == "X11"
        assert info.skipped == frozenset()


SP_DISPLAYS = {
    "SPDisplaysDataType": [
        {
            "_name": "Apple M2",
            "sppci_model": "Apple M2",
            "spdisplays_ndrvs": [
                {"_name": "Color LCD", "_spdisplays_resolution": "2560 x 1664 @ 60.00Hz",
                 "spdisplays_main": "spdisplays_yes"},
            ],
        }
    ]
}


class TestMacOSProbe:
    @pytest.fixture
    def probe(self, config, logger, runner, monkeypatch):
        monkeypatch.setenv("LANG", "fr_FR.UTF-8")
        monkeypatch.delenv("LC_ALL", raising=False)
        monkeypatch.delenv("LC_MESSAGES", raising=False)
        runner.outputs[("system_profiler", "SPDisplaysDataType", "-json")] = json.dumps(SP_DISPLAYS)
        runner.outputs[("sw_vers", "-productVersion")] = "14.5"
        runner.outputs[("sysctl", "-n", "kern.hv_vmm_present")] = "0"
        runner.outputs[("pmset", "-g", "batt")] = (
            "Now drawing from 'Battery Power'\n"
            " -InternalBattery-0 (id=1234)\t87%; discharging; 4:12 remaining present: true\n"
        )
        with patch("machine_report.collectors.platform.macos.platform.mac_ver", return_value=("", ("", "", ""), "")), \
                patch("machine_report.collectors.platform.macos.psutil.sensors_battery", return_value=None):
            yield MacOSProbe(config, logger, runner)

    def test_full_mode_single_display_call(self, probe, runner):
        info = probe.collect(CollectMode.FULL)
        assert info.gpus == ("Apple M2",)
        assert info.display_resolution == "2560x1664"
        assert len(runner.called("system_profiler", "SPDisplaysDataType")) == 1
        assert info.macos_codename == "Sonoma"
        assert info.virtualization is None
        assert info.battery == "87% (Discharging)"
        assert info.locale == "fr_FR"

    def test_fast_mode_never_spawns_system_profiler(self, probe, runner):
        info = probe.collect(CollectMode.FAST)
        assert not runner.called("system_profiler")
        assert not runner.called("pmset")
        assert info.gpus == ()
        assert info.display_resolution is None
        assert info.virtualization is None
        assert info.macos_codename is None
        assert {"gpus", "display_resolution", "virtualization", "battery_fallback"} <= info.skipped
        # environment-based locale is fast
        assert info.locale == "fr_FR"

    def test_dns_from_scutil(self, probe, runner):
        runner.outputs[("scutil", "--dns")] = (
            "resolver #1\n"
            "  nameserver[0] : 192.168.1.1\n"
            "  nameserver[1] : 1.1.1.1\n"
            "resolver #2\n"
            "  nameserver[0] : 192.168.1.1\n"
        )
        assert probe.dns_servers() == ["192.168.1.1", "1.1.1.1"]

    def test_machine_ip_fallback_through_interfaces(self, probe, runner):
        runner.outputs[("ipconfig", "getifaddr", "en1")] = "10.0.0.8"
        assert probe.machine_ip() == "10.0.0.8"
        assert runner.called("ipconfig", "getifaddr", "en0")

    def test_machine_ip_from_default_route(self, probe, runner):
        runner.outputs[("route", "get", "default")] = "   route to: default\n  interface: en5\n"
        runner.outputs[("ipconfig", "getifaddr", "en5")] = "172.16.0.3"
        assert probe.machine_ip() == "172.16.0.3"


class TestWindowsProbe:
    @pytest.fixture
    def probe(self, config, logger, runner, monkeypatch):
        monkeypatch.setenv("WT_SESSION", "1")
        probe = WindowsProbe(config, logger, runner)
        probe.wmi_calls = []

        def fake_wmi_rows(wmi_class, properties):
            probe.wmi_calls.append(wmi_class)
            return {
                "Win32_VideoController": [
                    {"Name": "NVIDIA GeForce RTX 3060", "CurrentHorizontalResolution": 2560,
                     "CurrentVerticalResolution": 1440},
                    {"Name": "Intel UHD Graphics", "CurrentHorizontalResolution": None,
                     "CurrentVerticalResolution": None},
                ],
                "Win32_Battery": [{"EstimatedChargeRemaining": 87, "BatteryStatus": 6}],
                "Win32_OperatingSystem": [{"Caption": "Microsoft Windows 11 Pro"}],
                "Win32_ComputerSystem": [{"Manufacturer": "VMware, Inc.", "Model": "VMware7,1",
                                          "HypervisorPresent": True}],
                "Win32_Processor": [{"SocketDesignation": "CPU0", "Name": "AMD Ryzen 9 7950X"},
                                    {"SocketDesignation": "CPU1", "Name": "AMD Ryzen 9 7950X"}],
            }.get(wmi_class, [])

        probe._wmi_rows = fake_wmi_rows
        probe._registry_value = lambda key, name: 2
        return probe

    def test_load_average_substituted_in_full_mode(self, probe):
        assert probe.load_averages(CollectMode.FULL, 42.0, 8) == (42.0, 42.0, 42.0)

    def test_load_average_absent_in_fast_mode(self, probe):
        assert probe.load_averages(CollectMode.FAST, 42.0, 8) is None

    def test_socket_count(self, probe):
        assert probe.socket_count() == 2

    def test_full_mode(self, probe, runner):
        runner.outputs[("powershell", "-NoProfile", "-Command", "(Get-Culture).Name")] = "en-US"
        runner.outputs[("powershell", "-NoProfile", "-Command", "$PSVersionTable.PSVersion.ToString()")] = "5.1.22621"
        info = probe.collect(CollectMode.FULL)
        assert info.gpus == ("NVIDIA GeForce RTX 3060", "Intel UHD Graphics")
        assert info.display_resolution == "2560x1440"
        assert probe.wmi_calls.count("Win32_VideoController") == 1
        assert info.battery == "87% (Charging)"
        assert info.windows_edition == "Microsoft Windows 11 Pro"
        assert info.boot_mode == "UEFI"
        assert info.virtualization == "VMware"
        assert info.locale == "en-US"
        assert info.terminal == "Windows Terminal"

    def test_fast_mode_skips_management_queries(self, probe, runner):
        info = probe.collect(CollectMode.FAST)
        assert probe.wmi_calls == []
        assert runner.calls == []
        for field in ("windows_edition", "boot_mode", "virtualization", "display_resolution",
                      "shell", "battery", "locale"):
            assert getattr(info, field) is None
        assert info.gpus == ()
        assert info.terminal == "Windows Terminal"

    def test_dns_from_ipconfig(self, probe, runner):
        runner.outputs[("ipconfig", "/all")] = (
            "Ethernet adapter Ethernet:\n"
            "   IPv4 Address. . . . . . . . . . . : 192.168.1.20(Preferred)\n"
            "   DNS Servers . . . . . . . . . . . : 192.168.1.1\n"
            "                                       fd00::1\n"
            "   NetBIOS over Tcpip. . . . . . . . : Enabled\n"
            "Wireless LAN adapter Wi-Fi:\n"
            "   DNS Servers . . . . . . . . . . . : 192.168.1.1\n"
        )
        assert probe.dns_servers() == ["192.168.1.1", "fd00::1"]

    def test_last_login_from_net_user(self, probe, runner, monkeypatch):
        monkeypatch.setenv("USERNAME", "bob")
        runner.outputs[("net", "user", "bob")] = (
            "User name                    bob\n"
            "Last logon                   1/6/2025 9:12:03 AM\n"
        )
        assert probe.last_login("bob") == ("1/6/2025 9:12:03 AM", None)

    def test_cpu_brand_from_registry_without_wmi(self, probe):
        probe._registry_value = lambda key, name: "  Intel(R) Core(TM) i7-12700K  "
        assert probe.cpu_brand() == "Intel(R) Core(TM) i7-12700K"
        assert "Win32_Processor" not in probe.wmi_calls

    def test_cpu_brand_falls_back_to_wmi(self, probe):
        def missing_key(key, name):
            raise OSError("registry key not found")

        probe._registry_value = missing_key
        assert probe.cpu_brand() == "AMD Ryzen 9 7950X"
        assert probe.wmi_calls == ["Win32_Processor"]
