"""
Sonde spécifique macOS

Ce module utilise les outils macOS :
- sysctl pour le processeur et la virtualisation
- system_profiler (sortie JSON) pour le matériel et les écrans
- scutil, ipconfig et route pour le réseau
"""

import os
import json
import platform
from typing import List, Optional, Tuple

import psutil

from . import PlatformProbe
from ...core.models import CollectMode, PlatformInfo


MACOS_CODENAMES = {
    15: 'Sequoia',
    14: 'Sonoma',
    13: 'Ventura',
    12: 'Monterey',
    11: 'Big Sur',
    10: 'Catalina',
}

VIRTUALIZATION_KEYWORDS = (
    ('vmware', 'VMware'),
    ('virtualbox', 'VirtualBox'),
    ('parallels', 'Parallels'),
    ('qemu', 'QEMU'),
    ('virtual', 'Virtual Machine'),
)


class MacOSProbe(PlatformProbe):
    """
    Sonde pour macOS

    system_profiler est coûteux (plusieurs centaines de ms): un seul appel
    SPDisplaysDataType fournit à la fois la liste des GPU et la résolution.
    """

    PLATFORM_KEY = 'macos'
    FAST_MODE_SKIPS = frozenset({
        'sockets',
        'macos_codename_fallback',
        'virtualization',
        'gpus',
        'display_resolution',
        'battery_fallback',
        'locale_fallback',
        'zfs_health',
    })

    def os_identity(self) -> Tuple[str, str]:
        version = platform.mac_ver()[0] or self._run('sw_vers', '-productVersion') or 'Unknown'
        return 'macOS', version

    def cpu_brand(self) -> Optional[str]:
        return self._first_success(
            lambda: self._run('sysctl', '-n', 'machdep.cpu.brand_string'),
            super().cpu_brand,
        )

    def socket_count(self) -> Optional[int]:
        return self._first_success(self._sockets_from_sysctl, lambda: 1)

    def _sockets_from_sysctl(self) -> Optional[int]:
        output = self._run('sysctl', '-n', 'hw.packages')
        return max(int(output), 1) if output and output.isdigit() else None

    def machine_ip(self) -> Optional[str]:
        return self._first_success(
            lambda: self._run('ipconfig', 'getifaddr', 'en0'),
            lambda: self._run('ipconfig', 'getifaddr', 'en1'),
            lambda: self._run('ipconfig', 'getifaddr', 'en2'),
            self._ip_from_default_route,
        )

    def _ip_from_default_route(self) -> Optional[str]:
        output = self._run('route', 'get', 'default')
        if not output:
            return None
        for line in output.splitlines():
            key, _, value = line.strip().partition(':')
            if key == 'interface' and value.strip():
                return self._run('ipconfig', 'getifaddr', value.strip())
        return None

    def dns_servers(self) -> List[str]:
        return self._first_success(self._dns_from_scutil, self._dns_from_resolv_conf) or []

    def _dns_from_scutil(self) -> List[str]:
        output = self._run('scutil', '--dns')
        if not output:
            return []
        servers = []
        for line in output.splitlines():
            stripped = line.strip()
            if stripped.startswith('nameserver['):
                servers.append(stripped.split(':', 1)[1].strip())
        return self._unique(servers)

    def _dns_from_resolv_conf(self) -> List[str]:
        content = self._read_file('/etc/resolv.conf') or ''
        return self._unique([line.split()[1] for line in content.splitlines()
                             if line.startswith('nameserver') and len(line.split()) >= 2])

    def last_login(self, username: str) -> Optional[Tuple[str, Optional[str]]]:
        output = self._run('last', '-1', username)
        if not output:
            return None
        line = output.splitlines()[0]
        if 'wtmp begins' in line:
            return None
        parts = line.split()
        if len(parts) < 5:
            return None
        origin = parts[2]
        if origin.startswith((':', 'console', 'tty')):
            origin = None
        return ' '.join(parts[3:7]), origin

    def is_removable(self, partition) -> bool:
        return (partition.mountpoint or '').startswith('/Volumes/')

    def collect(self, mode: CollectMode) -> PlatformInfo:
        """
        Collecte les informations étendues macOS

        Args:
            mode: Mode de collecte

        Returns:
            PlatformInfo: Faits optionnels macOS
        """
        self._start_collection()
        skipped = set()

        displays = self._gated('gpus', mode, self._displays, skipped, default=((), None))
        gpus, resolution = displays
        if self.skips('display_resolution', mode):
            skipped.add('display_resolution')
            resolution = None

        info = PlatformInfo(
            desktop_environment='Aqua',
            display_server='Quartz',
            macos_codename=self._codename(mode, skipped),
            boot_mode='Apple Silicon' if platform.machine() == 'arm64' else 'UEFI',
            virtualization=self._gated('virtualization', mode, self._virtualization, skipped),
            gpus=tuple(gpus),
            architecture=platform.machine() or None,
            terminal=self._env('TERM_PROGRAM', 'TERM'),
            shell=os.path.basename(self._env('SHELL') or '') or None,
            display_resolution=resolution,
            battery=self._with_fallback('battery', mode, skipped, self._battery_from_psutil, self._battery_from_pmset),
            locale=self._with_fallback('locale', mode, skipped, self._env_locale, self._locale_from_defaults),
            skipped=frozenset(skipped),
        )

        self._end_collection()
        return info

    def _with_fallback(self, probe_name: str, mode: CollectMode, skipped: set, fast, slow):
        """Sonde rapide, puis repli lent sauf si le mode rapide l'ignore"""
        value = self._safe_execute(fast, f"Sonde {probe_name} en échec")
        if value:
            return value
        return self._gated(f'{probe_name}_fallback', mode, slow, skipped)

    def _codename(self, mode: CollectMode, skipped: set) -> Optional[str]:
        version = platform.mac_ver()[0]
        if not version:
            version = self._gated('macos_codename_fallback', mode,
                                  lambda: self._run('sw_vers', '-productVersion'), skipped)
        if not version:
            return None
        try:
            return MACOS_CODENAMES.get(int(version.split('.')[0]))
        except ValueError:
            return None

    def _virtualization(self) -> Optional[str]:
        profile = (self._run('system_profiler', 'SPHardwareDataType') or '').lower()
        for keyword, label in VIRTUALIZATION_KEYWORDS:
            if keyword in profile:
                return label
        if self._run('sysctl', '-n', 'kern.hv_vmm_present') == '1':
            return 'Virtual Machine'
        return None

    def _displays(self) -> Tuple[Tuple[str, ...], Optional[str]]:
        """
        GPU et résolution principale à partir d'un seul appel system_profiler

        Returns:
            tuple: (noms des GPU, résolution ou None)
        """
        output = self._run('system_profiler', 'SPDisplaysDataType', '-json')
        if not output:
            return (), None

        data = json.loads(output)
        gpus = []
        resolution = None
        for controller in data.get('SPDisplaysDataType', []):
            name = controller.get('sppci_model') or controller.get('_name')
            if name:
                gpus.append(self._clean_string(name))
            for display in controller.get('spdisplays_ndrvs', []):
                value = display.get('_spdisplays_resolution') or display.get('spdisplays_resolution')
                if not value:
                    continue
                value = value.split('@')[0].replace(' ', '')
                if resolution is None or display.get('spdisplays_main') == 'spdisplays_yes':
                    resolution = value
        return tuple(self._unique(gpus)), resolution

    def _battery_from_psutil(self) -> Optional[str]:
        battery = psutil.sensors_battery()
        if battery is None:
            return None
        state = 'AC Power' if battery.power_plugged else 'Discharging'
        return f"{round(battery.percent)}% ({state})"

    def _battery_from_pmset(self) -> Optional[str]:
        output = self._run('pmset', '-g', 'batt')
        if not output:
            return None
        for line in output.splitlines():
            if '%' in line and ';' in line:
                fields = [field.strip() for field in line.split('\t')[-1].split(';')]
                return f"{fields[0]} ({fields[1].capitalize()})" if len(fields) > 1 else fields[0]
        return None

    def _locale_from_defaults(self) -> Optional[str]:
        return self._run('defaults', 'read', '-g', 'AppleLocale')
