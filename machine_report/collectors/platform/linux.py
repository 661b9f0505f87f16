"""
Sonde spécifique Linux

Ce module utilise les interfaces Linux spécifiques :
- Systèmes de fichiers /proc et /sys
- Fichiers de configuration (/etc/os-release, /etc/resolv.conf)
- Commandes Unix standard (lscpu, ip, lastlog, lspci, xrandr)
"""

import os
import re
import glob
import platform
from typing import List, Optional, Tuple

import psutil

from . import PlatformProbe
from ...core.models import CollectMode, PlatformInfo


VIRTUALIZATION_PRODUCTS = (
    ('virtualbox', 'VirtualBox'),
    ('vmware', 'VMware'),
    ('kvm', 'KVM'),
    ('qemu', 'QEMU'),
    ('hyper-v', 'Hyper-V'),
    ('virtual machine', 'Hyper-V'),
    ('xen', 'Xen'),
    ('parallels', 'Parallels'),
)

GPU_CLASSES = ('VGA compatible controller', '3D controller', 'Display controller')


class LinuxProbe(PlatformProbe):
    """
    Sonde pour Linux

    Privilégie /proc, /sys et l'environnement; les commandes externes
    ne servent que de repli ou pour les faits sans interface native.
    """

    PLATFORM_KEY = 'linux'
    FAST_MODE_SKIPS = frozenset({'sockets', 'gpus', 'display_resolution', 'zfs_health'})

    def os_identity(self) -> Tuple[str, str]:
        """
        Distribution et version depuis /etc/os-release

        Returns:
            tuple: (nom, version)
        """
        release = self._parse_os_release()
        name = release.get('NAME') or 'Linux'
        version = release.get('VERSION_ID') or release.get('VERSION') or platform.release() or 'Unknown'
        return name, version

    def _parse_os_release(self) -> dict:
        values = {}
        content = self._read_file('/etc/os-release') or self._read_file('/usr/lib/os-release')
        if not content:
            return values
        for line in content.splitlines():
            if '=' in line and not line.startswith('#'):
                key, value = line.split('=', 1)
                values[key.strip()] = value.strip().strip('"\'')
        return values

    def cpu_brand(self) -> Optional[str]:
        return self._first_success(self._brand_from_cpuinfo, self._brand_from_lscpu, super().cpu_brand)

    def _brand_from_cpuinfo(self) -> Optional[str]:
        content = self._read_file('/proc/cpuinfo')
        if not content:
            return None
        for line in content.splitlines():
            key, _, value = line.partition(':')
            if key.strip() in ('model name', 'Hardware', 'cpu model'):
                return self._clean_string(value) or None
        return None

    def _brand_from_lscpu(self) -> Optional[str]:
        return self._lscpu_field('Model name')

    def _lscpu_field(self, field: str) -> Optional[str]:
        output = self._run('lscpu')
        if not output:
            return None
        for line in output.splitlines():
            key, _, value = line.partition(':')
            if key.strip() == field:
                return value.strip() or None
        return None

    def socket_count(self) -> Optional[int]:
        return self._first_success(self._sockets_from_lscpu, self._sockets_from_cpuinfo, lambda: 1)

    def _sockets_from_lscpu(self) -> Optional[int]:
        value = self._lscpu_field('Socket(s)')
        return int(value) if value and value.isdigit() and int(value) > 0 else None

    def _sockets_from_cpuinfo(self) -> Optional[int]:
        content = self._read_file('/proc/cpuinfo')
        if not content:
            return None
        ids = {line.split(':', 1)[1].strip() for line in content.splitlines() if line.startswith('physical id')}
        return len(ids) or None

    def machine_ip(self) -> Optional[str]:
        return self._first_success(self._ip_from_hostname, self._ip_from_route)

    def _ip_from_hostname(self) -> Optional[str]:
        output = self._run('hostname', '-I')
        if not output:
            return None
        for token in output.split():
            if token != '127.0.0.1' and ':' not in token:
                return token
        return None

    def _ip_from_route(self) -> Optional[str]:
        output = self._run('ip', 'route', 'get', '1')
        if not output:
            return None
        match = re.search(r'\bsrc\s+(\S+)', output)
        return match.group(1) if match else None

    def dns_servers(self) -> List[str]:
        return self._first_success(self._dns_from_resolv_conf, self._dns_from_resolvectl) or []

    def _dns_from_resolv_conf(self) -> List[str]:
        content = self._read_file('/etc/resolv.conf')
        if not content:
            return []
        servers = []
        for line in content.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] == 'nameserver':
                servers.append(parts[1])
        return self._unique(servers)

    def _dns_from_resolvectl(self) -> List[str]:
        output = self._run('resolvectl', 'status')
        if not output:
            return []
        servers = []
        in_list = False
        for line in output.splitlines():
            stripped = line.strip()
            # Les adresses IPv6 ne contiennent jamais ": "
            label, sep, rest = stripped.partition(': ')
            if sep and label in ('Current DNS Server', 'DNS Servers'):
                servers.extend(rest.split())
                in_list = label == 'DNS Servers'
            elif in_list and stripped and not sep:
                servers.extend(stripped.split())
            else:
                in_list = False
        return self._unique([server.split('#')[0] for server in servers])

    def last_login(self, username: str) -> Optional[Tuple[str, Optional[str]]]:
        return self._first_success(
            lambda: self._last_login_lastlog2(username),
            lambda: self._last_login_lastlog(username),
            lambda: self._last_login_last(username),
        )

    def _last_login_lastlog2(self, username: str):
        output = self._run('lastlog2', '--user', username)
        lines = output.splitlines() if output else []
        if len(lines) < 2:
            return None
        parts = lines[1].split()
        if len(parts) < 4:
            return None
        return ' '.join(parts[1:4]), (parts[4] if len(parts) > 4 else None)

    def _last_login_lastlog(self, username: str):
        output = self._run('lastlog', '-u', username)
        lines = output.splitlines() if output else []
        if len(lines) < 2:
            return None
        line = lines[1]
        if 'Never logged in' in line:
            return 'Never logged in', None
        parts = line.split()
        if len(parts) < 5:
            return None
        # Username Port From Latest
        return ' '.join(parts[3:]), parts[2]

    def _last_login_last(self, username: str):
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
        if origin.startswith((':', 'pts', 'tty')):
            origin = None
        return ' '.join(parts[3:7]), origin

    def is_removable(self, partition) -> bool:
        device = os.path.basename(partition.device or '')
        match = re.match(r'(nvme\d+n\d+|mmcblk\d+|[a-z]+)', device)
        if not match:
            return False
        return self._read_file(f'/sys/block/{match.group(1)}/removable') == '1'

    def collect(self, mode: CollectMode) -> PlatformInfo:
        """
        Collecte les informations étendues Linux

        Args:
            mode: Mode de collecte

        Returns:
            PlatformInfo: Faits optionnels Linux
        """
        self._start_collection()
        skipped = set()

        display_server = self._safe_execute(self._display_server, "Serveur d'affichage")

        info = PlatformInfo(
            desktop_environment=self._safe_execute(self._desktop_environment, "Environnement de bureau"),
            display_server=display_server,
            boot_mode=self._safe_execute(self._boot_mode, "Mode de démarrage"),
            virtualization=self._safe_execute(self._virtualization, "Virtualisation"),
            gpus=tuple(self._gated('gpus', mode, self._gpus, skipped, default=[]) or ()),
            architecture=platform.machine() or None,
            terminal=self._env('TERM_PROGRAM', 'TERM'),
            shell=self._shell(),
            display_resolution=self._gated(
                'display_resolution', mode, lambda: self._display_resolution(display_server), skipped),
            battery=self._first_success(self._battery_from_psutil, self._battery_from_sysfs),
            locale=self._env_locale(),
            skipped=frozenset(skipped),
        )

        self._end_collection()
        return info

    def _desktop_environment(self) -> Optional[str]:
        value = self._env('XDG_CURRENT_DESKTOP', 'DESKTOP_SESSION')
        if value:
            return value.split(':')[0]
        if self._env('GNOME_DESKTOP_SESSION_ID'):
            return 'GNOME'
        if self._env('KDE_FULL_SESSION'):
            return 'KDE'
        return None

    def _display_server(self) -> Optional[str]:
        session_type = self._env('XDG_SESSION_TYPE')
        if session_type and session_type != 'tty':
            return session_type.capitalize() if session_type != 'x11' else 'X11'
        if self._env('WAYLAND_DISPLAY'):
            return 'Wayland'
        if self._env('DISPLAY'):
            return 'X11'
        return None

    def _boot_mode(self) -> str:
        return 'UEFI' if os.path.isdir('/sys/firmware/efi') else 'Legacy BIOS'

    def _virtualization(self) -> Optional[str]:
        product = (self._read_file('/sys/class/dmi/id/product_name') or '').lower()
        vendor = (self._read_file('/sys/class/dmi/id/sys_vendor') or '').lower()
        for keyword, label in VIRTUALIZATION_PRODUCTS:
            if keyword in product or keyword in vendor:
                return label
        cpuinfo = self._read_file('/proc/cpuinfo') or ''
        if re.search(r'^flags\s*:.*\bhypervisor\b', cpuinfo, re.MULTILINE):
            return 'Virtual Machine'
        return None

    def _gpus(self) -> List[str]:
        output = self._run('lspci')
        if not output:
            return []
        gpus = []
        for line in output.splitlines():
            for gpu_class in GPU_CLASSES:
                if gpu_class in line:
                    gpus.append(self._clean_string(line.split(gpu_class, 1)[1].lstrip(': ')))
        return self._unique(gpus)

    def _display_resolution(self, display_server: Optional[str]) -> Optional[str]:
        if not display_server:
            return None
        output = self._run('xrandr', '--current')
        if not output:
            return None
        for line in output.splitlines():
            if '*' in line:
                return line.split()[0]
        return None

    def _shell(self) -> Optional[str]:
        shell = self._env('SHELL')
        return os.path.basename(shell) if shell else None

    def _battery_from_psutil(self) -> Optional[str]:
        battery = psutil.sensors_battery()
        if battery is None:
            return None
        state = 'AC Power' if battery.power_plugged else 'Discharging'
        return f"{round(battery.percent)}% ({state})"

    def _battery_from_sysfs(self) -> Optional[str]:
        for path in sorted(glob.glob('/sys/class/power_supply/BAT*')):
            capacity = self._read_file(os.path.join(path, 'capacity'))
            if capacity:
                status = self._read_file(os.path.join(path, 'status')) or 'Unknown'
                return f"{capacity}% ({status})"
        return None
