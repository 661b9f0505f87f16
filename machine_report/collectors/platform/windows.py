"""
Sonde spécifique Windows

Ce module utilise les API Windows spécifiques :
- WMI (Windows Management Instrumentation)
- Registre Windows
- PowerShell et commandes cmd en repli
"""

import os
import re
import platform
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psutil

from . import PlatformProbe
from ...core.models import CollectMode, PlatformInfo


BATTERY_STATUS = {
    1: 'Discharging',
    2: 'AC Power',
    3: 'Charging',
    4: 'Low',
    5: 'Critical',
    6: 'Charging',
    7: 'Charging High',
    8: 'Charging Low',
    9: 'Charging Critical',
}

VIRTUALIZATION_KEYWORDS = (
    ('vmware', 'VMware'),
    ('virtualbox', 'VirtualBox'),
    ('vbox', 'VirtualBox'),
    ('qemu', 'QEMU'),
    ('xen', 'Xen'),
    ('parallels', 'Parallels'),
)

PARENT_TERMINALS = {
    'windowsterminal': 'Windows Terminal',
    'code': 'VS Code',
    'conhost': 'Console Host',
    'cmd': 'Command Prompt',
    'powershell': 'PowerShell',
    'pwsh': 'PowerShell',
}


class WindowsProbe(PlatformProbe):
    """
    Sonde pour Windows

    Les requêtes WMI et PowerShell sont des allers-retours coûteux:
    la plupart des faits étendus sont ignorés en mode rapide.
    """

    PLATFORM_KEY = 'windows'
    FAST_MODE_SKIPS = frozenset({
        'sockets',
        'load_average',
        'last_login',
        'windows_edition',
        'boot_mode',
        'virtualization',
        'gpus',
        'display_resolution',
        'shell',
        'battery',
        'locale',
    })

    def _wmi_rows(self, wmi_class: str, properties: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Exécute une requête WMI et extrait les propriétés demandées

        COM est initialisé pour le thread courant: les collecteurs
        s'exécutent dans des threads de travail.

        Args:
            wmi_class: Classe WMI (ex: 'Win32_Processor')
            properties: Propriétés à lire sur chaque instance

        Returns:
            list: Un dictionnaire par instance
        """
        try:
            import pythoncom
            import wmi
        except ImportError:
            self.logger.info("Module WMI non disponible")
            return []

        pythoncom.CoInitialize()
        try:
            connection = wmi.WMI()
            return [
                {name: getattr(instance, name, None) for name in properties}
                for instance in getattr(connection, wmi_class)(list(properties))
            ]
        finally:
            pythoncom.CoUninitialize()

    def _wmi_first(self, wmi_class: str, properties: Sequence[str]) -> Dict[str, Any]:
        rows = self._wmi_rows(wmi_class, properties)
        return rows[0] if rows else {}

    def _powershell(self, command: str) -> Optional[str]:
        return self._run('powershell', '-NoProfile', '-Command', command)

    def _registry_value(self, key_path: str, value_name: str) -> Any:
        import winreg
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path) as key:
            return winreg.QueryValueEx(key, value_name)[0]

    def os_identity(self) -> Tuple[str, str]:
        release, version = platform.release(), platform.version()
        return f"Windows {release}".strip(), version or 'Unknown'

    def kernel(self) -> str:
        return platform.version() or 'Unknown'

    def cpu_brand(self) -> Optional[str]:
        # Registre (lecture locale) avant WMI (aller-retour COM)
        return self._first_success(
            lambda: self._clean_string(self._registry_value(
                r'HARDWARE\DESCRIPTION\System\CentralProcessor\0', 'ProcessorNameString')),
            lambda: self._clean_string(self._wmi_first('Win32_Processor', ['Name']).get('Name')),
            super().cpu_brand,
        )

    def socket_count(self) -> Optional[int]:
        return len(self._wmi_rows('Win32_Processor', ['SocketDesignation'])) or None

    def load_averages(self, mode: CollectMode, usage_percent: float, logical_cores: int):
        """
        Windows n'a pas de charge moyenne: l'utilisation mesurée la remplace
        en mode complet; en mode rapide l'échantillon n'est pas fiable.
        """
        if self.skips('load_average', mode):
            return None
        usage = min(max(usage_percent, 0.0), 100.0)
        return usage, usage, usage

    def machine_ip(self) -> Optional[str]:
        return self._first_success(self._ip_from_powershell, self._ip_from_ipconfig)

    def _ip_from_powershell(self) -> Optional[str]:
        output = self._powershell(
            "Get-NetIPAddress -AddressFamily IPv4 | "
            "Where-Object { $_.IPAddress -ne '127.0.0.1' -and $_.PrefixOrigin -ne 'WellKnown' } | "
            "Select-Object -First 1 -ExpandProperty IPAddress"
        )
        return output.splitlines()[0].strip() if output else None

    def _ip_from_ipconfig(self) -> Optional[str]:
        output = self._run('ipconfig')
        if not output:
            return None
        for line in output.splitlines():
            if 'IPv4 Address' in line and ':' in line:
                address = line.split(':', 1)[1].strip()
                if address and address != '127.0.0.1':
                    return address
        return None

    def dns_servers(self) -> List[str]:
        return self._first_success(self._dns_from_powershell, self._dns_from_ipconfig) or []

    def _dns_from_powershell(self) -> List[str]:
        output = self._powershell(
            "Get-DnsClientServerAddress -AddressFamily IPv4 | "
            "Select-Object -ExpandProperty ServerAddresses"
        )
        if not output:
            return []
        return self._unique([line.strip() for line in output.splitlines()])

    def _dns_from_ipconfig(self) -> List[str]:
        output = self._run('ipconfig', '/all')
        if not output:
            return []
        servers = []
        in_section = False
        for line in output.splitlines():
            # Les libellés sont séparés par " : ", les lignes de continuation n'en ont pas
            if ' : ' in line:
                label, _, value = line.partition(' : ')
                in_section = 'DNS Servers' in label
                if in_section and value.strip():
                    servers.append(value.strip())
            elif in_section and line.strip():
                servers.append(line.strip())
            else:
                in_section = False
        return self._unique(servers)

    def last_login(self, username: str) -> Optional[Tuple[str, Optional[str]]]:
        output = self._run('net', 'user', os.environ.get('USERNAME', username))
        if not output:
            return None
        for line in output.splitlines():
            if line.startswith('Last logon'):
                parts = line.split()
                if len(parts) > 2:
                    return ' '.join(parts[2:]), None
        return None

    def zfs_health(self) -> Optional[str]:
        return None

    def collect(self, mode: CollectMode) -> PlatformInfo:
        """
        Collecte les informations étendues Windows

        Args:
            mode: Mode de collecte

        Returns:
            PlatformInfo: Faits optionnels Windows
        """
        self._start_collection()
        skipped = set()

        gpus, resolution = self._gated('gpus', mode, self._video_controllers, skipped, default=((), None))
        if self.skips('display_resolution', mode):
            skipped.add('display_resolution')
            resolution = None

        info = PlatformInfo(
            desktop_environment='Windows Shell',
            display_server='DWM',
            windows_edition=self._gated('windows_edition', mode, self._edition, skipped),
            boot_mode=self._gated('boot_mode', mode, self._boot_mode, skipped),
            virtualization=self._gated('virtualization', mode, self._virtualization, skipped),
            gpus=tuple(gpus),
            architecture=platform.machine() or None,
            terminal=self._safe_execute(self._terminal, "Terminal"),
            shell=self._gated('shell', mode, self._shell, skipped),
            display_resolution=resolution,
            battery=self._gated('battery', mode, self._battery, skipped),
            locale=self._gated('locale', mode, self._locale, skipped),
            skipped=frozenset(skipped),
        )

        self._end_collection()
        return info

    def _edition(self) -> Optional[str]:
        return self._first_success(
            lambda: self._clean_string(self._wmi_first('Win32_OperatingSystem', ['Caption']).get('Caption')),
            lambda: self._powershell("(Get-CimInstance Win32_OperatingSystem).Caption"),
        )

    def _boot_mode(self) -> Optional[str]:
        return self._first_success(self._boot_mode_from_registry, self._boot_mode_from_bcdedit)

    def _boot_mode_from_registry(self) -> Optional[str]:
        # PEFirmwareType: 1 = BIOS, 2 = UEFI
        firmware = self._registry_value(r'SYSTEM\CurrentControlSet\Control', 'PEFirmwareType')
        return {1: 'Legacy BIOS', 2: 'UEFI'}.get(firmware)

    def _boot_mode_from_bcdedit(self) -> Optional[str]:
        output = self._run('bcdedit', '/enum', '{current}')
        if not output:
            return None
        return 'UEFI' if 'winload.efi' in output.lower() else 'Legacy BIOS'

    def _virtualization(self) -> Optional[str]:
        system = self._wmi_first('Win32_ComputerSystem', ['Manufacturer', 'Model', 'HypervisorPresent'])
        description = f"{system.get('Manufacturer') or ''}|{system.get('Model') or ''}".lower()
        for keyword, label in VIRTUALIZATION_KEYWORDS:
            if keyword in description:
                return label
        if 'microsoft' in description and 'virtual' in description:
            return 'Hyper-V'
        if system.get('HypervisorPresent'):
            return 'Hypervisor Present'
        return None

    def _video_controllers(self) -> Tuple[Tuple[str, ...], Optional[str]]:
        """
        GPU et résolution à partir d'une seule requête Win32_VideoController

        Returns:
            tuple: (noms des GPU, résolution ou None)
        """
        rows = self._wmi_rows('Win32_VideoController',
                              ['Name', 'CurrentHorizontalResolution', 'CurrentVerticalResolution'])
        gpus = self._unique([self._clean_string(row.get('Name')) for row in rows])
        resolution = None
        for row in rows:
            width, height = row.get('CurrentHorizontalResolution'), row.get('CurrentVerticalResolution')
            if width and height:
                resolution = f"{width}x{height}"
                break
        return tuple(gpus), resolution

    def _terminal(self) -> Optional[str]:
        if self._env('WT_SESSION'):
            return 'Windows Terminal'
        if self._env('TERM_PROGRAM') == 'vscode':
            return 'VS Code'
        if self._env('ConEmuPID'):
            return 'ConEmu'
        parent = psutil.Process().parent()
        if parent is not None:
            name = os.path.splitext(parent.name())[0].lower()
            return PARENT_TERMINALS.get(name, name or 'Console')
        return 'Console'

    def _shell(self) -> Optional[str]:
        shell = self._env('SHELL')
        if shell and 'bash' in shell:
            output = self._run('bash', '--version') or ''
            match = re.search(r'version (\d+(?:\.\d+)*)', output)
            return f"bash {match.group(1)}" if match else 'bash'
        version = self._powershell("$PSVersionTable.PSVersion.ToString()")
        return f"PowerShell {version}" if version else 'PowerShell'

    def _battery(self) -> Optional[str]:
        battery = self._wmi_first('Win32_Battery', ['EstimatedChargeRemaining', 'BatteryStatus'])
        charge = battery.get('EstimatedChargeRemaining')
        if charge is None:
            return None
        status = BATTERY_STATUS.get(battery.get('BatteryStatus'))
        return f"{charge}% ({status})" if status else f"{charge}%"

    def _locale(self) -> Optional[str]:
        return self._powershell("(Get-Culture).Name")
