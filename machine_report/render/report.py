"""
Rendu du rapport

Fonction pure render(snapshot, render_config) -> str: tableau à
bordures ou document JSON. Aucune E/S.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .bar import render_bar
from .table import ASCII_CHARS, DATA_WIDTH, UNICODE_CHARS, TableRenderer
from ..core.aggregator import format_gb
from ..core.config import DEFAULT_SUBTITLE, DEFAULT_TITLE
from ..core.models import Snapshot


MAX_DNS_ROWS = 5
MAX_GPU_ROWS = 3


@dataclass(frozen=True)
class RenderConfig:
    title: str = DEFAULT_TITLE
    subtitle: str = DEFAULT_SUBTITLE
    ascii: bool = False
    output_format: str = "table"  # table, json

    @classmethod
    def from_config(cls, config) -> "RenderConfig":
        """
        Args:
            config: Instance de ReportConfig (options CLI déjà appliquées)
        """
        settings = config.get_report_config()
        return cls(
            title=settings['title'],
            subtitle=settings['subtitle'],
            ascii=settings['ascii'],
            output_format=settings['format'],
        )


def render(snapshot: Snapshot, render_config: RenderConfig) -> str:
    if render_config.output_format == "json":
        return render_json(snapshot)
    return render_table(snapshot, render_config)


def cores_label(snapshot: Snapshot) -> str:
    cores = f"{snapshot.cpu.logical_cores} vCPU(s)"
    if snapshot.cpu.sockets is None:
        return cores
    return f"{cores} / {snapshot.cpu.sockets} Socket(s)"


def render_table(snapshot: Snapshot, render_config: RenderConfig) -> str:
    """
    Tableau complet, sections OS / réseau / CPU / disque / mémoire / session

    Les lignes dont la donnée est absente sont omises.
    """
    chars = ASCII_CHARS if render_config.ascii else UNICODE_CHARS
    table = TableRenderer(chars)

    def bar(value: float) -> str:
        return render_bar(value, DATA_WIDTH, chars.bar_filled, chars.bar_empty)

    os_info, cpu, network, session = snapshot.os, snapshot.cpu, snapshot.network, snapshot.session
    lines = [
        table.top_header(),
        table.header_bottom(),
        table.centered(render_config.title),
        table.centered(render_config.subtitle),
        table.top_divider(),
    ]

    lines.append(table.row("OS", f"{os_info.name} {os_info.version}"))
    lines.append(table.row("KERNEL", os_info.kernel))
    lines.append(table.row("ARCH", os_info.architecture))
    lines.append(table.middle_divider())

    lines.append(table.row("HOSTNAME", os_info.hostname))
    if network.machine_ip:
        lines.append(table.row("MACHINE IP", network.machine_ip))
    lines.append(table.row("CLIENT  IP", network.client_ip or "Not connected"))
    for index, server in enumerate(network.dns_servers[:MAX_DNS_ROWS], start=1):
        lines.append(table.row(f"DNS  IP {index}", server))
    lines.append(table.row("USER", session.username))
    lines.append(table.middle_divider())

    lines.append(table.row("PROCESSOR", cpu.brand))
    lines.append(table.row("CORES", cores_label(snapshot)))
    gpus = snapshot.gpus
    if len(gpus) == 1:
        lines.append(table.row("GPU", gpus[0]))
    elif len(gpus) <= MAX_GPU_ROWS:
        for index, gpu in enumerate(gpus, start=1):
            lines.append(table.row(f"GPU {index}", gpu))
    else:
        lines.append(table.row("GPUs", ", ".join(gpus)))
    if snapshot.hypervisor:
        lines.append(table.row("HYPERVISOR", snapshot.hypervisor))
    lines.append(table.row("CPU FREQ", f"{cpu.frequency_ghz:.1f} GHz"))
    if None not in (cpu.load_1m, cpu.load_5m, cpu.load_15m):
        lines.append(table.row("LOAD  1m", bar(cpu.load_1m)))
        lines.append(table.row("LOAD  5m", bar(cpu.load_5m)))
        lines.append(table.row("LOAD 15m", bar(cpu.load_15m)))
    lines.append(table.middle_divider())

    lines.append(table.row("VOLUME", f"{format_gb(snapshot.disk_used_bytes)}/"
                                     f"{format_gb(snapshot.disk_total_bytes)} GB [{snapshot.disk_percent:.2f}%]"))
    lines.append(table.row("DISK USAGE", bar(snapshot.disk_percent)))
    if snapshot.disk.zfs_health:
        lines.append(table.row("ZFS HEALTH", snapshot.disk.zfs_health))
    lines.append(table.middle_divider())

    lines.append(table.row("MEMORY", f"{format_gb(snapshot.mem_used_bytes)}/"
                                     f"{format_gb(snapshot.mem_total_bytes)} GiB [{snapshot.mem_percent:.1f}%]"))
    lines.append(table.row("USAGE", bar(snapshot.mem_percent)))
    lines.append(table.middle_divider())

    if session.last_login:
        lines.append(table.row("LAST LOGIN", session.last_login))
        if session.last_login_ip:
            lines.append(table.row("", session.last_login_ip))
    lines.append(table.row("UPTIME", snapshot.uptime))
    for label, value in (("SHELL", snapshot.shell), ("TERMINAL", snapshot.terminal),
                         ("LOCALE", snapshot.locale), ("BATTERY", snapshot.battery)):
        if value:
            lines.append(table.row(label, value))

    lines.append(table.footer())
    return "".join(lines)


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    """Schéma JSON fixe; les champs optionnels absents valent None"""
    cpu = snapshot.cpu
    return {
        'os': {
            'name': snapshot.os.name,
            'version': snapshot.os.version,
            'kernel': snapshot.os.kernel,
            'architecture': snapshot.os.architecture,
        },
        'network': {
            'hostname': snapshot.os.hostname,
            'machine_ip': snapshot.network.machine_ip,
            'client_ip': snapshot.network.client_ip,
            'dns_servers': list(snapshot.network.dns_servers),
        },
        'cpu': {
            'processor': cpu.brand,
            'cores': cpu.logical_cores,
            'sockets': cpu.sockets,
            'hypervisor': snapshot.hypervisor,
            'frequency_ghz': round(cpu.frequency_ghz, 2),
            'load_1m': _round(cpu.load_1m),
            'load_5m': _round(cpu.load_5m),
            'load_15m': _round(cpu.load_15m),
            'gpus': list(snapshot.gpus),
        },
        'disk': {
            'used_bytes': snapshot.disk_used_bytes,
            'total_bytes': snapshot.disk_total_bytes,
            'percent': round(snapshot.disk_percent, 2),
        },
        'memory': {
            'used_bytes': snapshot.mem_used_bytes,
            'total_bytes': snapshot.mem_total_bytes,
            'percent': round(snapshot.mem_percent, 2),
        },
        'session': {
            'username': snapshot.session.username,
            'last_login': snapshot.session.last_login,
            'uptime_seconds': snapshot.os.uptime_seconds,
            'shell': snapshot.shell,
            'terminal': snapshot.terminal,
            'locale': snapshot.locale,
            'battery': snapshot.battery,
        },
    }


def render_json(snapshot: Snapshot) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)
