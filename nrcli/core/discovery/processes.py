"""
Process discovery — enumerate running processes via psutil.

Read-only OS queries. A process that exits or denies access while we
inspect it is skipped; only a process table that cannot be opened at
all is fatal (``DiscoveryError``).
"""

from __future__ import annotations

import logging
import socket

import psutil

from nrcli.core.errors import DiscoveryError
from nrcli.core.models.manifest import ProcessInfo

logger = logging.getLogger(__name__)

_SKIPPABLE = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess)


def discover_processes() -> tuple[ProcessInfo, ...]:
    """Snapshot every process visible to the current user.

    Returns:
        ProcessInfo records ordered by pid.

    Raises:
        DiscoveryError: If the process table cannot be enumerated.
    """
    try:
        candidates = list(psutil.process_iter())
    except (psutil.Error, OSError) as e:
        raise DiscoveryError(f"Cannot enumerate processes: {e}") from e

    ports_by_pid = _listening_ports()

    found: list[ProcessInfo] = []
    skipped = 0
    for proc in candidates:
        try:
            with proc.oneshot():
                pid = proc.pid
                name = proc.name()
                cmdline = proc.cmdline()
        except _SKIPPABLE as e:
            skipped += 1
            logger.debug("Skipping pid %s: %s", getattr(proc, "pid", "?"), e)
            continue

        found.append(
            ProcessInfo(
                pid=pid,
                name=name or "",
                command_line=" ".join(cmdline or []),
                listening_ports=frozenset(ports_by_pid.get(pid, ())),
            )
        )

    found.sort(key=lambda p: p.pid)
    logger.info("Discovered %d processes (%d skipped)", len(found), skipped)
    return tuple(found)


def _listening_ports() -> dict[int, set[int]]:
    """Map pid → listening TCP ports and bound UDP ports.

    The connection table needs elevated privileges on some platforms
    (macOS); when it is unreadable every process simply has no ports.
    """
    try:
        connections = psutil.net_connections(kind="inet")
    except (psutil.Error, OSError) as e:
        logger.debug("Cannot read connection table, ports omitted: %s", e)
        return {}

    ports: dict[int, set[int]] = {}
    for conn in connections:
        if conn.pid is None or not conn.laddr:
            continue
        listening = (
            conn.type == socket.SOCK_STREAM and conn.status == psutil.CONN_LISTEN
        ) or (conn.type == socket.SOCK_DGRAM and not conn.raddr)
        if listening:
            ports.setdefault(conn.pid, set()).add(conn.laddr.port)
    return ports
