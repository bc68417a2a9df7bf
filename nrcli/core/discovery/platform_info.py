"""
Platform facts — OS, distribution and kernel of the current host.

Every lookup is best-effort: a fact that cannot be read becomes an
empty string so the manifest can still be built.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

# Distro ID → platform family
_FAMILY_MAP: dict[str, str] = {
    "ubuntu": "debian",
    "debian": "debian",
    "linuxmint": "debian",
    "raspbian": "debian",
    "pop": "debian",
    "rhel": "rhel",
    "centos": "rhel",
    "rocky": "rhel",
    "almalinux": "rhel",
    "ol": "rhel",
    "amzn": "rhel",
    "fedora": "fedora",
    "sles": "suse",
    "opensuse": "suse",
    "opensuse-leap": "suse",
    "opensuse-tumbleweed": "suse",
    "arch": "arch",
    "manjaro": "arch",
    "alpine": "alpine",
}


@dataclass(frozen=True)
class HostFacts:
    """Static host facts, as consumed by the manifest builder."""

    os: str = ""
    platform: str = ""
    platform_family: str = ""
    platform_version: str = ""
    kernel_arch: str = ""
    kernel_version: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def read_os_release(path: Path = OS_RELEASE_PATH) -> dict[str, str]:
    """Parse an os-release file into a dict (quotes stripped)."""
    data: dict[str, str] = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            data[key] = value.strip().strip('"').strip("'")
    return data


def platform_family(distro_id: str, id_like: str = "") -> str:
    """Map a distro ID (or its ID_LIKE fallbacks) to a family name."""
    if distro_id in _FAMILY_MAP:
        return _FAMILY_MAP[distro_id]
    for candidate in id_like.split():
        if candidate in _FAMILY_MAP:
            return _FAMILY_MAP[candidate]
    return ""


def _best_effort(label: str, fn: Callable[[], str]) -> str:
    try:
        return fn() or ""
    except Exception as e:
        logger.debug("Platform fact '%s' unavailable: %s", label, e)
        return ""


def current_host_facts(os_release_path: Path = OS_RELEASE_PATH) -> HostFacts:
    """Gather platform facts for the running host."""
    os_name = _best_effort("os", lambda: platform.system().lower())

    distro: dict[str, str] = {}
    if os_name == "linux":
        try:
            distro = read_os_release(os_release_path)
        except OSError as e:
            logger.debug("Cannot read %s: %s", os_release_path, e)

    if os_name == "linux":
        plat = distro.get("ID", "")
        family = platform_family(plat, distro.get("ID_LIKE", ""))
        version = distro.get("VERSION_ID", "")
    elif os_name == "darwin":
        plat = "darwin"
        family = "darwin"
        version = _best_effort("platform_version", lambda: platform.mac_ver()[0])
    else:
        plat = os_name
        family = os_name
        version = _best_effort("platform_version", platform.version)

    return HostFacts(
        os=os_name,
        platform=plat,
        platform_family=family,
        platform_version=version,
        kernel_arch=_best_effort("kernel_arch", platform.machine),
        kernel_version=_best_effort("kernel_version", platform.release),
    )
