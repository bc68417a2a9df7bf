"""Host discovery — processes, platform facts, and the host manifest."""

from nrcli.core.discovery.manifest import build_manifest
from nrcli.core.discovery.platform_info import HostFacts, current_host_facts
from nrcli.core.discovery.processes import discover_processes

__all__ = [
    "HostFacts",
    "build_manifest",
    "current_host_facts",
    "discover_processes",
]
