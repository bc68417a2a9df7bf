"""
Host manifest builder — platform facts + one discovery pass.
"""

from __future__ import annotations

import logging
from typing import Callable

from nrcli.core.discovery.platform_info import HostFacts, current_host_facts
from nrcli.core.discovery.processes import discover_processes
from nrcli.core.models.manifest import HostManifest, ProcessInfo

logger = logging.getLogger(__name__)


def build_manifest(
    discover: Callable[[], tuple[ProcessInfo, ...]] = discover_processes,
    host_facts: Callable[[], HostFacts] = current_host_facts,
) -> HostManifest:
    """Build the manifest for this invocation.

    Args:
        discover: Process discoverer, called exactly once.
        host_facts: Platform-facts capability.

    Raises:
        DiscoveryError: Propagated from the discoverer.
    """
    facts = host_facts()
    processes = discover()

    manifest = HostManifest(
        os=facts.os,
        platform=facts.platform,
        platform_family=facts.platform_family,
        platform_version=facts.platform_version,
        kernel_arch=facts.kernel_arch,
        kernel_version=facts.kernel_version,
        processes=tuple(processes),
    )
    logger.info(
        "Host manifest: %s/%s %s (%s), %d processes",
        manifest.os, manifest.platform, manifest.platform_version,
        manifest.kernel_arch, manifest.process_count,
    )
    return manifest
