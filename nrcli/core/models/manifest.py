"""
Host manifest model — a point-in-time snapshot of the machine.

The manifest is built once per invocation and never mutated. Anything
that needs a narrower view (e.g. ``--process`` filters) gets a new
manifest instead.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProcessInfo(BaseModel):
    """One running process as seen during discovery.

    ``pid`` is only meaningful within the manifest it came from: the OS
    reuses pids, and the process may be gone by the time anyone reads
    this record.
    """

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str = ""
    command_line: str = ""
    listening_ports: frozenset[int] = Field(default_factory=frozenset)

    @property
    def match_target(self) -> str:
        """Text that process patterns are tested against."""
        return self.command_line or self.name


class HostManifest(BaseModel):
    """Immutable description of the host: platform facts + processes."""

    model_config = ConfigDict(frozen=True)

    os: str = ""
    platform: str = ""
    platform_family: str = ""
    platform_version: str = ""
    kernel_arch: str = ""
    kernel_version: str = ""
    processes: tuple[ProcessInfo, ...] = ()

    @property
    def process_count(self) -> int:
        return len(self.processes)

    def filter_processes(self, substrings: list[str] | tuple[str, ...]) -> HostManifest:
        """Return a copy keeping only processes whose name or command
        line contains one of ``substrings``.

        An empty filter returns ``self`` unchanged.
        """
        if not substrings:
            return self
        kept = tuple(
            p for p in self.processes
            if any(s in p.command_line or s in p.name for s in substrings)
        )
        return self.model_copy(update={"processes": kept})

    def system_facts(self) -> dict[str, str]:
        """Platform facts keyed by the variable names recipes use."""
        return {
            "OS": self.os,
            "Platform": self.platform,
            "PlatformFamily": self.platform_family,
            "PlatformVersion": self.platform_version,
            "KernelArch": self.kernel_arch,
            "KernelVersion": self.kernel_version,
        }

    def to_dict(self) -> dict:
        return {
            "os": self.os,
            "platform": self.platform,
            "platform_family": self.platform_family,
            "platform_version": self.platform_version,
            "kernel_arch": self.kernel_arch,
            "kernel_version": self.kernel_version,
            "processes": [
                {
                    "pid": p.pid,
                    "name": p.name,
                    "command_line": p.command_line,
                    "listening_ports": sorted(p.listening_ports),
                }
                for p in self.processes
            ],
        }
