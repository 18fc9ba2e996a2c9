from __future__ import annotations

import hashlib
import os
import platform

from pydantic import BaseModel


class HostFingerprint(BaseModel):
    os_name: str
    cpu_arch: str
    python_version: str
    cpu_logical_cores: int
    host_id: str

    def label(self) -> str:
        return f"{self.os_name}/{self.cpu_arch}/{self.cpu_logical_cores}c/py{self.python_version}"

    def comparable_with(self, other: "HostFingerprint | None") -> bool:
        if other is None:
            return True
        return (self.os_name, self.cpu_arch, self.cpu_logical_cores) == (
            other.os_name,
            other.cpu_arch,
            other.cpu_logical_cores,
        )


def _host_id() -> str:
    # Hashed so the raw hostname never lands in shared baselines.
    return hashlib.sha256(platform.node().encode("utf-8")).hexdigest()[:12]


def collect_host_fingerprint() -> HostFingerprint:
    return HostFingerprint(
        os_name=platform.system(),
        cpu_arch=platform.machine(),
        python_version=platform.python_version(),
        cpu_logical_cores=int(os.cpu_count() or 1),
        host_id=_host_id(),
    )


def parse_host_label(label: str | None) -> HostFingerprint | None:
    """Rebuild a fingerprint from the ``label()`` form stored next to baselines."""
    if not label:
        return None
    parts = label.split("/")
    if len(parts) != 4 or not parts[2].endswith("c") or not parts[3].startswith("py"):
        return None
    try:
        cores = int(parts[2][:-1])
    except ValueError:
        return None
    return HostFingerprint(
        os_name=parts[0],
        cpu_arch=parts[1],
        python_version=parts[3][2:],
        cpu_logical_cores=cores,
        host_id="",
    )


def render_host_summary(host: HostFingerprint) -> str:
    return (
        f"OS={host.os_name} arch={host.cpu_arch} py={host.python_version} "
        f"cores={host.cpu_logical_cores} host_id={host.host_id}"
    )
