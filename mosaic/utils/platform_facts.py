"""Platform facts used to evaluate library and argument rules."""

import platform
from dataclasses import dataclass, field
from typing import Dict

_OS_NAMES = {
    "windows": "windows",
    "darwin": "osx",
    "linux": "linux",
}

_ARCH_NAMES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm32",
    "arm": "arm32",
}


@dataclass(frozen=True)
class PlatformFacts:
    os_name: str
    arch: str
    os_version: str = ""
    features: Dict[str, bool] = field(default_factory=dict)

    @property
    def bits(self) -> str:
        """Value substituted for ``${arch}`` in legacy native classifiers."""
        return "32" if self.arch in ("x86", "arm32") else "64"

    @property
    def classpath_separator(self) -> str:
        return ";" if self.os_name == "windows" else ":"

    def with_features(self, **features: bool) -> "PlatformFacts":
        merged = dict(self.features)
        merged.update(features)
        return PlatformFacts(self.os_name, self.arch, self.os_version, merged)

    @classmethod
    def current(cls) -> "PlatformFacts":
        system = platform.system().lower()
        machine = platform.machine().lower()
        return cls(
            os_name=_OS_NAMES.get(system, system),
            arch=_ARCH_NAMES.get(machine, machine),
            os_version=platform.release(),
        )
