"""Java runtime discovery."""

import logging
import platform
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from ..errors import ProcessLaunchFailure

logger = logging.getLogger(__name__)

COMMON_JAVA_DIRS = [
    Path("C:/Program Files/Java"),
    Path("C:/Program Files (x86)/Java"),
    Path("C:/Program Files/Eclipse Adoptium"),
    Path("/usr/lib/jvm"),
    Path("/Library/Java/JavaVirtualMachines"),
]


class JavaManager:
    """Finds a java executable to run installers and the game with."""

    def __init__(self, java_path: Optional[Path] = None, search_dirs: Optional[List[Path]] = None):
        self.java_path = Path(java_path) if java_path else None
        self.search_dirs = COMMON_JAVA_DIRS if search_dirs is None else search_dirs

    @staticmethod
    def executable_name() -> str:
        return "java.exe" if platform.system() == "Windows" else "java"

    def _from_common_dirs(self) -> Optional[Path]:
        name = self.executable_name()
        for base in self.search_dirs:
            if not base.is_dir():
                continue
            for item in sorted(base.iterdir(), reverse=True):
                for java_bin in (item / "bin" / name, item / "Contents" / "Home" / "bin" / name):
                    if java_bin.is_file():
                        return java_bin
        return None

    def get_system_java(self) -> Optional[Path]:
        """Configured path, then ``PATH``, then the usual install directories."""
        if self.java_path is not None:
            if self.java_path.is_file():
                return self.java_path
            logger.warning("Configured Java path %s does not exist", self.java_path)

        found = shutil.which("java") or shutil.which("javaw")
        if found:
            return Path(found)
        return self._from_common_dirs()

    @staticmethod
    def get_java_version(java_path: Path) -> Optional[str]:
        """Version string printed by ``java -version``, ``None`` when it cannot be read."""
        try:
            result = subprocess.run([str(java_path), "-version"], capture_output=True, text=True, timeout=15)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Could not run %s -version: %s", java_path, e)
            return None
        # java prints its version on stderr
        for line in (result.stderr or result.stdout).splitlines():
            if "version" in line and '"' in line:
                return line.split('"')[1]
        return None

    def ensure_java(self) -> Path:
        java = self.get_system_java()
        if java is None:
            raise ProcessLaunchFailure(
                "No Java runtime found",
                hint="Install Java 17 or newer, or set MOSAIC_JAVA_PATH to a java executable.",
            )
        logger.info("Using Java at %s (version %s)", java, self.get_java_version(java) or "unknown")
        return java
