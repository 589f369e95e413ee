"""Game launcher for Minecraft."""

import errno
import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import LauncherSettings
from ..errors import ProcessLaunchFailure, SandboxRestricted
from ..utils.platform_facts import PlatformFacts
from ..versions.libraries import resolve_libraries
from ..versions.models import ArgumentElement, VersionMetadata
from ..versions.rules import evaluate_rules
from .models import AuthContext, LaunchSpec, Profile

logger = logging.getLogger(__name__)

DEFAULT_MAIN_CLASS = "net.minecraft.client.main.Main"
DEFAULT_RESOLUTION = (854, 480)

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")

_USERNS_SWITCH = Path("/proc/sys/kernel/unprivileged_userns_clone")


def substitute(template: str, values: Dict[str, str]) -> str:
    """Replace every known ``${name}`` in one pass, leaving unknown ones as they are."""
    def replace(match):
        key = match.group(1)
        if key in values:
            return values[key]
        logger.debug("No value for placeholder %s, leaving it verbatim", match.group(0))
        return match.group(0)

    return _PLACEHOLDER.sub(replace, template)


def flatten_arguments(elements: Iterable[ArgumentElement], facts: PlatformFacts) -> List[str]:
    """Values of the argument elements whose rules include them on ``facts``."""
    flattened = []
    for element in elements:
        if element.is_plain or evaluate_rules(element.rules, facts):
            flattened.extend(element.values)
    return flattened


def user_namespaces_enabled() -> bool:
    """False only when the kernel switch exists and says unprivileged namespaces are off."""
    try:
        return _USERNS_SWITCH.read_text().strip() == "1"
    except OSError:
        return True


def sandbox_guidance() -> str:
    guidance = "To enable user namespaces on your system, you can try one of the following:\n\n"
    if Path("/etc/fedora-release").exists():
        guidance += ("For Fedora:\n"
                     "1. Run: sudo sysctl -w user.max_user_namespaces=15000\n"
                     "2. To make it permanent, add 'user.max_user_namespaces=15000' to /etc/sysctl.conf\n\n")
    elif Path("/etc/arch-release").exists():
        guidance += ("For Arch Linux:\n"
                     "1. Run: sudo sysctl -w kernel.unprivileged_userns_clone=1\n"
                     "2. To make it permanent, add 'kernel.unprivileged_userns_clone=1' "
                     "to /etc/sysctl.d/99-sysctl.conf\n\n")
    elif Path("/etc/debian_version").exists():
        guidance += ("For Debian/Ubuntu:\n"
                     "1. Run: sudo sysctl -w kernel.unprivileged_userns_clone=1\n"
                     "2. To make it permanent, add 'kernel.unprivileged_userns_clone=1' to /etc/sysctl.conf\n\n")
    guidance += ("Otherwise, disable the sandbox restrictions of the environment running the launcher "
                 "(Flatpak, Snap or container permissions).")
    return guidance


class GameLauncher:
    """Builds the java command line of an installed version and spawns it."""

    def __init__(self, settings: Optional[LauncherSettings] = None):
        self.settings = settings or LauncherSettings()

    def main_class(self, metadata: VersionMetadata, profile: Profile) -> str:
        if profile.mod_loader_kind is not None:
            return profile.mod_loader_kind.main_class
        return metadata.mainClass or DEFAULT_MAIN_CLASS

    def game_directory(self, profile: Profile) -> Path:
        return Path(profile.game_directory) if profile.game_directory else self.settings.minecraft_dir

    def assemble_classpath(self, metadata: VersionMetadata, facts: PlatformFacts) -> List[Path]:
        """Library jars in descriptor order, then the client jar."""
        resolution = resolve_libraries(metadata, facts, self.settings.libraries_dir)
        return [*resolution.classpath_paths, self.settings.client_jar(metadata.jar or metadata.id)]

    def placeholder_values(self, metadata: VersionMetadata, profile: Profile, auth: AuthContext,
                           classpath: str, facts: PlatformFacts) -> Dict[str, str]:
        assets_dir = self.settings.assets_dir
        virtual_dir = assets_dir / "virtual" / metadata.assets_id
        width, height = profile.resolution or DEFAULT_RESOLUTION
        return {
            "auth_player_name": auth.player_name,
            "auth_uuid": auth.player_uuid,
            "auth_access_token": auth.access_token,
            "auth_session": f"token:{auth.access_token}",
            "auth_xuid": auth.xuid or "",
            "clientid": self.settings.client_id,
            "user_type": auth.user_type,
            "user_properties": "{}",
            "version_name": metadata.id,
            "version_type": metadata.type or "release",
            "game_directory": str(self.game_directory(profile)),
            "assets_root": str(assets_dir),
            "game_assets": str(virtual_dir if virtual_dir.is_dir() else assets_dir),
            "assets_index_name": metadata.assets_id,
            "natives_directory": str(self.settings.natives_dir(metadata.id)),
            "library_directory": str(self.settings.libraries_dir),
            "classpath": classpath,
            "classpath_separator": facts.classpath_separator,
            "launcher_name": self.settings.launcher_name,
            "launcher_version": self.settings.launcher_version,
            "resolution_width": str(width),
            "resolution_height": str(height),
        }

    def logging_argument(self, metadata: VersionMetadata) -> Optional[str]:
        client = metadata.logging_client
        if client is None:
            return None
        path = self.settings.assets_dir / "log_configs" / client.file.id
        if not path.is_file():
            logger.debug("Logging configuration %s missing, not passing it", path)
            return None
        return substitute(client.argument, {"path": str(path)})

    def build(self, metadata: VersionMetadata, profile: Profile, auth: AuthContext,
              java_path: Path, facts: Optional[PlatformFacts] = None) -> LaunchSpec:
        """Assemble the command that launches ``metadata`` for ``profile``."""
        facts = (facts or PlatformFacts.current()).with_features(
            has_custom_resolution=profile.resolution is not None,
            is_demo_user=False,
        )
        classpath = facts.classpath_separator.join(str(p) for p in self.assemble_classpath(metadata, facts))
        values = self.placeholder_values(metadata, profile, auth, classpath, facts)

        memory = profile.memory_mb or self.settings.default_memory_mb
        args = [f"-Xmx{memory}M", *self.settings.extra_jvm_args]

        if metadata.uses_structured_arguments and metadata.arguments.jvm:
            jvm_templates = flatten_arguments(metadata.arguments.jvm, facts)
        else:
            jvm_templates = ["-Djava.library.path=${natives_directory}", "-cp", "${classpath}"]
        args.extend(substitute(arg, values) for arg in jvm_templates)

        logging_arg = self.logging_argument(metadata)
        if logging_arg:
            args.append(logging_arg)

        args.append(self.main_class(metadata, profile))

        if metadata.uses_structured_arguments:
            game_templates = flatten_arguments(metadata.arguments.game, facts)
        else:
            game_templates = (metadata.minecraftArguments or "").split()
            if profile.resolution is not None:
                game_templates += ["--width", "${resolution_width}", "--height", "${resolution_height}"]
        args.extend(substitute(arg, values) for arg in game_templates)

        logger.debug("Launch arguments for %s: %s", metadata.id, args)
        return LaunchSpec(executable=java_path, args=args, working_dir=self.game_directory(profile))

    def spawn(self, spec: LaunchSpec, facts: Optional[PlatformFacts] = None) -> int:
        """Start the game process and return its pid. The process is not supervised."""
        facts = facts or PlatformFacts.current()
        spec.working_dir.mkdir(parents=True, exist_ok=True)
        if facts.os_name == "linux" and not user_namespaces_enabled():
            logger.warning("Unprivileged user namespaces are disabled, the game may fail to start.\n%s",
                           sandbox_guidance())

        self.settings.cache_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.settings.cache_dir / "game_output.log"
        logger.info("Launching %s (output in %s)", spec.executable, output_path)

        with open(output_path, 'ab') as output:
            try:
                process = subprocess.Popen(
                    spec.command,
                    cwd=str(spec.working_dir),
                    stdin=subprocess.DEVNULL,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                )
            except FileNotFoundError as e:
                raise ProcessLaunchFailure(
                    f"Java executable not found: {spec.executable}",
                    hint="Install Java or set MOSAIC_JAVA_PATH to a java executable.",
                ) from e
            except PermissionError as e:
                if e.errno == errno.EPERM and facts.os_name == "linux":
                    raise SandboxRestricted(
                        f"The system refused to start the game: {e}",
                        hint=sandbox_guidance(),
                    ) from e
                raise ProcessLaunchFailure(
                    f"Permission denied starting {spec.executable}: {e}",
                    hint="Check that the java executable is readable and executable.",
                ) from e
            except OSError as e:
                raise ProcessLaunchFailure(f"Failed to start the game: {e}") from e

        logger.info("Game started with pid %d", process.pid)
        return process.pid
