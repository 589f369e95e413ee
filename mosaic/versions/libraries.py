"""Resolution of a descriptor's libraries into a classpath and native work."""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from ..utils.platform_facts import PlatformFacts
from .models import VersionLibrary, VersionMetadata
from .natives import DEFAULT_EXCLUDES
from .rules import evaluate_rules

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY_REPOSITORY = "https://libraries.minecraft.net/"


@dataclass(frozen=True)
class LibraryCoordinate:
    """Maven coordinate ``group:artifact:version[:classifier][@extension]``."""
    group: str
    artifact: str
    version: str
    classifier: Optional[str] = None
    extension: str = "jar"

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact}-{self.version}{suffix}.{self.extension}"

    @property
    def path(self) -> str:
        """Relative path inside the libraries directory, always with forward slashes."""
        return str(PurePosixPath(*self.group.split("."), self.artifact, self.version, self.file_name))

    @property
    def is_native(self) -> bool:
        return bool(self.classifier and self.classifier.startswith("natives-"))

    def with_classifier(self, classifier: str) -> "LibraryCoordinate":
        return replace(self, classifier=classifier)


def parse_coordinate(name: str) -> LibraryCoordinate:
    """Parse a library name, raising ``ValueError`` when it is not a coordinate."""
    extension = "jar"
    if "@" in name:
        name, extension = name.rsplit("@", 1)
    parts = name.split(":")
    if len(parts) < 3 or len(parts) > 4 or not all(parts):
        raise ValueError(f"Invalid library coordinate: {name!r}")
    group, artifact, version = parts[:3]
    classifier = parts[3] if len(parts) == 4 else None
    return LibraryCoordinate(group, artifact, version, classifier, extension)


@dataclass(frozen=True)
class LibraryArtifact:
    name: str
    path: Path
    url: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None


@dataclass(frozen=True)
class NativeArtifact(LibraryArtifact):
    excludes: Tuple[str, ...] = tuple(DEFAULT_EXCLUDES)


@dataclass
class LibraryResolution:
    classpath: List[LibraryArtifact] = field(default_factory=list)
    natives: List[NativeArtifact] = field(default_factory=list)

    @property
    def classpath_paths(self) -> List[Path]:
        return [artifact.path for artifact in self.classpath]

    @property
    def downloads(self) -> List[LibraryArtifact]:
        """Every artifact that has somewhere to be downloaded from."""
        return [artifact for artifact in [*self.classpath, *self.natives] if artifact.url]


def _excludes(library: VersionLibrary) -> Tuple[str, ...]:
    if library.extract is not None:
        return tuple(library.extract.exclude)
    return tuple(DEFAULT_EXCLUDES)


def resolve_libraries(metadata: VersionMetadata, facts: PlatformFacts,
                      libraries_dir: Path) -> LibraryResolution:
    """Filter ``metadata.libraries`` for ``facts``.

    Included libraries with a regular artifact go on the classpath, with no
    url when the artifact is produced locally by an installer. Native
    only entries (``group:artifact:version:natives-<os>``) and the native
    classifier of legacy ``natives`` entries go to the extraction work list
    and never on the classpath.
    """
    resolution = LibraryResolution()
    seen_paths = set()

    for library in metadata.libraries:
        if not evaluate_rules(library.rules, facts):
            logger.debug("Skipping library %s due to rules", library.name)
            continue

        try:
            coordinate = parse_coordinate(library.name)
        except ValueError:
            logger.warning("Invalid library name format: %s", library.name)
            continue

        artifact = library.artifact

        if coordinate.is_native:
            if artifact is None or not artifact.url:
                logger.warning("Native library %s has no download", library.name)
                continue
            resolution.natives.append(NativeArtifact(
                name=library.name,
                path=libraries_dir / coordinate.path,
                url=artifact.url,
                sha1=artifact.sha1,
                size=artifact.size,
                excludes=_excludes(library),
            ))
            continue

        classpath_entry = None
        if artifact is not None:
            # An empty url marks a jar generated locally by a loader installer
            classpath_entry = LibraryArtifact(library.name, libraries_dir / coordinate.path,
                                              artifact.url or None, artifact.sha1, artifact.size)
        elif library.downloads is None and not library.natives:
            # Loader descriptors only give a maven repository
            repository = library.url or DEFAULT_LIBRARY_REPOSITORY
            classpath_entry = LibraryArtifact(library.name, libraries_dir / coordinate.path,
                                              repository.rstrip("/") + "/" + coordinate.path)

        if classpath_entry is not None and classpath_entry.path not in seen_paths:
            seen_paths.add(classpath_entry.path)
            resolution.classpath.append(classpath_entry)

        if library.natives:
            key_template = library.natives.get(facts.os_name)
            if not key_template:
                continue
            classifier = key_template.replace("${arch}", facts.bits)
            download = library.classifiers.get(classifier)
            if download is None or not download.url:
                logger.warning("Native classifier %s missing for library %s", classifier, library.name)
                continue
            resolution.natives.append(NativeArtifact(
                name=library.name,
                path=libraries_dir / coordinate.with_classifier(classifier).path,
                url=download.url,
                sha1=download.sha1,
                size=download.size,
                excludes=_excludes(library),
            ))

    logger.debug("Resolved %d classpath libraries and %d native archives for %s",
                 len(resolution.classpath), len(resolution.natives), metadata.id)
    return resolution
