"""Data models for Minecraft versions."""

from pydantic import BaseModel, field_validator, model_validator
from typing import Dict, List, Optional, Any, Union
from datetime import datetime


class Download(BaseModel):
    url: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None
    path: Optional[str] = None


class VersionLibraryExtractor(BaseModel):
    exclude: List[str] = []

    @field_validator("exclude", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []


class VersionLibraryDownloads(BaseModel):
    artifact: Optional[Download] = None
    classifiers: Dict[str, Download] = {}

    @field_validator("classifiers", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or {}


class VersionLibraryRulesOs(BaseModel):
    name: Optional[str] = None
    version: Optional[str] = None
    arch: Optional[str] = None


class VersionLibraryRules(BaseModel):
    action: str = "allow"
    os: Optional[VersionLibraryRulesOs] = None
    features: Optional[Dict[str, bool]] = None

    @property
    def allows(self) -> bool:
        return self.action == "allow"


class VersionLibrary(BaseModel):
    name: str
    downloads: Optional[VersionLibraryDownloads] = None
    rules: List[VersionLibraryRules] = []
    extract: Optional[VersionLibraryExtractor] = None
    natives: Optional[Dict[str, str]] = None
    url: Optional[str] = None

    @field_validator("rules", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    @property
    def artifact(self) -> Optional[Download]:
        return self.downloads.artifact if self.downloads else None

    @property
    def classifiers(self) -> Dict[str, Download]:
        return self.downloads.classifiers if self.downloads else {}


class ArgumentElement(BaseModel):
    """One element of a structured argument list.

    A bare JSON string is normalized to an element without rules, so plain
    and conditional arguments go through the same rule gate.
    """
    rules: List[VersionLibraryRules] = []
    value: Union[str, List[str]]

    @model_validator(mode="before")
    @classmethod
    def _wrap_plain(cls, data):
        if isinstance(data, str):
            return {"value": data}
        return data

    @field_validator("rules", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    @property
    def is_plain(self) -> bool:
        return not self.rules and isinstance(self.value, str)

    @property
    def values(self) -> List[str]:
        return [self.value] if isinstance(self.value, str) else list(self.value)


class VersionArguments(BaseModel):
    game: List[ArgumentElement] = []
    jvm: List[ArgumentElement] = []

    @field_validator("game", "jvm", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []


class VersionAssetIndex(BaseModel):
    id: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    totalSize: Optional[int] = None
    url: Optional[str] = None


class VersionLoggingFile(BaseModel):
    id: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    url: str


class VersionLoggingClient(BaseModel):
    argument: str
    file: VersionLoggingFile
    type: Optional[str] = None


class VersionLogging(BaseModel):
    client: Optional[VersionLoggingClient] = None


class VersionInfo(BaseModel):
    id: str
    type: str
    url: str
    time: datetime
    releaseTime: Optional[datetime] = None
    sha1: Optional[str] = None
    complianceLevel: int = 0


class VersionManifest(BaseModel):
    latest: Dict[str, str]
    versions: List[VersionInfo]

    @property
    def latest_release(self) -> Optional[str]:
        return self.latest.get("release")

    @property
    def latest_snapshot(self) -> Optional[str]:
        return self.latest.get("snapshot")

    def find(self, version_id: str) -> Optional[VersionInfo]:
        for version in self.versions:
            if version.id == version_id:
                return version
        return None


class VersionMetadata(BaseModel):
    """Parsed version.json data - flexible for all versions"""
    id: str
    type: Optional[str] = None
    time: Optional[datetime] = None
    releaseTime: Optional[datetime] = None
    minimumLauncherVersion: Optional[int] = None
    inheritsFrom: Optional[str] = None
    downloads: Dict[str, Download] = {}
    assets: Optional[str] = None
    assetIndex: Optional[VersionAssetIndex] = None
    arguments: Optional[VersionArguments] = None
    minecraftArguments: Optional[str] = None
    libraries: List[VersionLibrary] = []
    mainClass: Optional[str] = None
    logging: Optional[VersionLogging] = None
    javaVersion: Optional[Dict[str, Any]] = None
    jar: Optional[str] = None

    @field_validator("downloads", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, value):
        return value or {}

    @field_validator("libraries", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value):
        return value or []

    @property
    def assets_id(self) -> str:
        """Asset index id, the structured ref wins over the legacy ``assets`` key."""
        if self.assetIndex and self.assetIndex.id:
            return self.assetIndex.id
        if self.assets:
            return self.assets
        return "legacy"

    @property
    def uses_structured_arguments(self) -> bool:
        return self.arguments is not None

    @property
    def client_download(self) -> Optional[Download]:
        return self.downloads.get("client")

    @property
    def logging_client(self) -> Optional[VersionLoggingClient]:
        return self.logging.client if self.logging else None

    def merged_onto(self, parent: "VersionMetadata") -> "VersionMetadata":
        """Merge this (child, ``inheritsFrom``) descriptor onto its parent.

        Child libraries come first; structured arguments are appended to the
        parent's; anything the child leaves unset is taken from the parent.
        The result keeps the parent id so it resolves the parent client jar.
        """
        merged = parent.model_copy(deep=True)
        merged.libraries = list(self.libraries) + list(parent.libraries)
        if self.mainClass:
            merged.mainClass = self.mainClass
        if self.minecraftArguments:
            merged.minecraftArguments = self.minecraftArguments
        if self.arguments:
            base = parent.arguments or VersionArguments()
            merged.arguments = VersionArguments(
                game=list(base.game) + list(self.arguments.game),
                jvm=list(base.jvm) + list(self.arguments.jvm),
            )
        if self.logging and not parent.logging:
            merged.logging = self.logging
        merged.inheritsFrom = None
        return merged


class AssetObject(BaseModel):
    hash: str
    size: int


class AssetIndex(BaseModel):
    objects: Dict[str, AssetObject]
    virtual: bool = False
    map_to_resources: bool = False
