"""Values consumed by install and launch, and the launch command they produce."""

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..modloaders.kinds import ModLoaderKind


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Profile(_CamelModel):
    """Launch profile owned by the host application."""
    id: str
    version: str
    mod_loader_kind: Optional[ModLoaderKind] = None
    mod_loader_version: Optional[str] = None
    game_directory: Optional[Path] = None
    memory_mb: Optional[int] = None
    resolution: Optional[Tuple[int, int]] = None

    @field_validator("mod_loader_kind", mode="before")
    @classmethod
    def _parse_kind(cls, value):
        if value in (None, "", "vanilla", "Vanilla"):
            return None
        return ModLoaderKind.parse(value)


class AuthContext(_CamelModel):
    player_name: str
    player_uuid: str
    access_token: str = "0"
    is_offline: bool = True
    xuid: Optional[str] = None

    @property
    def user_type(self) -> str:
        return "legacy" if self.is_offline else "msa"


class LaunchSpec(BaseModel):
    executable: Path
    args: List[str]
    working_dir: Path

    @property
    def command(self) -> List[str]:
        return [str(self.executable), *self.args]
