"""Tests for launch command building."""

import errno
import subprocess
from pathlib import Path

import pytest

from mosaic.core.game_launcher import GameLauncher, flatten_arguments, substitute
from mosaic.core.models import AuthContext, LaunchSpec, Profile
from mosaic.errors import ProcessLaunchFailure, SandboxRestricted
from mosaic.versions.models import VersionArguments, VersionMetadata

STEVE = AuthContext(player_name="Steve", player_uuid="uuid-1", access_token="token", is_offline=True)


def test_substitution_single_pass():
    values = {"auth_player_name": "Steve", "version_name": "1.20.1"}
    assert substitute("${auth_player_name} playing ${version_name}", values) == "Steve playing 1.20.1"
    assert substitute("--flag ${unknown_token}", values) == "--flag ${unknown_token}"
    # substituted values are never substituted again
    assert substitute("${auth_player_name}", {"auth_player_name": "${version_name}",
                                              "version_name": "x"}) == "${version_name}"


def test_flatten_arguments(linux_x64):
    arguments = VersionArguments(game=[
        "--demo-free",
        {"rules": [{"action": "allow", "os": {"name": "linux"}}], "value": ["--a", "--b"]},
        {"rules": [{"action": "allow", "os": {"name": "osx"}}], "value": "--mac"},
    ])
    assert flatten_arguments(arguments.game, linux_x64) == ["--demo-free", "--a", "--b"]


def modern_metadata():
    return VersionMetadata(
        id="1.20.1",
        type="release",
        mainClass="net.minecraft.client.main.Main",
        assetIndex={"id": "5", "url": "https://example/5.json"},
        libraries=[
            {"name": "com.mojang:brigadier:1.1.8", "downloads": {"artifact": {
                "path": "com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar", "url": "https://x/b.jar",
                "sha1": "a" * 40, "size": 1}}},
            {"name": "org.lwjgl:lwjgl:3.3.1:natives-linux", "downloads": {"artifact": {
                "path": "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar", "url": "https://x/n.jar",
                "sha1": "b" * 40, "size": 1}}},
        ],
        arguments={
            "game": ["--username", "${auth_player_name}", "--version", "${version_name}",
                     "--userType", "${user_type}", "--custom", "${unknown_token}",
                     {"rules": [{"action": "allow", "features": {"has_custom_resolution": True}}],
                      "value": ["--width", "${resolution_width}", "--height", "${resolution_height}"]}],
            "jvm": [{"rules": [{"action": "allow", "os": {"name": "osx"}}], "value": ["-XstartOnFirstThread"]},
                    "-Djava.library.path=${natives_directory}", "-cp", "${classpath}"],
        },
    )


def test_build_structured(settings, linux_x64):
    launcher = GameLauncher(settings)
    profile = Profile(id="p", version="1.20.1", memory_mb=4096)

    spec = launcher.build(modern_metadata(), profile, STEVE, Path("/usr/bin/java"), linux_x64)

    args = spec.args
    assert args[0] == "-Xmx4096M"
    assert "-XstartOnFirstThread" not in args
    main_index = args.index("net.minecraft.client.main.Main")
    assert args[main_index + 1:] == ["--username", "Steve", "--version", "1.20.1",
                                     "--userType", "legacy", "--custom", "${unknown_token}"]

    classpath = args[args.index("-cp") + 1].split(":")
    assert classpath == [
        str(settings.libraries_dir / "com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar"),
        str(settings.client_jar("1.20.1")),
    ]
    assert f"-Djava.library.path={settings.natives_dir('1.20.1')}" in args
    assert spec.working_dir == settings.minecraft_dir
    assert spec.command[0] == "/usr/bin/java"


def library(name, path, rules=None):
    entry = {"name": name, "downloads": {"artifact": {
        "path": path, "url": f"https://x/{path}", "sha1": "c" * 40, "size": 1}}}
    if rules is not None:
        entry["rules"] = rules
    return entry


def test_classpath_skips_excluded_library_and_ends_with_client(settings, linux_x64):
    metadata = VersionMetadata(
        id="1.20.1", mainClass="net.minecraft.client.main.Main",
        libraries=[
            library("org.example:a:1.0", "org/example/a/1.0/a-1.0.jar"),
            library("org.example:b:1.0", "org/example/b/1.0/b-1.0.jar",
                    rules=[{"action": "allow", "os": {"name": "osx"}}]),
            library("org.example:c:1.0", "org/example/c/1.0/c-1.0.jar"),
        ],
        arguments={"game": [], "jvm": ["-cp", "${classpath}"]},
    )

    args = GameLauncher(settings).build(metadata, Profile(id="p", version="1.20.1"), STEVE,
                                        Path("java"), linux_x64).args

    assert args[args.index("-cp") + 1].split(":") == [
        str(settings.libraries_dir / "org/example/a/1.0/a-1.0.jar"),
        str(settings.libraries_dir / "org/example/c/1.0/c-1.0.jar"),
        str(settings.client_jar("1.20.1")),
    ]


def test_custom_resolution_feature(settings, linux_x64):
    profile = Profile(id="p", version="1.20.1", resolution=(1280, 720))

    args = GameLauncher(settings).build(modern_metadata(), profile, STEVE, Path("java"), linux_x64).args

    assert args[-4:] == ["--width", "1280", "--height", "720"]


def test_build_legacy(settings, windows_x64):
    metadata = VersionMetadata(
        id="1.7.10", mainClass="net.minecraft.client.main.Main", assets="1.7.10",
        minecraftArguments="--username ${auth_player_name} --session ${auth_session} --assetIndex ${assets_index_name}",
    )
    auth = AuthContext(player_name="Alex", player_uuid="u", access_token="abc", is_offline=False)
    profile = Profile(id="p", version="1.7.10", game_directory=settings.minecraft_dir / "instances" / "a")

    spec = GameLauncher(settings).build(metadata, profile, auth, Path("java"), windows_x64)

    assert spec.args[-6:] == ["--username", "Alex", "--session", "token:abc", "--assetIndex", "1.7.10"]
    assert spec.args[spec.args.index("-cp") + 1] == str(settings.client_jar("1.7.10"))
    assert spec.working_dir == settings.minecraft_dir / "instances" / "a"


def test_loader_main_class_and_logging_argument(settings, linux_x64):
    metadata = VersionMetadata(**{
        **modern_metadata().model_dump(),
        "logging": {"client": {"argument": "-Dlog4j.configurationFile=${path}",
                               "file": {"id": "client-1.12.xml", "url": "https://x/c.xml"}}},
    })
    config = settings.assets_dir / "log_configs" / "client-1.12.xml"
    config.parent.mkdir(parents=True)
    config.write_text("<Configuration/>")
    profile = Profile(id="p", version="1.20.1", mod_loader_kind="Fabric")

    args = GameLauncher(settings).build(metadata, profile, STEVE, Path("java"), linux_x64).args

    main_index = args.index("net.fabricmc.loader.impl.launch.knot.KnotClient")
    assert args[main_index - 1] == f"-Dlog4j.configurationFile={config}"


def test_spawn_missing_java(settings, linux_x64, tmp_path):
    spec = LaunchSpec(executable=tmp_path / "no-java", args=["-version"], working_dir=tmp_path / "game")

    with pytest.raises(ProcessLaunchFailure) as excinfo:
        GameLauncher(settings).spawn(spec, linux_x64)

    assert not isinstance(excinfo.value, SandboxRestricted)
    assert excinfo.value.hint


def test_spawn_sandbox_restriction(settings, linux_x64, tmp_path, monkeypatch):
    def refuse(*args, **kwargs):
        raise PermissionError(errno.EPERM, "Operation not permitted")

    monkeypatch.setattr(subprocess, "Popen", refuse)
    spec = LaunchSpec(executable=Path("java"), args=[], working_dir=tmp_path / "game")

    with pytest.raises(SandboxRestricted) as excinfo:
        GameLauncher(settings).spawn(spec, linux_x64)

    assert "namespaces" in excinfo.value.hint


def test_spawn_returns_pid(settings, linux_x64, tmp_path, monkeypatch):
    class FakeProcess:
        pid = 4242

    monkeypatch.setattr(subprocess, "Popen", lambda *args, **kwargs: FakeProcess())
    spec = LaunchSpec(executable=Path("java"), args=[], working_dir=tmp_path / "game")

    assert GameLauncher(settings).spawn(spec, linux_x64) == 4242
    assert (tmp_path / "game").is_dir()
