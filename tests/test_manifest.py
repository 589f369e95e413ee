"""Tests for the version catalog."""

import pytest

from mosaic.errors import InvalidCatalogData, MissingCatalogEntry
from mosaic.versions.manager import VersionManager
from mosaic.versions.models import VersionMetadata

MODERN = {
    "id": "1.20.1",
    "type": "release",
    "mainClass": "net.minecraft.client.main.Main",
    "assetIndex": {"id": "5", "sha1": "a" * 40, "size": 1, "totalSize": 2, "url": "https://example/5.json"},
    "assets": "5",
    "arguments": {
        "game": [
            "--username", "${auth_player_name}",
            {"rules": [{"action": "allow", "features": {"has_custom_resolution": True}}],
             "value": ["--width", "${resolution_width}"]},
        ],
        "jvm": [
            {"rules": [{"action": "allow", "os": {"name": "osx"}}], "value": "-XstartOnFirstThread"},
            "-cp", "${classpath}",
        ],
    },
    "downloads": {"client": {"url": "https://example/client.jar", "sha1": "b" * 40, "size": 3}},
    "libraries": [],
    "logging": {"client": {"argument": "-Dlog4j.configurationFile=${path}", "type": "log4j2-xml",
                           "file": {"id": "client-1.12.xml", "sha1": "c" * 40, "size": 4,
                                    "url": "https://example/client-1.12.xml"}}},
}

LEGACY = {
    "id": "1.7.10",
    "type": "release",
    "mainClass": "net.minecraft.client.main.Main",
    "assets": "1.7.10",
    "minecraftArguments": "--username ${auth_player_name} --version ${version_name}",
    "libraries": None,
}


def manifest_for(catalog):
    return {
        "latest": {"release": "1.20.1", "snapshot": "23w31a"},
        "versions": [
            {"id": "1.20.1", "type": "release", "url": catalog.url("/v1/1.20.1.json"),
             "time": "2023-06-12T13:25:51+00:00", "releaseTime": "2023-06-12T13:25:51+00:00",
             "sha1": "d" * 40, "complianceLevel": 1},
            {"id": "1.7.10", "type": "release", "url": catalog.url("/v1/1.7.10.json"),
             "time": "2014-05-14T17:29:23+00:00", "releaseTime": "2014-05-14T17:29:23+00:00"},
        ],
    }


@pytest.fixture
def catalog_settings(settings, catalog):
    settings.manifest_url = catalog.url("/manifest.json")
    catalog.add("/manifest.json", manifest_for(catalog))
    catalog.add("/v1/1.20.1.json", MODERN)
    catalog.add("/v1/1.7.10.json", LEGACY)
    return settings


@pytest.mark.asyncio
async def test_manifest_is_cached_per_manager(catalog, catalog_settings):
    async with VersionManager(catalog_settings) as versions:
        manifest = await versions.fetch_manifest()
        await versions.fetch_manifest()
        await versions.get_version_info("1.7.10")

    assert manifest.latest_release == "1.20.1"
    assert manifest.latest_snapshot == "23w31a"
    assert catalog.requests["/manifest.json"] == 1


@pytest.mark.asyncio
async def test_unknown_version_has_hint(catalog, catalog_settings):
    async with VersionManager(catalog_settings) as versions:
        with pytest.raises(MissingCatalogEntry) as excinfo:
            await versions.get_version_info("0.0.1")

    assert excinfo.value.hint


@pytest.mark.asyncio
async def test_structured_schema(catalog, catalog_settings):
    async with VersionManager(catalog_settings) as versions:
        metadata = await versions.resolve("1.20.1")
        again = await versions.resolve("1.20.1")

    assert again is metadata
    assert catalog.requests["/v1/1.20.1.json"] == 1
    assert metadata.uses_structured_arguments
    assert metadata.assets_id == "5"
    assert metadata.arguments.game[0].is_plain
    assert metadata.arguments.game[2].values == ["--width", "${resolution_width}"]
    assert metadata.arguments.jvm[0].values == ["-XstartOnFirstThread"]
    assert metadata.client_download.sha1 == "b" * 40
    assert metadata.logging_client.file.id == "client-1.12.xml"


@pytest.mark.asyncio
async def test_legacy_schema(catalog, catalog_settings):
    async with VersionManager(catalog_settings) as versions:
        metadata = await versions.resolve("1.7.10")

    assert not metadata.uses_structured_arguments
    assert metadata.minecraftArguments.split()[0] == "--username"
    assert metadata.libraries == []
    assert metadata.assets_id == "1.7.10"
    assert metadata.assetIndex is None


@pytest.mark.asyncio
async def test_malformed_descriptor(catalog, catalog_settings):
    catalog.add("/v1/1.7.10.json", {"type": "release"})

    async with VersionManager(catalog_settings) as versions:
        with pytest.raises(InvalidCatalogData):
            await versions.resolve("1.7.10")


@pytest.mark.asyncio
async def test_saved_metadata_round_trips_and_loader_lookup(catalog, catalog_settings):
    async with VersionManager(catalog_settings) as versions:
        metadata = await versions.resolve("1.20.1")
        versions.save_version_metadata(metadata)

        loader = VersionMetadata(
            id="fabric-loader-0.15.3-1.20.1", inheritsFrom="1.20.1",
            mainClass="net.fabricmc.loader.impl.launch.knot.KnotClient",
            arguments={"game": [], "jvm": ["-DFabricMcEmu= net.minecraft.client.main.Main "]},
            libraries=[{"name": "net.fabricmc:fabric-loader:0.15.3", "url": "https://maven.fabricmc.net/"}],
        )
        versions.save_version_metadata(loader)

        loaded = versions.load_installed_metadata("1.20.1")
        found = versions.find_installed_loader_metadata("1.20.1", "fabric-loader-")

    assert loaded.id == "1.20.1"
    assert loaded.arguments.game[2].values == ["--width", "${resolution_width}"]
    assert found is not None and found.id == "fabric-loader-0.15.3-1.20.1"

    merged = found.merged_onto(loaded)
    assert merged.id == "1.20.1"
    assert merged.mainClass == "net.fabricmc.loader.impl.launch.knot.KnotClient"
    assert merged.libraries[0].name == "net.fabricmc:fabric-loader:0.15.3"
    assert merged.arguments.jvm[-1].values == ["-DFabricMcEmu= net.minecraft.client.main.Main "]
    assert merged.inheritsFrom is None


def test_asset_index_ref_wins_over_assets_key():
    metadata = VersionMetadata(id="1.19", assets="legacy",
                               assetIndex={"id": "1.19", "url": "https://example/1.19.json"})
    assert metadata.assets_id == "1.19"
    assert VersionMetadata(id="1.6.4", assets="12").assets_id == "12"
    assert VersionMetadata(id="1.2.5").assets_id == "legacy"
