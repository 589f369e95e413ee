"""Tests for rule evaluation."""

from mosaic.utils.platform_facts import PlatformFacts
from mosaic.versions.models import VersionLibraryRules
from mosaic.versions.rules import evaluate_rules


def rules(*raw):
    return [VersionLibraryRules(**r) for r in raw]


def test_empty_rules_include(linux_x64):
    assert evaluate_rules([], linux_x64)
    assert evaluate_rules(None, linux_x64)


def test_no_matching_rule_excludes(linux_x64):
    assert not evaluate_rules(rules({"action": "allow", "os": {"name": "osx"}}), linux_x64)


def test_allow_then_disallow_last_match_wins(linux_x64):
    lwjgl_style = rules(
        {"action": "allow"},
        {"action": "disallow", "os": {"name": "osx"}},
    )
    assert evaluate_rules(lwjgl_style, linux_x64)
    mac = PlatformFacts(os_name="osx", arch="arm64")
    assert not evaluate_rules(lwjgl_style, mac)


def test_later_matching_rule_overrides_earlier(linux_x64):
    assert evaluate_rules(rules(
        {"action": "disallow"},
        {"action": "allow", "os": {"name": "linux"}},
    ), linux_x64)


def test_arch_and_version_conditions(windows_x64):
    assert not evaluate_rules(rules({"action": "allow", "os": {"arch": "x86"}}), windows_x64)
    assert evaluate_rules(rules({"action": "allow", "os": {"name": "windows", "version": "^10\\."}}), windows_x64)
    assert not evaluate_rules(rules({"action": "allow", "os": {"version": "^6\\."}}), windows_x64)


def test_features_absent_flag_is_false(linux_x64):
    custom = rules({"action": "allow", "features": {"has_custom_resolution": True}})
    assert not evaluate_rules(custom, linux_x64)
    assert evaluate_rules(custom, linux_x64.with_features(has_custom_resolution=True))

    not_demo = rules({"action": "allow", "features": {"is_demo_user": False}})
    assert evaluate_rules(not_demo, linux_x64)
