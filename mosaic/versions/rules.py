"""Evaluation of the allow/disallow rules attached to libraries and arguments."""

import re
from typing import Iterable, Optional

from ..utils.platform_facts import PlatformFacts
from .models import VersionLibraryRules


def rule_matches(rule: VersionLibraryRules, facts: PlatformFacts) -> bool:
    """Check if every condition present on a rule matches the platform.

    Absent conditions match unconditionally.
    """
    if rule.os is not None:
        if rule.os.name and rule.os.name != facts.os_name:
            return False
        if rule.os.arch and rule.os.arch != facts.arch:
            return False
        if rule.os.version:
            try:
                if not re.search(rule.os.version, facts.os_version):
                    return False
            except re.error:
                return False
    if rule.features:
        for name, expected in rule.features.items():
            if bool(facts.features.get(name, False)) != bool(expected):
                return False
    return True


def evaluate_rules(rules: Optional[Iterable[VersionLibraryRules]], facts: PlatformFacts) -> bool:
    """Decide whether something guarded by ``rules`` is included on ``facts``.

    An empty rule list includes. Otherwise the decision starts as excluded
    and every matching rule overwrites it with its own action, so the last
    matching rule wins.
    """
    rules = list(rules or ())
    if not rules:
        return True

    allowed = False
    for rule in rules:
        if rule_matches(rule, facts):
            allowed = rule.allows
    return allowed
