"""Conditional rule evaluation for libraries and launch arguments.

A rule applies when every predicate it carries matches the current platform
(and, for arguments, the profile feature state). A rule list is folded left to
right and the action of the last applying rule wins; when nothing applies the
verdict is disallow. An absent or empty list is always allowed.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..versions.models import Rule, RuleAction
from .platform import PlatformContext
from .profile import Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureState:
    is_demo_user: bool = False
    has_custom_resolution: bool = False

    @classmethod
    def from_profile(cls, profile: Profile) -> "FeatureState":
        return cls(
            is_demo_user=not profile.no_demo,
            has_custom_resolution=profile.has_custom_resolution,
        )

    def get(self, name: str) -> bool:
        # Flags this launcher does not implement are never active.
        return {
            "is_demo_user": self.is_demo_user,
            "has_custom_resolution": self.has_custom_resolution,
        }.get(name, False)


def _matches(pattern: str, value: str) -> bool:
    try:
        return re.search(pattern, value) is not None
    except re.error:
        logger.debug("Invalid rule pattern %r", pattern)
        return False


def rule_applies(rule: Rule, platform: PlatformContext,
                 features: Optional[FeatureState] = None) -> bool:
    """Check whether every populated predicate of ``rule`` matches."""
    if rule.os is not None:
        if rule.os.name and not _matches(rule.os.name, platform.os_name):
            return False
        if rule.os.version:
            if platform.os_version is None:
                logger.debug("OS version unknown, skipping rule on version %r", rule.os.version)
                return False
            if not _matches(rule.os.version, platform.os_version):
                return False
        if rule.os.arch and rule.os.arch != platform.arch:
            return False

    if rule.features:
        if features is None:
            return False
        for name, expected in rule.features.items():
            if features.get(name) != expected:
                return False

    return True


def evaluate_rules(rules: Optional[Sequence[Rule]], platform: PlatformContext,
                   features: Optional[FeatureState] = None) -> RuleAction:
    if not rules:
        return RuleAction.ALLOW

    verdict = RuleAction.DISALLOW
    for rule in rules:
        if rule_applies(rule, platform, features):
            verdict = rule.action
    return verdict


def is_allowed(rules: Optional[Sequence[Rule]], platform: PlatformContext,
               features: Optional[FeatureState] = None) -> bool:
    return evaluate_rules(rules, platform, features) is RuleAction.ALLOW
