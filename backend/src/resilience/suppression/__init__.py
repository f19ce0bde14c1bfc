"""Suppression of known-benign pairing-library errors."""
from .activator import SuppressionActivator, get_suppression_activator
from .hooks import HookSet, PlatformHooks
from .patcher import PATCHABLE_METHODS, MethodPatcher
from .rules import DEFAULT_RULES, RuleEngine, find_matching_rule, matches

__all__ = [
    "DEFAULT_RULES",
    "HookSet",
    "MethodPatcher",
    "PATCHABLE_METHODS",
    "PlatformHooks",
    "RuleEngine",
    "SuppressionActivator",
    "find_matching_rule",
    "get_suppression_activator",
    "matches",
]
