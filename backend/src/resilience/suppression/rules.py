"""
Suppression rules for known-benign pairing-library errors.
"""
from typing import Iterable, Optional, Sequence

from ..types import RawError, RuleSeverity, SuppressionRule

# Raised by the pairing library while it validates sessions that a mobile
# wallet has already deleted.
SESSION_VALIDATION_RULE = SuppressionRule(
    message_patterns=(
        "no matching key",
        "session or pairing topic doesn't exist",
        "session topic doesn't exist",
        "pairing topic doesn't exist",
    ),
    description="Session validation errors during cleanup",
    severity=RuleSeverity.LOW
)

TOPIC_VALIDATION_RULE = SuppressionRule(
    message_patterns=(
        "session or pairing topic not found",
        "invalid session topic",
        "invalid pairing topic",
    ),
    description="Topic validation errors",
    severity=RuleSeverity.LOW
)

STORE_ACCESS_RULE = SuppressionRule(
    message_patterns=(
        "cannot read properties of undefined (reading 'getdata')",
        "cannot read properties of undefined (reading 'get')",
        "'nonetype' object has no attribute 'get_data'",
        "'nonetype' object has no attribute 'getdata'",
    ),
    description="Store access errors during cleanup",
    severity=RuleSeverity.LOW
)

INTERNAL_METHOD_RULE = SuppressionRule(
    message_patterns=(
        "isvalidsessionorpairingtopic",
        "is_valid_session_or_pairing_topic",
        "isvaliddisconnect",
        "is_valid_disconnect",
        "onsessiondeleterequest",
        "deletesession",
    ),
    description="Errors naming pairing-library session cleanup internals",
    severity=RuleSeverity.LOW
)

DEFAULT_RULES: tuple[SuppressionRule, ...] = (
    SESSION_VALIDATION_RULE,
    TOPIC_VALIDATION_RULE,
    STORE_ACCESS_RULE,
    INTERNAL_METHOD_RULE,
)


def _rule_matches(rule: SuppressionRule, message: str, stack: str) -> bool:
    if not any(pattern.lower() in message for pattern in rule.message_patterns):
        return False

    # Without stack patterns the message alone decides
    if not rule.stack_patterns:
        return True

    return any(pattern.lower() in stack for pattern in rule.stack_patterns)


def find_matching_rule(error: RawError, rules: Iterable[SuppressionRule]) -> Optional[SuppressionRule]:
    """Return the first rule matching ``error``, scanning in insertion order."""
    message = (error.message or "").lower()
    stack = (error.stack or "").lower()

    for rule in rules:
        if _rule_matches(rule, message, stack):
            return rule
    return None


def matches(error: RawError, rules: Iterable[SuppressionRule]) -> bool:
    """Check whether ``error`` matches any known-benign pattern."""
    return find_matching_rule(error, rules) is not None


class RuleEngine:
    """Append-only, ordered set of suppression rules."""

    def __init__(self, rules: Optional[Iterable[SuppressionRule]] = None):
        self._rules: list[SuppressionRule] = list(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> Sequence[SuppressionRule]:
        return tuple(self._rules)

    @property
    def needs_stack(self) -> bool:
        """True when some rule inspects the stack as well as the message."""
        return any(rule.stack_patterns for rule in self._rules)

    def add_rule(self, rule: SuppressionRule) -> None:
        """Append a rule. Rules are never removed within a session."""
        self._rules.append(rule)

    def matches(self, error: RawError) -> bool:
        return matches(error, self._rules)

    def find_match(self, error: RawError) -> Optional[SuppressionRule]:
        return find_matching_rule(error, self._rules)

    def __len__(self) -> int:
        return len(self._rules)
