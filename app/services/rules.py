"""Rule evaluation — decide which monitoring rules an event triggers.

Predicates within a rule are conjunctive. Inside the file predicate the
match is existential twice over: any changed file matching any pattern.
"""

import logging
import re
from collections.abc import Iterable
from functools import lru_cache

from app.models.event import WebhookEvent
from app.models.monitoring_rule import RuleSnapshot

logger = logging.getLogger(__name__)


def glob_to_regex(pattern: str) -> str:
    """Translate a path glob into an anchored regex.

    ``**`` crosses path separators, ``*`` does not, ``?`` is one character.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if ch == "*":
            parts.append("[^/]*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
        i += 1
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=1024)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(glob_to_regex(pattern))


def match_glob(filename: str, pattern: str) -> bool:
    return _compiled(pattern).match(filename) is not None


def _files_match(patterns: list[str], event: WebhookEvent) -> bool:
    return any(
        match_glob(filename, pattern)
        for filename in event.changed_files()
        for pattern in patterns
    )


def _branch_matches(branches: list[str], event: WebhookEvent) -> bool:
    pr = event.pull_request
    if pr is None:
        return False
    return pr.branch in branches or pr.base_branch in branches


def evaluate(rule: RuleSnapshot, event: WebhookEvent) -> bool:
    """True when every predicate the rule sets passes for the event."""
    conditions = rule.conditions

    if conditions.file_patterns and not _files_match(conditions.file_patterns, event):
        return False

    if conditions.branches and not _branch_matches(conditions.branches, event):
        return False

    if conditions.authors and event.sender.username not in conditions.authors:
        return False

    return True


def match_rules(rules: Iterable[RuleSnapshot], event: WebhookEvent) -> list[RuleSnapshot]:
    """Filter rules down to those the event triggers, keeping their order."""
    matched = [rule for rule in rules if evaluate(rule, event)]
    logger.debug(
        "Event %s on %s matched %d rule(s)",
        event.event, event.repository.full_name, len(matched),
    )
    return matched
