"""Interface acceptance policy — allow/deny filter over interface names.

Policy syntax::

    policy  := [!]pattern,[!]pattern,...
    pattern := prefix[*suffix]

e.g. 'eth*,lo*,!eth1'. Matching is case-insensitive; a leading '!'
turns the pattern into a deny rule.
"""

from __future__ import annotations

import logging

log = logging.getLogger("bwmon.policy")

MAX_POLICY = 255


def match_mask(mask: str, name: str) -> bool:
    """Match name against a pattern with at most one '*' wildcard."""
    mask = mask.lower()
    name = name.lower()
    if "*" not in mask:
        return mask == name
    prefix, suffix = mask.split("*", 1)
    if len(name) < len(prefix) + len(suffix):
        return False
    return name.startswith(prefix) and name.endswith(suffix)


class Policy:
    """Write-once acceptance policy: only the first parse() takes effect."""

    def __init__(self) -> None:
        self.allowed: list[str] = []
        self.denied: list[str] = []
        self._set = False

    def parse(self, policy: str) -> None:
        if self._set:
            log.debug("Policy already set, ignoring %r", policy)
            return
        self._set = True

        for token in policy.split(","):
            token = token.strip()
            if token.startswith("!"):
                target, token = self.denied, token[1:]
            else:
                target = self.allowed
            if not token:
                continue
            if len(target) >= MAX_POLICY:
                log.warning("Policy has more than %d entries, rest ignored", MAX_POLICY)
                break
            target.append(token)

    def allowed_name(self, name: str) -> bool:
        if any(match_mask(m, name) for m in self.denied):
            return False
        if not self.allowed:
            return True
        return any(match_mask(m, name) for m in self.allowed)
