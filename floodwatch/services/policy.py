"""
FloodWatch — Access policy for resource mutations.

Each action maps to a list of rules; an actor is allowed when any rule
allows it. Call sites ask ``policy.check(actor, resource, action)`` and
never inspect roles or ownership themselves.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from floodwatch.core.exceptions import AuthorizationError
from floodwatch.core.security import CurrentUser

Rule = Callable[[CurrentUser, Any], bool]

UPDATE_REPORT_STATUS = "UPDATE_STATUS:flood_report"
READ_USERS = "READ:user"


def can_mutate_status(reported_by: str, caller_id: str, caller_role: str) -> bool:
    """Owner of the report, or any admin."""
    return reported_by == caller_id or caller_role == "admin"


def is_admin(actor: CurrentUser, resource: Any) -> bool:
    return actor.role == "admin"


def is_report_owner(actor: CurrentUser, resource: Any) -> bool:
    return can_mutate_status(resource.reported_by, actor.user_id, actor.role)


POLICY_RULES: Dict[str, List[Rule]] = {
    UPDATE_REPORT_STATUS: [is_report_owner, is_admin],
    READ_USERS: [is_admin],
}

DENIAL_MESSAGES: Dict[str, str] = {
    UPDATE_REPORT_STATUS: "Not authorized to update this report",
    READ_USERS: "Not authorized to view accounts",
}


class AccessPolicy:
    """Decides whether an actor may perform an action on a resource."""

    def __init__(self, rules: Optional[Dict[str, List[Rule]]] = None) -> None:
        source = POLICY_RULES if rules is None else rules
        self.rules: Dict[str, List[Rule]] = {k: list(v) for k, v in source.items()}

    def register_rule(self, action: str, rule: Rule) -> None:
        self.rules.setdefault(action, []).append(rule)

    def authorize(self, actor: CurrentUser, resource: Any, action: str) -> bool:
        """Return True if any rule for ``action`` allows it. Unknown actions deny."""
        return any(rule(actor, resource) for rule in self.rules.get(action, []))

    def check(self, actor: CurrentUser, resource: Any, action: str) -> None:
        """Raise AuthorizationError unless ``authorize`` allows the action."""
        if not self.authorize(actor, resource, action):
            raise AuthorizationError(
                message=DENIAL_MESSAGES.get(
                    action, "Not authorized to perform this action"
                ),
                role=actor.role,
                action=action,
            )


policy = AccessPolicy()
