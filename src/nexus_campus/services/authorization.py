"""Role and ownership rules for mutating scoped resources.

``RULES`` maps (resource type, action) to who may act: roles that may act on
any resource in their college, roles that may act on resources they author
(optionally only while the resource is in a given state), and roles granted
access as a task assignee or an accepted project member. Scope is checked
first and reported as absence so cross-college resources never leak.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from nexus_campus.core.errors import ForbiddenError, NotFoundError
from nexus_campus.core.security import (
    ROLE_DEPT_ADMIN,
    ROLE_FACULTY,
    ROLE_HEAD_ADMIN,
    ROLE_STUDENT,
    CallerContext,
)
from nexus_campus.models.event import MODERATION_PENDING

logger = logging.getLogger(__name__)

ADMINS = frozenset({ROLE_DEPT_ADMIN, ROLE_HEAD_ADMIN})
STAFF = frozenset({ROLE_FACULTY, ROLE_DEPT_ADMIN, ROLE_HEAD_ADMIN})
EVERYONE = frozenset({ROLE_STUDENT, ROLE_FACULTY, ROLE_DEPT_ADMIN, ROLE_HEAD_ADMIN})


class Action(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MODERATE = "moderate"
    EXPORT = "export"
    APPLY = "apply"
    REVIEW = "review"
    COLLABORATE = "collaborate"
    UPDATE_STATUS = "update_status"
    AWARD = "award"


@dataclass(frozen=True)
class Rule:
    any_roles: frozenset[str] = frozenset()
    owner_roles: frozenset[str] = frozenset()
    owner_condition: Callable[[Any], bool] | None = None
    assignee_roles: frozenset[str] = frozenset()
    members_allowed: bool = False


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _event_pending(event: Any) -> bool:
    return event.moderation_status == MODERATION_PENDING


RULES: dict[tuple[str, Action], Rule] = {
    ("event", Action.CREATE): Rule(any_roles=EVERYONE),
    ("event", Action.UPDATE): Rule(
        any_roles=STAFF, owner_roles=frozenset({ROLE_STUDENT}), owner_condition=_event_pending
    ),
    ("event", Action.DELETE): Rule(
        any_roles=STAFF, owner_roles=frozenset({ROLE_STUDENT}), owner_condition=_event_pending
    ),
    ("event", Action.MODERATE): Rule(any_roles=ADMINS),
    ("event", Action.EXPORT): Rule(any_roles=frozenset({ROLE_FACULTY})),
    ("project", Action.CREATE): Rule(any_roles=frozenset({ROLE_FACULTY})),
    ("project", Action.UPDATE): Rule(owner_roles=frozenset({ROLE_FACULTY})),
    ("project", Action.DELETE): Rule(owner_roles=frozenset({ROLE_FACULTY})),
    ("project", Action.MODERATE): Rule(any_roles=ADMINS),
    ("project", Action.APPLY): Rule(any_roles=frozenset({ROLE_STUDENT})),
    ("project", Action.REVIEW): Rule(owner_roles=frozenset({ROLE_FACULTY})),
    ("project", Action.COLLABORATE): Rule(owner_roles=EVERYONE, members_allowed=True),
    ("task", Action.UPDATE): Rule(owner_roles=frozenset({ROLE_FACULTY})),
    ("task", Action.UPDATE_STATUS): Rule(
        owner_roles=frozenset({ROLE_FACULTY}), assignee_roles=frozenset({ROLE_STUDENT})
    ),
    ("task", Action.DELETE): Rule(owner_roles=frozenset({ROLE_FACULTY})),
    ("badge", Action.CREATE): Rule(any_roles=STAFF),
    ("badge", Action.AWARD): Rule(any_roles=STAFF),
    ("post", Action.UPDATE): Rule(owner_roles=EVERYONE),
    ("post", Action.DELETE): Rule(any_roles=ADMINS, owner_roles=EVERYONE),
    ("post_comment", Action.DELETE): Rule(any_roles=ADMINS, owner_roles=EVERYONE),
}


def _owner_id(resource_type: str, resource: Any) -> str | None:
    if resource_type == "task":
        return resource.project.author_id
    return getattr(resource, "author_id", None)


def _college_id(resource_type: str, resource: Any) -> str | None:
    if resource_type == "task":
        return resource.project.college_id
    return getattr(resource, "college_id", None)


def authorize(
    caller: CallerContext,
    resource_type: str,
    action: Action,
    resource: Any = None,
    *,
    is_member: bool = False,
) -> Decision:
    """Decide whether ``caller`` may perform ``action`` on ``resource``."""
    rule = RULES.get((resource_type, action))
    if rule is None:
        return Decision(False, "no-rule")

    if resource is not None and _college_id(resource_type, resource) != caller.college_id:
        return Decision(False, "out-of-scope")

    if caller.has_role(*rule.any_roles):
        return Decision(True, "role")
    if resource is None:
        return Decision(False, "role-required")

    if caller.has_role(*rule.owner_roles) and _owner_id(resource_type, resource) == caller.subject:
        if rule.owner_condition is None or rule.owner_condition(resource):
            return Decision(True, "owner")
        return Decision(False, "owner-state")

    if (
        caller.has_role(*rule.assignee_roles)
        and getattr(resource, "assigned_to_id", None) == caller.subject
    ):
        return Decision(True, "assignee")

    if rule.members_allowed and is_member:
        return Decision(True, "member")

    return Decision(False, "not-owner")


def require(
    caller: CallerContext,
    resource_type: str,
    action: Action,
    resource: Any = None,
    *,
    is_member: bool = False,
) -> Decision:
    """Like :func:`authorize` but raise on denial.

    Raises:
        NotFoundError: The resource belongs to another college.
        ForbiddenError: The caller lacks the role or ownership required.
    """
    decision = authorize(caller, resource_type, action, resource, is_member=is_member)
    if decision.allowed:
        return decision
    logger.info(
        "Denied %s %s for %s: %s", action.value, resource_type, caller.subject, decision.reason
    )
    if decision.reason == "out-of-scope":
        raise NotFoundError(reason=decision.reason)
    raise ForbiddenError(reason=decision.reason)
