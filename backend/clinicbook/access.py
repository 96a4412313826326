"""Role-scoped visibility and mutation rules shared by every record kind.

The rules are written once and parameterised per kind by an ownership table
naming the fields that tie a record to a patient or a clinician:

1. Unauthenticated actors see nothing and change nothing.
2. Admins see and change everything.
3. Staff see everything and manage every kind except prescriptions and
   referrals, which stay read-only for them. Among staff records they may only
   update their own.
4. Patients and clinicians only touch records they own, and only for the
   actions granted to their role on that kind.
5. Patients may only delete appointments and referrals that have not yet
   taken place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from .errors import AccessDenied
from .schemas import EntityKind, Record, Role, parse_date
from .storage import EntityStore

logger = logging.getLogger(__name__)


class Action(str, Enum):
    create = "create"
    update = "update"
    delete = "delete"


class DenialRule(str, Enum):
    """Which rule rejected a mutation."""

    self_access = "self_access"
    past_date = "past_date"
    wrong_role = "wrong_role"


@dataclass(frozen=True)
class Actor:
    """The authenticated identity driving requests into the core."""

    role: Optional[Role]
    actor_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls(role=None)

    @property
    def authenticated(self) -> bool:
        return self.role is not None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    rule: Optional[DenialRule] = None
    reason: str = ""


@dataclass(frozen=True)
class Ownership:
    """Fields naming a record's owners, and the date a patient deletion checks."""

    patient_fields: tuple[str, ...] = ()
    clinician_fields: tuple[str, ...] = ()
    staff_fields: tuple[str, ...] = ()
    dated_field: Optional[str] = None


OWNERSHIP: dict[EntityKind, Ownership] = {
    EntityKind.patient: Ownership(patient_fields=("patient_id",)),
    EntityKind.clinician: Ownership(clinician_fields=("clinician_id",)),
    EntityKind.staff: Ownership(staff_fields=("staff_id",)),
    EntityKind.facility: Ownership(),
    EntityKind.appointment: Ownership(
        patient_fields=("patient_id",),
        clinician_fields=("clinician_id",),
        dated_field="appointment_date",
    ),
    EntityKind.prescription: Ownership(
        patient_fields=("patient_id",),
        clinician_fields=("clinician_id",),
    ),
    EntityKind.referral: Ownership(
        patient_fields=("patient_id",),
        clinician_fields=("referring_clinician_id", "referred_to_clinician_id"),
        dated_field="referral_date",
    ),
}

# Read scope for the restricted roles: "all" or "own"; kinds not listed are hidden.
READ_SCOPE: dict[Role, dict[EntityKind, str]] = {
    Role.patient: {
        EntityKind.patient: "own",
        EntityKind.clinician: "all",
        EntityKind.facility: "all",
        EntityKind.appointment: "own",
        EntityKind.prescription: "own",
        EntityKind.referral: "own",
    },
    Role.clinician: {
        EntityKind.patient: "own",
        EntityKind.clinician: "own",
        EntityKind.facility: "all",
        EntityKind.appointment: "own",
        EntityKind.prescription: "own",
        EntityKind.referral: "own",
    },
}

_ALL_ACTIONS = frozenset(Action)

# Actions each non-admin role may attempt per kind. Patient and clinician
# grants, and staff grants on staff records, additionally require ownership.
WRITE_GRANTS: dict[Role, dict[EntityKind, frozenset[Action]]] = {
    Role.patient: {
        EntityKind.patient: frozenset({Action.update}),
        EntityKind.appointment: _ALL_ACTIONS,
        EntityKind.prescription: frozenset({Action.update}),
        EntityKind.referral: _ALL_ACTIONS,
    },
    Role.clinician: {
        EntityKind.patient: frozenset({Action.update}),
        EntityKind.clinician: frozenset({Action.update}),
        EntityKind.appointment: _ALL_ACTIONS,
        EntityKind.prescription: _ALL_ACTIONS,
        EntityKind.referral: _ALL_ACTIONS,
    },
    Role.staff: {
        EntityKind.patient: _ALL_ACTIONS,
        EntityKind.clinician: _ALL_ACTIONS,
        EntityKind.staff: frozenset({Action.update}),
        EntityKind.facility: _ALL_ACTIONS,
        EntityKind.appointment: _ALL_ACTIONS,
    },
}


class AccessScope:
    """Visibility and mutation policy for one actor.

    ``care_relation`` maps a clinician identifier to the patients they have
    appointments with; it decides which patient records a clinician owns.
    """

    def __init__(
        self,
        actor: Actor,
        *,
        care_relation: Optional[Callable[[str], Iterable[str]]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.actor = actor
        self._care_relation = care_relation
        self._today = today

    def owns(self, record: Record) -> bool:
        role, actor_id = self.actor.role, self.actor.actor_id
        if actor_id is None:
            return False
        ownership = OWNERSHIP[record.kind]
        if role is Role.patient:
            fields = ownership.patient_fields
        elif role is Role.clinician:
            if record.kind is EntityKind.patient:
                return record.patient_id in self._patients_in_care()
            fields = ownership.clinician_fields
        elif role is Role.staff:
            fields = ownership.staff_fields
        else:
            return False
        return any(getattr(record, field) == actor_id for field in fields)

    def can_view(self, record: Record) -> bool:
        role = self.actor.role
        if role is None:
            return False
        if role in (Role.staff, Role.admin):
            return True
        scope = READ_SCOPE[role].get(record.kind)
        if scope == "all":
            return True
        return scope == "own" and self.owns(record)

    def visible(self, source: Union[EntityStore, Iterable[Record]]) -> list[Record]:
        records = source.all() if isinstance(source, EntityStore) else source
        return [record for record in records if self.can_view(record)]

    def check(
        self, action: Action, record: Record, proposed: Optional[Record] = None
    ) -> AccessDecision:
        """Decide whether ``action`` on ``record`` is permitted.

        For updates ``record`` is the stored version and ``proposed`` the
        replacement; both must fall inside the actor's scope.
        """
        role, kind = self.actor.role, record.kind
        if role is None:
            return AccessDecision(False, DenialRule.wrong_role, "Sign in required")
        if role is Role.admin:
            return AccessDecision(True)
        if action not in WRITE_GRANTS[role].get(kind, frozenset()):
            return AccessDecision(
                False,
                DenialRule.wrong_role,
                f"{role.value.capitalize()} accounts cannot {action.value} {kind.value} records",
            )
        if role is Role.staff and not OWNERSHIP[kind].staff_fields:
            return AccessDecision(True)
        for candidate in (record, proposed):
            if candidate is not None and not self.owns(candidate):
                return AccessDecision(
                    False,
                    DenialRule.self_access,
                    f"{kind.value.capitalize()} {candidate.record_id} does not belong to {self.actor.actor_id}",
                )
        dated_field = OWNERSHIP[kind].dated_field
        if role is Role.patient and action is Action.delete and dated_field:
            value = getattr(record, dated_field)
            if not self._is_upcoming(value):
                return AccessDecision(
                    False,
                    DenialRule.past_date,
                    f"{kind.value.capitalize()} {record.record_id} dated {value or 'unknown'} has already taken place",
                )
        return AccessDecision(True)

    def authorize(
        self, action: Action, record: Record, proposed: Optional[Record] = None
    ) -> None:
        decision = self.check(action, record, proposed)
        if not decision.allowed:
            logger.warning(
                "Denied %s on %s %s for %s (%s)",
                action.value,
                record.kind.value,
                record.record_id,
                self.actor.actor_id or "anonymous",
                decision.rule.value,
            )
            raise AccessDenied(decision.rule, decision.reason)

    def _patients_in_care(self) -> set[str]:
        if self._care_relation is None or self.actor.actor_id is None:
            return set()
        return set(self._care_relation(self.actor.actor_id))

    def _is_upcoming(self, value: str) -> bool:
        occurs_on = parse_date(value)
        return occurs_on is not None and occurs_on >= self._today()
