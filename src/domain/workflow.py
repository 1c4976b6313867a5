"""
Registration phase machine - Pure transitions for one registration attempt.

A registration attempt survives an unbounded, user-paced wait while the
payer confirms the deposit hold. Instead of keeping that state in the
service, the attempt is an explicit value held by the caller, and this
module maps (phase, signal) to the next phase plus the external call the
driver must make next.

Transitions
===========

    STARTED               --not_registered-->       STARTED               (create_intent)
    STARTED               --already_registered-->   DUPLICATE
    STARTED               --intent_created-->       AWAITING_CONFIRMATION (await_confirmation)
    STARTED               --intent_failed-->        FAILED
    AWAITING_CONFIRMATION --confirmed-->            CONFIRMED             (commit)
    AWAITING_CONFIRMATION --confirmation_failed-->  FAILED
    CONFIRMED             --committed-->            REGISTERED
    CONFIRMED             --commit_conflict-->      DUPLICATE
    CONFIRMED             --commit_failed-->        ORPHANED              (report_orphan)

REGISTERED, DUPLICATE, FAILED and ORPHANED are terminal. A retry after
FAILED is a new attempt with a fresh authorization.
"""

from dataclasses import dataclass, replace
from enum import Enum

from .exceptions import InvalidTransition


class Phase(str, Enum):
    STARTED = "started"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    REGISTERED = "registered"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    ORPHANED = "orphaned"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


class Signal(str, Enum):
    NOT_REGISTERED = "not_registered"
    ALREADY_REGISTERED = "already_registered"
    INTENT_CREATED = "intent_created"
    INTENT_FAILED = "intent_failed"
    CONFIRMED = "confirmed"
    CONFIRMATION_FAILED = "confirmation_failed"
    COMMITTED = "committed"
    COMMIT_CONFLICT = "commit_conflict"
    COMMIT_FAILED = "commit_failed"


class Action(str, Enum):
    CHECK_DUPLICATE = "check_duplicate"
    CREATE_INTENT = "create_intent"
    AWAIT_CONFIRMATION = "await_confirmation"
    COMMIT = "commit"
    REPORT_ORPHAN = "report_orphan"
    NONE = "none"


@dataclass(frozen=True)
class Step:
    phase: Phase
    action: Action


_TERMINAL = frozenset({Phase.REGISTERED, Phase.DUPLICATE, Phase.FAILED, Phase.ORPHANED})

_TRANSITIONS: dict[tuple[Phase, Signal], Step] = {
    (Phase.STARTED, Signal.NOT_REGISTERED): Step(Phase.STARTED, Action.CREATE_INTENT),
    (Phase.STARTED, Signal.ALREADY_REGISTERED): Step(Phase.DUPLICATE, Action.NONE),
    (Phase.STARTED, Signal.INTENT_CREATED): Step(
        Phase.AWAITING_CONFIRMATION, Action.AWAIT_CONFIRMATION
    ),
    (Phase.STARTED, Signal.INTENT_FAILED): Step(Phase.FAILED, Action.NONE),
    (Phase.AWAITING_CONFIRMATION, Signal.CONFIRMED): Step(Phase.CONFIRMED, Action.COMMIT),
    (Phase.AWAITING_CONFIRMATION, Signal.CONFIRMATION_FAILED): Step(Phase.FAILED, Action.NONE),
    (Phase.CONFIRMED, Signal.COMMITTED): Step(Phase.REGISTERED, Action.NONE),
    (Phase.CONFIRMED, Signal.COMMIT_CONFLICT): Step(Phase.DUPLICATE, Action.NONE),
    (Phase.CONFIRMED, Signal.COMMIT_FAILED): Step(Phase.ORPHANED, Action.REPORT_ORPHAN),
}


def begin() -> Step:
    """Entry step of every attempt: run the duplicate-check gate."""
    return Step(Phase.STARTED, Action.CHECK_DUPLICATE)


def advance(phase: Phase, signal: Signal) -> Step:
    """
    Compute the next step for a phase given an observed signal.

    Raises:
        InvalidTransition: If the signal is not defined for the phase
    """
    try:
        return _TRANSITIONS[(phase, signal)]
    except KeyError:
        raise InvalidTransition(f"{signal.value} is not valid in phase {phase.value}") from None


@dataclass(frozen=True)
class RegistrationAttempt:
    """
    State of one registration attempt, held by the client between requests.

    client_secret and authorization_id are only set once the intent exists.
    """

    event_id: str
    email: str
    name: str
    phase: Phase = Phase.STARTED
    authorization_id: str | None = None
    client_secret: str | None = None
    amount_minor: int | None = None
    currency: str | None = None

    def apply(self, signal: Signal, **changes: object) -> tuple["RegistrationAttempt", Action]:
        """Advance this attempt, returning the updated attempt and the next action."""
        step = advance(self.phase, signal)
        return replace(self, phase=step.phase, **changes), step.action
