"""
Generic finite state machine for FLEETGUARD lifecycles.

A machine is built from an explicit adjacency table (state -> allowed
targets) and an ordered list of event rules. Both are validated when the
machine is constructed, so a misspelled or missing state fails loudly at
import instead of producing a transition check that is always false.

Event resolution for a valid transition, in order:
    1. exact (from -> to) rule
    2. (ANY -> to) rule
    3. (from -> ANY) rule
    4. default "<DOMAIN>_STATE_CHANGED"
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from fleetguard.core.exceptions import TransitionTableError

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)


class FSMDomain(str, Enum):
    """The four independent lifecycle domains."""

    BOT = "BOT"
    JOB = "JOB"
    RUNNER = "RUNNER"
    IMPROVEMENT = "IMPROVEMENT"


class Wildcard(Enum):
    """Matches any state in an event rule."""

    ANY = "ANY"


ANY = Wildcard.ANY


@dataclass(frozen=True)
class EventRule:
    """Maps a (from, to) pattern to an event name."""

    from_state: Any
    to_state: Any
    event_type: str

    @property
    def is_exact(self) -> bool:
        return self.from_state is not ANY and self.to_state is not ANY


@dataclass(frozen=True)
class TransitionValidation:
    """Result of validating a proposed transition."""

    valid: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"valid": self.valid}
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class TransitionEvent:
    """Typed record emitted for every accepted transition."""

    domain: FSMDomain
    from_state: str
    to_state: str
    event_type: str
    reason: str | None = None
    evidence: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "success": True,
            "domain": self.domain.value,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "event_type": self.event_type,
            "reason": self.reason,
            "evidence": dict(self.evidence),
        }


@dataclass(frozen=True)
class TransitionResult:
    """Validation plus the event, present only when the transition is valid."""

    validation: TransitionValidation
    event: TransitionEvent | None = None

    @property
    def valid(self) -> bool:
        return self.validation.valid


class StateMachine(Generic[S]):
    """
    Closed state set with an explicit allowed-transition table.

    The machine holds no current state; callers own the entity and must
    serialize propose -> validate -> commit per record.
    """

    def __init__(
        self,
        domain: FSMDomain,
        state_type: type[S],
        transitions: Mapping[S, Iterable[S]],
        event_rules: Iterable[EventRule] = (),
    ) -> None:
        """
        Build and validate a machine.

        Args:
            domain: Lifecycle domain, used in event names and messages
            state_type: Enum of every state
            transitions: Adjacency table; every state must have an entry
            event_rules: Ordered event rules

        Raises:
            TransitionTableError: If the table or rules reference unknown
                states, omit a state, or name an edge that does not exist
        """
        self.domain = domain
        self.state_type = state_type
        self._adjacency: dict[S, frozenset[S]] = self._build_adjacency(transitions)
        self._rules: tuple[EventRule, ...] = self._check_rules(tuple(event_rules))

    def _build_adjacency(self, transitions: Mapping[S, Iterable[S]]) -> dict[S, frozenset[S]]:
        adjacency: dict[S, frozenset[S]] = {}
        for source, targets in transitions.items():
            if not isinstance(source, self.state_type):
                raise TransitionTableError(
                    f"{self.domain.value}: unknown source state {source!r}",
                    domain=self.domain.value,
                    state=str(source),
                )
            target_set = frozenset(targets)
            for target in target_set:
                if not isinstance(target, self.state_type):
                    raise TransitionTableError(
                        f"{self.domain.value}: unknown target state {target!r} from {source.value}",
                        domain=self.domain.value,
                        state=str(target),
                    )
            adjacency[source] = target_set

        missing = [s.value for s in self.state_type if s not in adjacency]
        if missing:
            raise TransitionTableError(
                f"{self.domain.value}: states missing from transition table: {missing}",
                domain=self.domain.value,
                state=missing[0],
            )
        return adjacency

    def _check_rules(self, rules: tuple[EventRule, ...]) -> tuple[EventRule, ...]:
        for rule in rules:
            for state in (rule.from_state, rule.to_state):
                if state is not ANY and not isinstance(state, self.state_type):
                    raise TransitionTableError(
                        f"{self.domain.value}: event rule {rule.event_type} names unknown state {state!r}",
                        domain=self.domain.value,
                        state=str(state),
                    )
            if rule.from_state is ANY and rule.to_state is ANY:
                raise TransitionTableError(
                    f"{self.domain.value}: rule {rule.event_type} matches everything; "
                    "the default event covers that case",
                    domain=self.domain.value,
                )
            if rule.is_exact and rule.to_state not in self._adjacency[rule.from_state]:
                raise TransitionTableError(
                    f"{self.domain.value}: event rule {rule.event_type} names non-existent edge "
                    f"{rule.from_state.value} -> {rule.to_state.value}",
                    domain=self.domain.value,
                    state=rule.from_state.value,
                )
        return rules

    @property
    def default_event(self) -> str:
        return f"{self.domain.value}_STATE_CHANGED"

    @property
    def states(self) -> tuple[S, ...]:
        return tuple(self.state_type)

    def coerce(self, state: S | str) -> S | None:
        """Convert a wire string to a state, or None if it is not one."""
        if isinstance(state, self.state_type):
            return state
        try:
            return self.state_type(getattr(state, "value", state))
        except ValueError:
            return None

    def targets(self, state: S | str) -> frozenset[S]:
        """Allowed targets from a state (empty for unknown or terminal states)."""
        s = self.coerce(state)
        return self._adjacency.get(s, frozenset()) if s is not None else frozenset()

    def is_terminal(self, state: S | str) -> bool:
        """A known state with no outgoing edges."""
        s = self.coerce(state)
        return s is not None and not self._adjacency[s]

    def can_transition(self, from_state: S | str, to_state: S | str) -> bool:
        """Whether the edge exists in the table."""
        target = self.coerce(to_state)
        return target is not None and target in self.targets(from_state)

    def _rejection_reason(self, from_state: S, to_state: S) -> str:
        return (
            f"Cannot transition {self.domain.value.lower()} "
            f"from {from_state.value} to {to_state.value}"
        )

    def validate(self, from_state: S | str, to_state: S | str) -> TransitionValidation:
        """
        Validate a proposed transition.

        Same-state transitions are accepted as no-ops. Unknown state
        names are rejected with a reason, never raised.
        """
        source = self.coerce(from_state)
        target = self.coerce(to_state)
        if source is None:
            return TransitionValidation(
                False, f"Unknown {self.domain.value.lower()} state: {from_state}"
            )
        if target is None:
            return TransitionValidation(
                False, f"Unknown {self.domain.value.lower()} state: {to_state}"
            )
        if source == target:
            return TransitionValidation(True)
        if target not in self._adjacency[source]:
            return TransitionValidation(False, self._rejection_reason(source, target))
        return TransitionValidation(True)

    def resolve_event(self, from_state: S | str, to_state: S | str) -> str:
        """Event name for a transition, falling back to the domain default."""
        source = self.coerce(from_state)
        target = self.coerce(to_state)

        for rule in self._rules:
            if rule.is_exact and rule.from_state == source and rule.to_state == target:
                return rule.event_type
        for rule in self._rules:
            if rule.from_state is ANY and rule.to_state == target:
                return rule.event_type
        for rule in self._rules:
            if rule.to_state is ANY and rule.from_state == source:
                return rule.event_type
        return self.default_event

    def create_event(
        self,
        from_state: S | str,
        to_state: S | str,
        reason: str | None = None,
        evidence: Mapping[str, Any] | None = None,
    ) -> TransitionEvent:
        """Build the event record for a transition (no validation)."""
        return TransitionEvent(
            domain=self.domain,
            from_state=getattr(from_state, "value", str(from_state)),
            to_state=getattr(to_state, "value", str(to_state)),
            event_type=self.resolve_event(from_state, to_state),
            reason=reason,
            evidence=dict(evidence or {}),
        )

    def transition(
        self,
        from_state: S | str,
        to_state: S | str,
        reason: str | None = None,
        evidence: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        """
        Validate a transition and, if valid, produce its event.

        Does not commit anything; the caller persists the new state.
        """
        validation = self.validate(from_state, to_state)
        if not validation.valid:
            logger.warning(f"{self.domain.value} transition rejected: {validation.reason}")
            return TransitionResult(validation=validation)

        event = self.create_event(from_state, to_state, reason, evidence)
        logger.debug(
            f"{self.domain.value} {event.from_state} -> {event.to_state}: {event.event_type}"
        )
        return TransitionResult(validation=validation, event=event)
