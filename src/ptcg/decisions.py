"""
PTCG Rules Engine - Decision Points (decisions.py)

Effects that need an external choice are written as generators. Each
``yield`` hands a DecisionRequest to the DecisionManager and receives the
answer back:

    target = yield request_selection(player.index, "Choose a Basic", options)

Automated resolvers (AI, tests) answer on the spot, so the generator runs to
completion synchronously. Interactive resolvers (humans) suspend the
generator; the engine returns an ActionResult carrying the pending request
and continues exactly where the effect stopped once ``resolve`` is called.
``cancel`` closes the generator and restores the state snapshot taken when
the procedure started, so a half-applied effect never leaks.

Only one procedure is ever in flight.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Dict, Generator, Iterable, List, Optional, Sequence, Union

from ptcg.errors import DecisionError
from ptcg.events import EventBus, EventType
from ptcg.models import (
    ActionResult,
    DecisionKind,
    DecisionOption,
    DecisionRequest,
    GameState,
    card_label,
)

logger = logging.getLogger(__name__)

# A procedure yields requests, receives answers, and returns an ActionResult (or bool)
Procedure = Generator[DecisionRequest, Any, Union[ActionResult, bool, None]]


# ============================================================================
# 1. REQUEST BUILDERS
# ============================================================================

def make_options(items: Iterable[Any], label: Callable[[Any], str] = None) -> List[DecisionOption]:
    """
    Wrap values as decision options.

    Args:
        items: Option values (cards, creatures, ints...)
        label: Label function; defaults to card_label for cards and
               .label() for creatures

    Returns:
        List of DecisionOption in the given order
    """
    options = []
    for item in items:
        if label is not None:
            text = label(item)
        elif hasattr(item, "label") and callable(item.label):
            text = item.label()
        elif hasattr(item, "kind"):
            text = card_label(item)
        else:
            text = str(item)
        options.append(DecisionOption(label=text, value=item))
    return options


def request_selection(
    player_index: int,
    prompt: str,
    options: Sequence[DecisionOption],
    source: str = "",
    cancellable: bool = True,
    on_resolved: Optional[Callable[[Any], None]] = None,
) -> DecisionRequest:
    """Pick exactly one option. The effect receives the value (None if there were no options)."""
    return DecisionRequest(
        kind=DecisionKind.SELECT,
        player_index=player_index,
        prompt=prompt,
        options=list(options),
        max_picks=1,
        min_picks=1,
        source=source,
        cancellable=cancellable,
        on_resolved=on_resolved,
    )


def request_multi_selection(
    player_index: int,
    prompt: str,
    options: Sequence[DecisionOption],
    max_picks: int,
    min_picks: int = 0,
    source: str = "",
    cancellable: bool = True,
    on_resolved: Optional[Callable[[Any], None]] = None,
) -> DecisionRequest:
    """Pick between min_picks and max_picks options. The effect receives a list of values."""
    return DecisionRequest(
        kind=DecisionKind.MULTI_SELECT,
        player_index=player_index,
        prompt=prompt,
        options=list(options),
        max_picks=max_picks,
        min_picks=min_picks,
        source=source,
        cancellable=cancellable,
        on_resolved=on_resolved,
    )


def request_confirmation(
    player_index: int,
    prompt: str,
    message: str = "",
    source: str = "",
    cancellable: bool = True,
    on_resolved: Optional[Callable[[Any], None]] = None,
) -> DecisionRequest:
    """Yes/no question. The effect receives a bool."""
    return DecisionRequest(
        kind=DecisionKind.CONFIRM,
        player_index=player_index,
        prompt=prompt,
        message=message,
        source=source,
        cancellable=cancellable,
        on_resolved=on_resolved,
    )


# ============================================================================
# 2. RESOLVERS (WHO ANSWERS)
# ============================================================================

class DecisionResolver(ABC):
    """Answers decision requests for one player."""

    interactive = False

    @abstractmethod
    def resolve(self, request: DecisionRequest) -> Any:
        """Return the answer value for a request (automated resolvers only)."""
        pass


class AutoResolver(DecisionResolver):
    """
    Deterministic resolver used by the AI and by tests.

    SELECT takes the first option, MULTI_SELECT the first max_picks options,
    CONFIRM answers yes.
    """

    def resolve(self, request: DecisionRequest) -> Any:
        values = request.option_values()
        if request.kind == DecisionKind.CONFIRM:
            return True
        if request.kind == DecisionKind.MULTI_SELECT:
            return values[:request.max_picks]
        return values[0] if values else None


class ScriptedResolver(AutoResolver):
    """
    Answers from a queue of scripted picks, falling back to AutoResolver
    behaviour once the script runs out.

    Each scripted answer is an option index (SELECT), a list of indices
    (MULTI_SELECT) or a bool (CONFIRM).
    """

    def __init__(self, answers: Iterable[Any] = ()):
        self.answers: Deque[Any] = deque(answers)

    def push(self, *answers: Any) -> None:
        self.answers.extend(answers)

    def resolve(self, request: DecisionRequest) -> Any:
        if not self.answers:
            return super().resolve(request)
        return answer_to_value(request, self.answers.popleft())


class InteractiveResolver(DecisionResolver):
    """Marks a human seat: requests suspend until the engine is told the answer."""

    interactive = True

    def resolve(self, request: DecisionRequest) -> Any:
        raise DecisionError("Interactive requests are answered through GameEngine.resolve_decision")


def answer_to_value(request: DecisionRequest, answer: Any) -> Any:
    """
    Translate an external answer (indices / bool) into option values.

    Raises:
        DecisionError: If the answer does not fit the request
    """
    values = request.option_values()

    if request.kind == DecisionKind.CONFIRM:
        if not isinstance(answer, bool):
            raise DecisionError(f"Confirmation '{request.prompt}' needs a bool, got {answer!r}")
        return answer

    if request.kind == DecisionKind.SELECT:
        if not isinstance(answer, int) or isinstance(answer, bool):
            raise DecisionError(f"Selection '{request.prompt}' needs an option index, got {answer!r}")
        if not 0 <= answer < len(values):
            raise DecisionError(f"Option {answer} out of range for '{request.prompt}' ({len(values)} options)")
        return values[answer]

    indices = list(answer)
    if len(set(indices)) != len(indices):
        raise DecisionError(f"Duplicate picks for '{request.prompt}': {indices}")
    if not request.min_picks <= len(indices) <= request.max_picks:
        raise DecisionError(
            f"'{request.prompt}' needs {request.min_picks}-{request.max_picks} picks, got {len(indices)}"
        )
    for index in indices:
        if not 0 <= index < len(values):
            raise DecisionError(f"Option {index} out of range for '{request.prompt}'")
    return [values[i] for i in indices]


# ============================================================================
# 3. DECISION MANAGER (DRIVES PROCEDURES)
# ============================================================================

class _InFlight:
    """A suspended procedure plus what is needed to resume or roll it back."""

    def __init__(self, name: str, procedure: Procedure, snapshot: Optional[GameState],
                 restore: Callable[[GameState], None]):
        self.name = name
        self.procedure = procedure
        self.snapshot = snapshot
        self.restore = restore
        self.request: Optional[DecisionRequest] = None


class DecisionManager:
    """
    Runs engine procedures and routes their decision requests to the
    resolver registered for the answering player.
    """

    def __init__(self, events: Optional[EventBus] = None):
        self.events = events
        self._resolvers: Dict[int, DecisionResolver] = {0: AutoResolver(), 1: AutoResolver()}
        self._in_flight: Optional[_InFlight] = None

    # ------------------------------------------------------------------------
    # Resolver registry
    # ------------------------------------------------------------------------

    def set_resolver(self, player_index: int, resolver: DecisionResolver) -> None:
        self._resolvers[player_index] = resolver

    def resolver_for(self, player_index: int) -> DecisionResolver:
        return self._resolvers[player_index]

    def has_interactive(self) -> bool:
        return any(r.interactive for r in self._resolvers.values())

    # ------------------------------------------------------------------------
    # In-flight state
    # ------------------------------------------------------------------------

    @property
    def pending(self) -> Optional[DecisionRequest]:
        """The request a human must answer, if a procedure is suspended."""
        if self._in_flight is None:
            return None
        return self._in_flight.request

    @property
    def in_flight_name(self) -> Optional[str]:
        return self._in_flight.name if self._in_flight else None

    # ------------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------------

    def start(self, name: str, procedure: Procedure, snapshot: Optional[GameState],
              restore: Callable[[GameState], None]) -> ActionResult:
        """
        Run a procedure until it finishes or suspends on an interactive request.

        Args:
            name: Label for logs ("attack", "play Nest Ball"...)
            procedure: The generator to drive
            snapshot: State clone to restore on cancel (None when no human seat exists)
            restore: Callback that swaps the snapshot back into the engine

        Returns:
            The procedure's ActionResult, or ActionResult.awaiting(request)
        """
        if self._in_flight is not None:
            raise DecisionError(f"Cannot start '{name}' while '{self._in_flight.name}' is in flight")
        flight = _InFlight(name, procedure, snapshot, restore)
        return self._drive(flight, None, first=True)

    def resolve(self, answer: Any) -> ActionResult:
        """
        Answer the pending request and resume the suspended procedure.

        Raises:
            DecisionError: If nothing is pending or the answer is malformed
        """
        flight = self._in_flight
        if flight is None or flight.request is None:
            raise DecisionError("No decision is pending")
        request = flight.request
        value = answer_to_value(request, answer)
        flight.request = None
        self._notify_resolved(request, value)
        return self._drive(flight, value)

    def cancel(self) -> ActionResult:
        """Abort the pending procedure and roll its partial state back."""
        flight = self._in_flight
        if flight is None or flight.request is None:
            raise DecisionError("No decision is pending")
        request = flight.request
        if not request.cancellable:
            return ActionResult.fail("decision cannot be cancelled")

        self._in_flight = None
        flight.procedure.close()
        if flight.snapshot is not None:
            flight.restore(flight.snapshot)
        logger.info(f"[Decision] '{request.prompt}' cancelled - '{flight.name}' rolled back")
        self._notify_resolved(request, None, cancelled=True)
        return ActionResult.fail("cancelled")

    def _drive(self, flight: _InFlight, value: Any, first: bool = False) -> ActionResult:
        send_value = value
        while True:
            try:
                request = next(flight.procedure) if first else flight.procedure.send(send_value)
            except StopIteration as stop:
                self._in_flight = None
                return _as_result(stop.value)
            except Exception:
                self._in_flight = None
                if flight.snapshot is not None:
                    flight.restore(flight.snapshot)
                raise
            first = False

            if self._answers_itself(request):
                send_value = AutoResolver().resolve(request)
                self._notify_resolved(request, send_value)
                continue

            resolver = self.resolver_for(request.player_index)
            if resolver.interactive:
                flight.request = request
                self._in_flight = flight
                logger.debug(f"[Decision] '{flight.name}' waiting on player {request.player_index}: {request.prompt}")
                if self.events is not None:
                    self.events.emit(EventType.DECISION_REQUESTED, request.player_index,
                                     request=request, procedure=flight.name)
                return ActionResult.awaiting(request)

            send_value = resolver.resolve(request)
            logger.debug(f"[Decision] {request.prompt} -> {send_value!r}")
            self._notify_resolved(request, send_value)

    @staticmethod
    def _answers_itself(request: DecisionRequest) -> bool:
        # Nothing to choose from: resolve immediately for every seat
        return request.kind != DecisionKind.CONFIRM and not request.options

    def _notify_resolved(self, request: DecisionRequest, value: Any, cancelled: bool = False) -> None:
        if request.on_resolved is not None:
            callback, request.on_resolved = request.on_resolved, None
            callback(value)
        if self.events is not None:
            self.events.emit(EventType.DECISION_RESOLVED, request.player_index,
                             request_id=request.request_id, cancelled=cancelled)


def run_effect(outcome: Union[Procedure, ActionResult, bool, None]) -> Procedure:
    """
    Delegate to an effect that may or may not need decisions.

    Effects without choices are plain functions returning an ActionResult;
    the rest are generators. Either way the caller gets an ActionResult via
    ``yield from``.
    """
    if inspect.isgenerator(outcome):
        outcome = yield from outcome
    return _as_result(outcome)


def _as_result(value: Union[ActionResult, bool, None]) -> ActionResult:
    if isinstance(value, ActionResult):
        return value
    if value is None or value is True:
        return ActionResult.ok()
    return ActionResult.fail("effect failed")
