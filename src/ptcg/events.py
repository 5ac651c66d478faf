"""
PTCG Rules Engine - Event Bus (events.py)

The engine publishes an event after every observable state change (card
moved between zones, damage, status, phase, knockout, decision...). A UI or
replay recorder subscribes instead of polling the state.

Subscribers are called synchronously, in subscription order, after the
change has been applied.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional


class EventType(str, Enum):
    ZONE_CHANGED = "zone_changed"
    DAMAGE_CHANGED = "damage_changed"
    STATUS_CHANGED = "status_changed"
    ENERGY_ATTACHED = "energy_attached"
    TOOL_ATTACHED = "tool_attached"
    EVOLVED = "evolved"
    ACTIVE_CHANGED = "active_changed"
    STADIUM_CHANGED = "stadium_changed"
    KNOCKOUT = "knockout"
    PRIZE_TAKEN = "prize_taken"
    COIN_FLIPPED = "coin_flipped"
    PHASE_CHANGED = "phase_changed"
    TURN_STARTED = "turn_started"
    TURN_ENDED = "turn_ended"
    DECISION_REQUESTED = "decision_requested"
    DECISION_RESOLVED = "decision_resolved"
    STATE_RESTORED = "state_restored"
    GAME_OVER = "game_over"


@dataclass
class GameEvent:
    """
    A published state change.

    Attributes:
        type: What happened
        player_index: Player the change belongs to (None for board-wide events)
        payload: Event specific details (card ids, amounts, zones)
        sequence: Monotonic counter, unique per bus
    """
    type: EventType
    player_index: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0


EventCallback = Callable[[GameEvent], None]


class EventBus:
    """Observer-pattern dispatcher with a bounded history for debugging and replays."""

    def __init__(self, max_history: int = 1000) -> None:
        # None key = subscribed to every event type
        self._subscribers: Dict[Optional[EventType], List[EventCallback]] = {}
        self._history: Deque[GameEvent] = deque(maxlen=max_history)
        self._next_sequence = 0

    def subscribe(self, callback: EventCallback, event_type: Optional[EventType] = None) -> Callable[[], None]:
        """
        Register a callback for one event type, or for all of them.

        Args:
            callback: Called with each matching GameEvent
            event_type: Type to listen for; None listens to everything

        Returns:
            A function that removes the subscription
        """
        callbacks = self._subscribers.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, event_type: EventType, player_index: Optional[int] = None, **payload: Any) -> GameEvent:
        event = GameEvent(type=event_type, player_index=player_index,
                          payload=payload, sequence=self._next_sequence)
        self._next_sequence += 1
        self._history.append(event)

        for callback in list(self._subscribers.get(event_type, ())):
            callback(event)
        for callback in list(self._subscribers.get(None, ())):
            callback(event)
        return event

    @property
    def history(self) -> List[GameEvent]:
        return list(self._history)

    def events_of(self, event_type: EventType) -> List[GameEvent]:
        return [e for e in self._history if e.type == event_type]

    def clear_history(self) -> None:
        self._history.clear()
