"""State container owning the only mutable reference to the ledger.

Actions are applied strictly in dispatch order. Each dispatch computes the
next snapshot in full before swapping it in, so readers either see the old
snapshot or the new one and never a partially applied transition.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from threading import RLock
from typing import Callable, List, Optional

from . import log
from .actions import Action, action_tag
from .core_logic import DEFAULT_POLICY, LedgerPolicy, reduce
from .models import LedgerState


Subscriber = Callable[[LedgerState, Action], None]


class LedgerStore:
    """Hold the current :class:`LedgerState` and apply dispatched actions.

    Args:
        initial (LedgerState | None): Starting snapshot; an empty, loading
            ledger when omitted.
        policy (LedgerPolicy | None): Reducer behaviour switches forwarded on
            every dispatch.
        clock (Callable[[], datetime] | None): Source for ``issued_at`` when a
            caller dispatches an unstamped action. Defaults to UTC now.
    """

    def __init__(
        self,
        initial: Optional[LedgerState] = None,
        *,
        policy: Optional[LedgerPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._state = initial if initial is not None else LedgerState()
        self._policy = policy or DEFAULT_POLICY
        self._clock = clock or (lambda: datetime.now(UTC))
        self._subscribers: List[Subscriber] = []
        self._lock = RLock()

    @property
    def state(self) -> LedgerState:
        """Current snapshot. Consumers must treat it as read-only."""

        return self._state

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` to run after every state change.

        Returns:
            Callable[[], None]: Function that removes the subscription.
        """

        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, action: Action) -> LedgerState:
        """Stamp, reduce, and publish one action.

        Actions without ``issued_at`` are stamped from the store clock before
        reaching the reducer, so the recorded history carries the dispatch
        time. Subscribers are notified only when the snapshot changed.

        Args:
            action (Action): Intent to apply.

        Returns:
            LedgerState: The snapshot in effect after the dispatch.
        """

        if getattr(action, "issued_at", False) is None:
            action = replace(action, issued_at=self._clock())

        with self._lock:
            previous = self._state
            current = reduce(previous, action, self._policy)
            self._state = current

        if current is previous:
            log.debug("Action '%s' left the ledger unchanged", action_tag(action))
            return current

        for callback in list(self._subscribers):
            callback(current, action)
        return current


__all__ = ["LedgerStore", "Subscriber"]
