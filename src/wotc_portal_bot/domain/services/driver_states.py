"""Transition table for the portal submission state machine."""

from typing import Callable, Dict, FrozenSet, List, Optional

from ..models.errors import InvalidTransition
from ..models.portal import DriverState

S = DriverState

TRANSITIONS: Dict[DriverState, FrozenSet[DriverState]] = {
    S.LOGGED_OUT: frozenset({S.LOGGING_IN, S.ABORTED}),
    S.LOGGING_IN: frozenset({S.DASHBOARD, S.LOGGED_OUT, S.ABORTED}),
    S.DASHBOARD: frozenset({S.UPLOAD_STAGED, S.ABORTED}),
    S.UPLOAD_STAGED: frozenset({S.VALIDATING, S.DASHBOARD, S.ABORTED}),
    S.VALIDATING: frozenset({S.CLEAN, S.HAS_ERRORS, S.DASHBOARD, S.ABORTED}),
    S.CLEAN: frozenset({S.CONFIRMING, S.ABORTED}),
    S.CONFIRMING: frozenset({S.DONE, S.DASHBOARD, S.ABORTED}),
    S.HAS_ERRORS: frozenset({S.RECOVERING, S.ABORTED}),
    S.RECOVERING: frozenset({S.DELETED, S.DASHBOARD, S.ABORTED}),
    S.DELETED: frozenset({S.UPLOAD_STAGED, S.DASHBOARD, S.ABORTED}),
    S.DONE: frozenset(),
    S.ABORTED: frozenset(),
}


class DriverStateMachine:
    """
    Guarded state holder for one portal session.

    Every move is checked against ``TRANSITIONS`` and recorded. An optional
    listener is called after each move (the driver uses it for screenshots).
    """

    def __init__(self, on_enter: Optional[Callable[[DriverState, DriverState], None]] = None):
        self.state = DriverState.LOGGED_OUT
        self.history: List[DriverState] = [DriverState.LOGGED_OUT]
        self._on_enter = on_enter

    def can_move(self, target: DriverState) -> bool:
        return target in TRANSITIONS[self.state]

    def move(self, target: DriverState) -> DriverState:
        """Move to ``target`` or raise InvalidTransition."""
        if not self.can_move(target):
            raise InvalidTransition(self.state, target)
        previous = self.state
        self.state = target
        self.history.append(target)
        if self._on_enter:
            self._on_enter(previous, target)
        return previous

    def abort(self) -> None:
        """Abort from any non-terminal state."""
        if not self.state.is_terminal:
            self.move(DriverState.ABORTED)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal
