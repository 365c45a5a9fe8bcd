"""Finite state machine helper for status lifecycles (issues, purchase requests).

Usage:
    from itdesk.utils.fsm import TransitionValidator
    PR_FSM = TransitionValidator({
        'pending': {'approved', 'rejected'},
        'approved': {'purchased'},
        'rejected': set(),
        'purchased': set(),
    })
    PR_FSM.assert_can_transition(current_status, target_status)

Raises ``InvalidTransitionError`` if the move is not in the graph.
"""
from __future__ import annotations
from typing import Dict, Set

from itdesk.errors import InvalidTransitionError


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def is_terminal(self, status: str) -> bool:
        return not self.graph.get(status)

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidTransitionError(f'Invalid {self.field_name} transition {current} -> {target}')
        return True


__all__ = ['TransitionValidator']
