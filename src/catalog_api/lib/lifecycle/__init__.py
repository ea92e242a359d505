"""Lifecycle library — version state machine.

Public API:
    - TRANSITIONS: Target state to legal source states
    - transition: Guarded, copy-on-write state change with entry actions
    - transition_to: ``transition`` guarded by the full table
    - TransitionTableError: A guard wider than the table allows
    - validate_for_publish: Structural checks run before a version is published
"""

from catalog_api.lib.lifecycle.machine import TransitionTableError, transition, transition_to
from catalog_api.lib.lifecycle.transitions import TERMINAL_STATES, TRANSITIONS, is_allowed, legal_sources
from catalog_api.lib.lifecycle.validation import validate_for_association, validate_for_publish

__all__ = [
    "TERMINAL_STATES",
    "TRANSITIONS",
    "TransitionTableError",
    "is_allowed",
    "legal_sources",
    "transition",
    "transition_to",
    "validate_for_association",
    "validate_for_publish",
]
