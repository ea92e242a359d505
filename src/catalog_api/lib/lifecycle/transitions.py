"""Version lifecycle transition table.

Maps each target state to the set of states it may legally be entered from.
``published`` and ``failed`` are terminal; a failed version can only be
brought back by a new submission.
"""

from catalog_api.schemas.version import VersionState

TERMINAL_STATES: frozenset[VersionState] = frozenset({VersionState.PUBLISHED, VersionState.FAILED})

TRANSITIONS: dict[VersionState, frozenset[VersionState]] = {
    VersionState.CREATED: frozenset(),
    VersionState.SUBMITTED: frozenset({VersionState.CREATED, VersionState.FAILED}),
    VersionState.COMPLETED: frozenset({VersionState.SUBMITTED}),
    VersionState.EDITION_CONFIRMED: frozenset({VersionState.COMPLETED}),
    VersionState.ASSOCIATED: frozenset({VersionState.EDITION_CONFIRMED}),
    VersionState.PUBLISHED: frozenset({VersionState.ASSOCIATED}),
    VersionState.DETACHED: frozenset({VersionState.EDITION_CONFIRMED, VersionState.ASSOCIATED}),
    VersionState.FAILED: frozenset(s for s in VersionState if s not in TERMINAL_STATES),
}


def legal_sources(to: VersionState) -> frozenset[VersionState]:
    """Return every state from which ``to`` may be entered."""
    return TRANSITIONS[to]


def is_allowed(from_state: VersionState, to: VersionState) -> bool:
    """Whether the table permits moving from ``from_state`` to ``to``."""
    return from_state in TRANSITIONS[to]
