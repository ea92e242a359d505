"""Guarded execution of version state transitions."""

from collections.abc import Callable, Iterable

from loguru import logger

from catalog_api.core.errors import RESOURCE_STATE, ConflictError, InternalError
from catalog_api.lib.lifecycle.transitions import TRANSITIONS
from catalog_api.lib.lifecycle.validation import validate_for_association, validate_for_publish
from catalog_api.schemas.version import Version, VersionState


class TransitionTableError(InternalError):
    """A caller guarded a transition with sources the table forbids.

    This is a defect in the calling code, never in the request, so it is
    reported as an internal error.
    """


def _enter_published(version: Version) -> None:
    version.collection_id = None
    validate_for_publish(version)


def _enter_associated(version: Version) -> None:
    validate_for_association(version)


_ENTRY_ACTIONS: dict[VersionState, Callable[[Version], None]] = {
    VersionState.PUBLISHED: _enter_published,
    VersionState.ASSOCIATED: _enter_associated,
}


def transition(version: Version, required_from: Iterable[VersionState], to: VersionState) -> Version:
    """Move ``version`` into state ``to``.

    The input is never mutated: the state change and the entry action for
    ``to`` are applied to a deep copy, which is returned only if every check
    passes.

    Args:
        version: The version to transition.
        required_from: States the caller accepts as a starting point. Must be a
            subset of the legal sources for ``to``.
        to: Target state.

    Returns:
        The transitioned copy.

    Raises:
        TransitionTableError: If ``required_from`` names a source the table
            does not allow.
        ConflictError: If the version is not in one of ``required_from``.
        ValidationFailedError: If the entry action for ``to`` rejects the version.
    """
    guard = frozenset(VersionState(s) for s in required_from)
    unsanctioned = guard - TRANSITIONS[to]
    if unsanctioned:
        names = ", ".join(sorted(unsanctioned))
        msg = f"Transition to {to} is not allowed from: {names}"
        raise TransitionTableError(msg)

    if version.state not in guard:
        logger.info("Rejected transition of {} from {} to {}", version.id, version.state, to)
        raise ConflictError(RESOURCE_STATE)

    candidate = version.model_copy(deep=True)
    candidate.state = to
    entry = _ENTRY_ACTIONS.get(to)
    if entry is not None:
        entry(candidate)
    logger.debug("Transitioned {} from {} to {}", version.id, version.state, to)
    return candidate


def transition_to(version: Version, to: VersionState) -> Version:
    """Transition using every source the table allows for ``to``."""
    return transition(version, TRANSITIONS[to], to)
