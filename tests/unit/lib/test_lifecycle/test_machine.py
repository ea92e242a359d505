"""Unit tests for the version state machine."""

import pytest

from catalog_api.core.errors import ConflictError, InternalError, ValidationFailedError
from catalog_api.lib.lifecycle import (
    TERMINAL_STATES,
    TRANSITIONS,
    TransitionTableError,
    is_allowed,
    legal_sources,
    transition,
    transition_to,
)
from catalog_api.schemas.version import DownloadList, DownloadObject, Version, VersionState


def _publishable(**overrides) -> Version:
    fields = {
        "id": "inst-1",
        "state": VersionState.ASSOCIATED,
        "collection_id": "coll-1",
        "release_date": "2026-10-18",
        "downloads": DownloadList(csv=DownloadObject(href="/d.csv", size="1024")),
    }
    fields.update(overrides)
    return Version(**fields)


class TestTransitionTable:
    def test_published_reachable_only_from_associated(self) -> None:
        assert legal_sources(VersionState.PUBLISHED) == frozenset({VersionState.ASSOCIATED})

    def test_terminal_states_have_no_exits(self) -> None:
        for target, sources in TRANSITIONS.items():
            if target is VersionState.SUBMITTED:
                continue
            assert not sources & TERMINAL_STATES, target

    def test_failed_version_can_be_resubmitted(self) -> None:
        assert is_allowed(VersionState.FAILED, VersionState.SUBMITTED)

    def test_nothing_enters_created(self) -> None:
        assert not any(is_allowed(s, VersionState.CREATED) for s in VersionState)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (VersionState.CREATED, VersionState.SUBMITTED),
            (VersionState.SUBMITTED, VersionState.COMPLETED),
            (VersionState.COMPLETED, VersionState.EDITION_CONFIRMED),
            (VersionState.EDITION_CONFIRMED, VersionState.ASSOCIATED),
            (VersionState.EDITION_CONFIRMED, VersionState.DETACHED),
            (VersionState.ASSOCIATED, VersionState.DETACHED),
            (VersionState.COMPLETED, VersionState.FAILED),
        ],
    )
    def test_allowed(self, source: VersionState, target: VersionState) -> None:
        assert is_allowed(source, target)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (VersionState.CREATED, VersionState.PUBLISHED),
            (VersionState.EDITION_CONFIRMED, VersionState.PUBLISHED),
            (VersionState.PUBLISHED, VersionState.DETACHED),
            (VersionState.PUBLISHED, VersionState.FAILED),
            (VersionState.DETACHED, VersionState.ASSOCIATED),
        ],
    )
    def test_forbidden(self, source: VersionState, target: VersionState) -> None:
        assert not is_allowed(source, target)


class TestTransition:
    def test_publish_clears_collection_id(self) -> None:
        version = _publishable()
        result = transition(version, [VersionState.ASSOCIATED], VersionState.PUBLISHED)
        assert result.state == VersionState.PUBLISHED
        assert result.collection_id is None

    def test_input_is_not_mutated(self) -> None:
        version = _publishable()
        transition(version, [VersionState.ASSOCIATED], VersionState.PUBLISHED)
        assert version.state == VersionState.ASSOCIATED
        assert version.collection_id == "coll-1"

    def test_state_outside_guard_is_conflict(self) -> None:
        version = _publishable(state=VersionState.EDITION_CONFIRMED)
        with pytest.raises(ConflictError):
            transition(version, [VersionState.ASSOCIATED], VersionState.PUBLISHED)

    def test_guard_wider_than_table_is_programming_error(self) -> None:
        version = _publishable(state=VersionState.CREATED)
        with pytest.raises(TransitionTableError, match="not allowed from") as excinfo:
            transition(version, [VersionState.CREATED], VersionState.PUBLISHED)
        assert isinstance(excinfo.value, InternalError)
        assert not isinstance(excinfo.value, ValueError)
        assert excinfo.value.status_code == 500

    def test_narrower_guard_accepted(self) -> None:
        version = _publishable(state=VersionState.ASSOCIATED)
        result = transition(version, [VersionState.ASSOCIATED], VersionState.DETACHED)
        assert result.state == VersionState.DETACHED

    def test_failed_publish_validation_leaves_input_intact(self) -> None:
        version = _publishable(release_date=None)
        with pytest.raises(ValidationFailedError, match="release_date"):
            transition(version, [VersionState.ASSOCIATED], VersionState.PUBLISHED)
        assert version.state == VersionState.ASSOCIATED
        assert version.collection_id == "coll-1"

    def test_associate_requires_collection(self) -> None:
        version = _publishable(state=VersionState.EDITION_CONFIRMED, collection_id=None)
        with pytest.raises(ValidationFailedError, match="collection_id"):
            transition_to(version, VersionState.ASSOCIATED)

    def test_transition_to_uses_full_table(self) -> None:
        version = _publishable(state=VersionState.SUBMITTED)
        assert transition_to(version, VersionState.FAILED).state == VersionState.FAILED
