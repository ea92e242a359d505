"""Tests for import-time dimension options and events of an instance."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import ConflictError, ForbiddenError, NotFoundError
from catalog_api.schemas.dataset import DatasetCreateRequest
from catalog_api.schemas.dimension import Dimension, DimensionOptionCreateRequest, DimensionUpdateRequest
from catalog_api.schemas.version import Event, InstanceCreateRequest, VersionState
from catalog_api.services import dataset_service, instance_dimension_service, instance_service

DATASET_API = "http://localhost:22000"
DATASET = "cpih01"


async def _instance(session: AsyncSession) -> tuple[str, str]:
    await dataset_service.create_dataset(
        session, DATASET, DatasetCreateRequest(title="CPIH"), dataset_api_url=DATASET_API
    )
    envelope = await instance_service.create_instance(
        session,
        InstanceCreateRequest(dataset_id=DATASET, dimensions=[Dimension(name="aggregate", label="Aggregate")]),
        dataset_api_url=DATASET_API,
        import_api_url="http://localhost:21800",
    )
    return envelope.id, envelope.etag


def _event(message: str = "import started") -> Event:
    return Event(type="info", time=datetime(2026, 10, 18, tzinfo=UTC), message=message, message_offset="0")


class TestOptions:
    async def test_option_added_to_known_dimension(self, async_session: AsyncSession) -> None:
        instance_id, etag = await _instance(async_session)

        envelope, option = await instance_dimension_service.add_dimension_option(
            async_session,
            instance_id,
            DimensionOptionCreateRequest(dimension="aggregate", option="cpih1dim1A0", label="All", code_list="cpih1"),
            etag,
        )

        assert envelope.etag != etag
        assert option.dimension == "aggregate"
        assert option.links.code_list.id == "cpih1"
        options, _ = await instance_dimension_service.list_instance_dimension_options(
            async_session, instance_id, "aggregate"
        )
        assert [o.option for o in options] == ["cpih1dim1A0"]

    async def test_new_dimension_created_and_option_replaced(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)
        for label in ("Wales", "Cymru"):
            await instance_dimension_service.add_dimension_option(
                async_session,
                instance_id,
                DimensionOptionCreateRequest(dimension="geography", option="W92000004", label=label),
                None,
            )

        options, _ = await instance_dimension_service.list_instance_options(async_session, instance_id)

        assert [(o.dimension, o.label) for o in options] == [("geography", "Cymru")]

    def test_option_needs_value_or_code_list(self) -> None:
        with pytest.raises(ValueError, match="option or code_list"):
            DimensionOptionCreateRequest(dimension="geography")

    async def test_stale_token_rejected(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)

        with pytest.raises(ConflictError):
            await instance_dimension_service.add_dimension_option(
                async_session,
                instance_id,
                DimensionOptionCreateRequest(dimension="aggregate", option="A0"),
                "stale",
            )

    async def test_node_id_recorded(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)
        await instance_dimension_service.add_dimension_option(
            async_session, instance_id, DimensionOptionCreateRequest(dimension="aggregate", option="A0"), None
        )

        _, option = await instance_dimension_service.set_option_node_id(
            async_session, instance_id, "aggregate", "A0", "node-42", None
        )

        assert option.node_id == "node-42"
        stored = await instance_service.get_instance(async_session, instance_id)
        assert stored.next.dimensions[0].options[0].node_id == "node-42"

    async def test_node_id_for_unknown_option(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)

        with pytest.raises(NotFoundError, match="option"):
            await instance_dimension_service.set_option_node_id(
                async_session, instance_id, "aggregate", "missing", "node-1", None
            )


class TestDimensionUpdate:
    async def test_label_and_description(self, async_session: AsyncSession) -> None:
        instance_id, etag = await _instance(async_session)

        _, dimension = await instance_dimension_service.update_dimension(
            async_session, instance_id, "aggregate", DimensionUpdateRequest(description="Index level"), etag
        )

        assert dimension.label == "Aggregate"
        assert dimension.description == "Index level"

    async def test_unknown_dimension(self, async_session: AsyncSession) -> None:
        instance_id, etag = await _instance(async_session)

        with pytest.raises(NotFoundError):
            await instance_dimension_service.update_dimension(
                async_session, instance_id, "time", DimensionUpdateRequest(label="Time"), etag
            )

        stored = await instance_service.get_instance(async_session, instance_id)
        assert stored.etag == etag


class TestEvents:
    async def test_events_appended(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)

        await instance_dimension_service.add_event(async_session, instance_id, _event())
        envelope = await instance_dimension_service.add_event(async_session, instance_id, _event("import finished"))

        assert [e.message for e in envelope.next.events] == ["import started", "import finished"]
        assert envelope.next.as_version().model_dump(exclude_none=True).get("events") is None

    async def test_published_instance_frozen(self, async_session: AsyncSession) -> None:
        instance_id, _ = await _instance(async_session)
        store = instance_service.instance_store(async_session)
        envelope = await store.amend_draft(instance_id, {"state": VersionState.PUBLISHED.value})
        await store.publish(envelope.id)

        with pytest.raises(ForbiddenError):
            await instance_dimension_service.add_event(async_session, instance_id, _event())
