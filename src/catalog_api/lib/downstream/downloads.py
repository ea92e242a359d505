"""Full-dataset download generation requests.

A published version triggers one "generate downloads" event, Avro-encoded
without an embedded schema and sent to the downloads topic.  The filter output
id is always empty: full-dataset downloads are not tied to a filter.
"""

import io
from typing import Protocol

import fastavro
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from loguru import logger

GENERATE_DOWNLOADS_SCHEMA = fastavro.parse_schema(
    {
        "type": "record",
        "name": "filter-output-submitted",
        "fields": [
            {"name": "filter_output_id", "type": "string", "default": ""},
            {"name": "instance_id", "type": "string", "default": ""},
            {"name": "dataset_id", "type": "string", "default": ""},
            {"name": "edition", "type": "string", "default": ""},
            {"name": "version", "type": "string", "default": ""},
        ],
    }
)


class DownloadRequestError(Exception):
    """Raised when a download request is malformed or cannot be sent."""


class MessageProducer(Protocol):
    """Anything able to deliver an encoded message to a topic."""

    async def send(self, topic: str, value: bytes, key: bytes | None = None) -> None: ...


class KafkaMessageProducer:
    """At-least-once Kafka producer backed by aiokafka.

    Args:
        bootstrap_servers: Broker addresses.
        client_id: Client identifier reported to the brokers.
    """

    def __init__(self, bootstrap_servers: list[str], client_id: str = "catalog-api") -> None:
        self._producer = AIOKafkaProducer(
            bootstrap_servers=bootstrap_servers,
            client_id=client_id,
            acks="all",
            request_timeout_ms=10000,
        )

    async def start(self) -> None:
        await self._producer.start()
        logger.info("Kafka producer started")

    async def stop(self) -> None:
        await self._producer.stop()
        logger.info("Kafka producer stopped")

    async def send(self, topic: str, value: bytes, key: bytes | None = None) -> None:
        try:
            await self._producer.send_and_wait(topic, value=value, key=key)
        except KafkaError as exc:
            logger.error("Failed to deliver message to {}: {}", topic, exc)
            raise DownloadRequestError(f"failed to send message to {topic}: {exc}") from exc


def validate_download_request(dataset_id: str, instance_id: str, edition: str, version: str) -> None:
    """Reject a download request with any empty identifier.

    Raises:
        DownloadRequestError: Naming the first empty identifier.
    """
    for name, value in (
        ("dataset ID", dataset_id),
        ("instance ID", instance_id),
        ("edition", edition),
        ("version", version),
    ):
        if not value:
            msg = f"failed to generate full dataset download as {name} was empty"
            raise DownloadRequestError(msg)


def encode_generate_downloads_event(dataset_id: str, instance_id: str, edition: str, version: str) -> bytes:
    """Avro-encode a generate downloads event (schemaless binary)."""
    record = {
        "filter_output_id": "",
        "instance_id": instance_id,
        "dataset_id": dataset_id,
        "edition": edition,
        "version": version,
    }
    buffer = io.BytesIO()
    fastavro.schemaless_writer(buffer, GENERATE_DOWNLOADS_SCHEMA, record)
    return buffer.getvalue()


def decode_generate_downloads_event(payload: bytes) -> dict[str, str]:
    """Decode a payload produced by :func:`encode_generate_downloads_event`."""
    result: dict[str, str] = fastavro.schemaless_reader(io.BytesIO(payload), GENERATE_DOWNLOADS_SCHEMA)
    return result


class DownloadsEventGenerator:
    """Kicks off full-dataset download generation for a published version.

    Args:
        producer: Transport for the encoded event.
        topic: Destination topic.
    """

    def __init__(self, producer: MessageProducer, topic: str) -> None:
        self._producer = producer
        self._topic = topic

    async def generate(self, dataset_id: str, instance_id: str, edition: str, version: str) -> None:
        validate_download_request(dataset_id, instance_id, edition, version)
        logger.info(
            "Sending generate downloads event for dataset={} instance={} edition={} version={}",
            dataset_id,
            instance_id,
            edition,
            version,
        )
        payload = encode_generate_downloads_event(dataset_id, instance_id, edition, version)
        await self._producer.send(self._topic, payload, key=instance_id.encode())
