"""Downstream library — side effects of publishing a version.

Public API:
    - DownstreamNotifier: Runs every post-publish side effect
    - DownloadsEventGenerator: Sends the Avro "generate downloads" event
    - KafkaMessageProducer: aiokafka-backed MessageProducer
    - CloudflarePurgeClient: Batched cache purge by URL prefix
"""

from catalog_api.lib.downstream.cache_purge import (
    MAX_PREFIXES_PER_PURGE,
    CachePurgeError,
    CloudflarePurgeClient,
    batch_prefixes,
    generate_purge_prefixes,
)
from catalog_api.lib.downstream.downloads import (
    DownloadRequestError,
    DownloadsEventGenerator,
    KafkaMessageProducer,
    MessageProducer,
    decode_generate_downloads_event,
    encode_generate_downloads_event,
    validate_download_request,
)
from catalog_api.lib.downstream.notifier import DownstreamNotifier

__all__ = [
    "MAX_PREFIXES_PER_PURGE",
    "CachePurgeError",
    "CloudflarePurgeClient",
    "DownloadRequestError",
    "DownloadsEventGenerator",
    "DownstreamNotifier",
    "KafkaMessageProducer",
    "MessageProducer",
    "batch_prefixes",
    "decode_generate_downloads_event",
    "encode_generate_downloads_event",
    "generate_purge_prefixes",
    "validate_download_request",
]
