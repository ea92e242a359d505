"""Rewrite every hypermedia link of a resource graph for the outside world.

Each public method works on a deep copy of its input and returns the
rewritten copy; stored documents are never touched.  Absent links are skipped,
every non-empty href is rebuilt exactly once, and link ``id`` values are left
alone.  A single unbuildable href aborts the whole rewrite, so callers never
receive a half-rewritten document.
"""

from collections.abc import Callable, Sequence
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel

from catalog_api.core.errors import (
    DATASET_NOT_FOUND,
    EDITION_NOT_FOUND,
    INSTANCE_NOT_FOUND,
    InternalError,
    NotFoundError,
)
from catalog_api.lib.links.builder import LinkBuildError, LinkBuilder, LinkRole
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.dataset import Dataset
from catalog_api.schemas.dimension import Dimension, DimensionOption
from catalog_api.schemas.edition import Edition
from catalog_api.schemas.metadata import Metadata, MetadataLinks
from catalog_api.schemas.version import Distribution, DownloadList, Instance, Version

DocT = TypeVar("DocT", bound=BaseModel)

# Link fields resolved against something other than the API gateway
_DIMENSION_LINK_ROLES = {"code_list": LinkRole.CODE_LIST}
_OPTION_LINK_ROLES = {"code": LinkRole.CODE_LIST, "code_list": LinkRole.CODE_LIST}
_INSTANCE_LINK_ROLES = {"job": LinkRole.IMPORT}


class LinkRewriter:
    """Walks datasets, editions, versions and instances rewriting their links.

    Args:
        builder: The link builder holding the public base URLs.
    """

    def __init__(self, builder: LinkBuilder) -> None:
        self._builder = builder

    # ------------------------------------------------------------------
    # Envelopes
    # ------------------------------------------------------------------

    def rewrite_dataset_envelope(
        self, envelope: VersionedResource[Dataset], *, privileged: bool
    ) -> VersionedResource[Dataset] | Dataset:
        """Rewrite a dataset envelope for the caller's privilege level."""
        return self._rewrite_envelope(envelope, self._dataset_in_place, privileged, DATASET_NOT_FOUND)

    def rewrite_dataset_envelopes(
        self, envelopes: Sequence[VersionedResource[Dataset]], *, privileged: bool
    ) -> list[VersionedResource[Dataset]] | list[Dataset]:
        """Rewrite a list of dataset envelopes; public callers only see published ones."""
        return self._rewrite_envelopes(envelopes, self._dataset_in_place, privileged)

    def rewrite_edition_envelope(
        self, envelope: VersionedResource[Edition], *, privileged: bool
    ) -> VersionedResource[Edition] | Edition:
        """Rewrite an edition envelope for the caller's privilege level."""
        return self._rewrite_envelope(envelope, self._edition_in_place, privileged, EDITION_NOT_FOUND)

    def rewrite_edition_envelopes(
        self, envelopes: Sequence[VersionedResource[Edition]], *, privileged: bool
    ) -> list[VersionedResource[Edition]] | list[Edition]:
        """Rewrite a list of edition envelopes; public callers only see published ones."""
        return self._rewrite_envelopes(envelopes, self._edition_in_place, privileged)

    def rewrite_instance_envelope(self, envelope: VersionedResource[Instance]) -> VersionedResource[Instance]:
        """Rewrite both sides of an instance envelope (instances are privileged-only)."""
        result = self._rewrite_envelope(envelope, self._instance_in_place, True, INSTANCE_NOT_FOUND)
        return result  # type: ignore[return-value]

    def rewrite_instance_envelopes(
        self, envelopes: Sequence[VersionedResource[Instance]]
    ) -> list[VersionedResource[Instance]]:
        return self._rewrite_envelopes(envelopes, self._instance_in_place, True)

    def _rewrite_envelope(
        self,
        envelope: VersionedResource[DocT],
        rewrite: Callable[[DocT], None],
        privileged: bool,
        not_found: str,
    ) -> VersionedResource[DocT] | DocT:
        if privileged:
            if envelope.current is None and envelope.next is None:
                raise NotFoundError(not_found)
            result = envelope.model_copy(deep=True)
            for doc in (result.current, result.next):
                if doc is not None:
                    self._guarded(rewrite, doc)
            return result

        if envelope.current is None:
            logger.info("Published document not found for {}", envelope.id)
            raise NotFoundError(not_found)
        doc = envelope.current.model_copy(deep=True)
        doc.id = envelope.id  # type: ignore[attr-defined]
        self._guarded(rewrite, doc)
        return doc

    def _rewrite_envelopes(
        self,
        envelopes: Sequence[VersionedResource[DocT]],
        rewrite: Callable[[DocT], None],
        privileged: bool,
    ) -> list:
        items: list = []
        for envelope in envelopes:
            if not privileged and envelope.current is None:
                continue
            items.append(self._rewrite_envelope(envelope, rewrite, privileged, "not found"))
        return items

    # ------------------------------------------------------------------
    # Single documents
    # ------------------------------------------------------------------

    def rewrite_dataset(self, dataset: Dataset) -> Dataset:
        return self._copy_and_rewrite(dataset, self._dataset_in_place)

    def rewrite_edition(self, edition: Edition) -> Edition:
        return self._copy_and_rewrite(edition, self._edition_in_place)

    def rewrite_version(self, version: Version) -> Version:
        return self._copy_and_rewrite(version, self._version_in_place)

    def rewrite_versions(self, versions: Sequence[Version]) -> list[Version]:
        return [self.rewrite_version(v) for v in versions]

    def rewrite_instance(self, instance: Instance) -> Instance:
        return self._copy_and_rewrite(instance, self._instance_in_place)

    def rewrite_instances(self, instances: Sequence[Instance]) -> list[Instance]:
        return [self.rewrite_instance(i) for i in instances]

    def rewrite_dimensions(self, dimensions: Sequence[Dimension]) -> list[Dimension]:
        copies = [d.model_copy(deep=True) for d in dimensions]
        self._guarded(self._dimensions_in_place, copies)
        return copies

    def rewrite_dimension_options(self, options: Sequence[DimensionOption]) -> list[DimensionOption]:
        copies = [o.model_copy(deep=True) for o in options]
        for option in copies:
            self._guarded(self._option_in_place, option)
        return copies

    def rewrite_metadata(self, metadata: Metadata, dataset_id: str, edition: str, version: int) -> Metadata:
        """Rewrite metadata links and add the website page of the version."""
        copy = metadata.model_copy(deep=True)
        self._guarded(self._metadata_in_place, copy)
        if copy.links is None:
            copy.links = MetadataLinks()
        copy.links.website_version = LinkObject(href=self._builder.website_version_url(dataset_id, edition, version))
        return copy

    def rewrite_distributions(self, distributions: Sequence[Distribution] | None) -> list[Distribution] | None:
        """Rewrite download URLs, dropping distributions that have none."""
        if distributions is None:
            return None
        return self._guarded(self._distributions, [d.model_copy() for d in distributions])

    def rewrite_downloads(self, downloads: DownloadList | None) -> DownloadList | None:
        if downloads is None:
            return None
        copy = downloads.model_copy(deep=True)
        self._guarded(self._downloads_in_place, copy)
        return copy

    def _copy_and_rewrite(self, doc: DocT, rewrite: Callable[[DocT], None]) -> DocT:
        copy = doc.model_copy(deep=True)
        self._guarded(rewrite, copy)
        return copy

    def _guarded(self, rewrite: Callable, target: object):  # noqa: ANN202
        try:
            return rewrite(target)
        except LinkBuildError as exc:
            logger.error("Failed to rewrite link {!r}: {}", exc.href, exc.reason)
            raise InternalError(str(exc)) from exc

    # ------------------------------------------------------------------
    # In-place walkers (always applied to copies)
    # ------------------------------------------------------------------

    def _link_block(self, links: BaseModel | None, roles: dict[str, LinkRole] | None = None) -> None:
        if links is None:
            return
        roles = roles or {}
        for name in type(links).model_fields:
            link = getattr(links, name)
            if isinstance(link, LinkObject) and link.href:
                link.href = self._builder.build_link(link.href, roles.get(name, LinkRole.DATASET))

    def _dataset_in_place(self, dataset: Dataset) -> None:
        self._link_block(dataset.links)

    def _edition_in_place(self, edition: Edition) -> None:
        self._link_block(edition.links)
        edition.distributions = self._distributions(edition.distributions)

    def _version_in_place(self, version: Version) -> None:
        self._dimensions_in_place(version.dimensions)
        self._link_block(version.links)
        self._downloads_in_place(version.downloads)
        version.distributions = self._distributions(version.distributions)

    def _instance_in_place(self, instance: Instance) -> None:
        self._dimensions_in_place(instance.dimensions)
        self._link_block(instance.links, _INSTANCE_LINK_ROLES)
        self._downloads_in_place(instance.downloads)
        instance.distributions = self._distributions(instance.distributions)

    def _metadata_in_place(self, metadata: Metadata) -> None:
        self._dimensions_in_place(metadata.dimensions)
        self._link_block(metadata.links)
        self._downloads_in_place(metadata.downloads)

    def _dimensions_in_place(self, dimensions: list[Dimension] | None) -> None:
        for dimension in dimensions or []:
            if dimension.href:
                dimension.href = self._builder.build_link(dimension.href, LinkRole.CODE_LIST)
            self._link_block(dimension.links, _DIMENSION_LINK_ROLES)
            for option in dimension.options or []:
                self._option_in_place(option)

    def _option_in_place(self, option: DimensionOption) -> None:
        self._link_block(option.links, _OPTION_LINK_ROLES)

    def _downloads_in_place(self, downloads: DownloadList | None) -> None:
        if downloads is None:
            return
        for name in DownloadList.model_fields:
            item = getattr(downloads, name)
            if item is not None and item.href:
                item.href = self._builder.build_link(item.href, LinkRole.DOWNLOAD)

    def _distributions(self, distributions: list[Distribution] | None) -> list[Distribution] | None:
        if not distributions:
            return distributions
        kept: list[Distribution] = []
        for item in distributions:
            if item.download_url:
                item.download_url = self._builder.build_link(item.download_url, LinkRole.DOWNLOAD_FILE)
                kept.append(item)
        return kept
