"""Unit tests for the link rewriter."""

import pytest

from catalog_api.core.errors import InternalError, NotFoundError
from catalog_api.lib.links import LinkBaseURLs, LinkBuilder, LinkRewriter
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.dataset import Dataset, DatasetLinks
from catalog_api.schemas.dimension import Dimension, DimensionLinks, DimensionOption, DimensionOptionLinks
from catalog_api.schemas.edition import Edition, EditionLinks
from catalog_api.schemas.metadata import Metadata, MetadataLinks
from catalog_api.schemas.version import (
    Distribution,
    DownloadList,
    DownloadObject,
    Instance,
    InstanceLinks,
    Version,
    VersionLinks,
)

INTERNAL = "http://localhost:22000"
API = "https://api.example.gov.uk/v1"


@pytest.fixture
def rewriter() -> LinkRewriter:
    bases = LinkBaseURLs(
        website="https://www.example.gov.uk",
        api=API,
        download="https://download.example.gov.uk",
        code_list="https://codes.example.gov.uk",
        import_service="https://import.example.gov.uk",
    )
    return LinkRewriter(LinkBuilder(bases))


def _dataset(dataset_id: str = "cpih01", title: str = "CPIH") -> Dataset:
    return Dataset(
        id=dataset_id,
        title=title,
        links=DatasetLinks(
            self=LinkObject(href=f"{INTERNAL}/datasets/{dataset_id}"),
            editions=LinkObject(href=f"{INTERNAL}/datasets/{dataset_id}/editions"),
        ),
    )


def _version() -> Version:
    base = f"{INTERNAL}/datasets/cpih01/editions/time-series"
    return Version(
        id="inst-1",
        dataset_id="cpih01",
        edition="time-series",
        version=2,
        links=VersionLinks(
            dataset=LinkObject(href=f"{INTERNAL}/datasets/cpih01", id="cpih01"),
            edition=LinkObject(href=base, id="time-series"),
            self=LinkObject(href=f"{base}/versions/2"),
            version=LinkObject(href=f"{base}/versions/2", id="2"),
            spatial=None,
        ),
        dimensions=[
            Dimension(
                name="aggregate",
                href="http://localhost:22400/code-lists/cpih1dim1aggid",
                links=DimensionLinks(code_list=LinkObject(href="http://localhost:22400/code-lists/cpih1dim1aggid")),
                options=[
                    DimensionOption(
                        option="cpih1dim1A0",
                        links=DimensionOptionLinks(
                            code=LinkObject(href="http://localhost:22400/code-lists/cpih1dim1aggid/codes/A0"),
                        ),
                    )
                ],
            )
        ],
        downloads=DownloadList(
            csv=DownloadObject(href="http://localhost:23600/downloads/cpih01.csv", size="100"),
        ),
        distributions=[
            Distribution(title="Full dataset", download_url="/cpih01/file.csv"),
            Distribution(title="Orphan"),
        ],
    )


class TestEnvelopes:
    """Tests for privilege-dependent envelope rewriting."""

    def test_privileged_rewrites_both_sides(self, rewriter: LinkRewriter) -> None:
        envelope = VersionedResource[Dataset](id="cpih01", current=_dataset(), next=_dataset(title="Draft"))
        result = rewriter.rewrite_dataset_envelope(envelope, privileged=True)
        assert isinstance(result, VersionedResource)
        assert result.current.links.self.href == f"{API}/datasets/cpih01"
        assert result.next.links.editions.href == f"{API}/datasets/cpih01/editions"

    def test_privileged_unpublished_returns_envelope(self, rewriter: LinkRewriter) -> None:
        envelope = VersionedResource[Dataset](id="cpih01", next=_dataset())
        result = rewriter.rewrite_dataset_envelope(envelope, privileged=True)
        assert result.current is None
        assert result.next.links.self.href == f"{API}/datasets/cpih01"

    def test_public_receives_current_only(self, rewriter: LinkRewriter) -> None:
        envelope = VersionedResource[Dataset](id="cpih01", current=_dataset(), next=_dataset(title="Draft"))
        result = rewriter.rewrite_dataset_envelope(envelope, privileged=False)
        assert isinstance(result, Dataset)
        assert result.title == "CPIH"
        assert result.id == "cpih01"
        assert result.links.self.href == f"{API}/datasets/cpih01"

    def test_public_unpublished_is_not_found(self, rewriter: LinkRewriter) -> None:
        envelope = VersionedResource[Dataset](id="cpih01", next=_dataset())
        with pytest.raises(NotFoundError):
            rewriter.rewrite_dataset_envelope(envelope, privileged=False)

    def test_privileged_empty_envelope_is_not_found(self, rewriter: LinkRewriter) -> None:
        with pytest.raises(NotFoundError):
            rewriter.rewrite_dataset_envelope(VersionedResource[Dataset](id="x"), privileged=True)

    def test_public_list_skips_unpublished(self, rewriter: LinkRewriter) -> None:
        envelopes = [
            VersionedResource[Dataset](id="a", current=_dataset("a"), next=_dataset("a")),
            VersionedResource[Dataset](id="b", next=_dataset("b")),
        ]
        result = rewriter.rewrite_dataset_envelopes(envelopes, privileged=False)
        assert [d.id for d in result] == ["a"]

    def test_input_not_mutated(self, rewriter: LinkRewriter) -> None:
        envelope = VersionedResource[Dataset](id="cpih01", current=_dataset(), next=_dataset())
        rewriter.rewrite_dataset_envelope(envelope, privileged=True)
        assert envelope.current.links.self.href == f"{INTERNAL}/datasets/cpih01"
        assert envelope.next.links.self.href == f"{INTERNAL}/datasets/cpih01"

    def test_edition_envelope(self, rewriter: LinkRewriter) -> None:
        edition = Edition(
            edition="time-series",
            links=EditionLinks(
                latest_version=LinkObject(href=f"{INTERNAL}/datasets/cpih01/editions/time-series/versions/1", id="1"),
            ),
            distributions=[Distribution(download_url="/cpih01/file.csv"), Distribution(title="none")],
        )
        envelope = VersionedResource[Edition](id="ed-1", current=edition, next=edition)
        result = rewriter.rewrite_edition_envelope(envelope, privileged=False)
        assert result.links.latest_version.href == f"{API}/datasets/cpih01/editions/time-series/versions/1"
        assert result.links.latest_version.id == "1"
        assert [d.download_url for d in result.distributions] == [
            "https://download.example.gov.uk/downloads-new/cpih01/file.csv"
        ]


class TestVersionRewrite:
    def test_every_link_rewritten(self, rewriter: LinkRewriter) -> None:
        result = rewriter.rewrite_version(_version())
        assert result.links.dataset.href == f"{API}/datasets/cpih01"
        assert result.links.dataset.id == "cpih01"
        assert result.links.version.href == f"{API}/datasets/cpih01/editions/time-series/versions/2"
        assert result.links.spatial is None

        dimension = result.dimensions[0]
        assert dimension.href == "https://codes.example.gov.uk/code-lists/cpih1dim1aggid"
        assert dimension.links.code_list.href == "https://codes.example.gov.uk/code-lists/cpih1dim1aggid"
        option = dimension.options[0]
        assert option.links.code.href == "https://codes.example.gov.uk/code-lists/cpih1dim1aggid/codes/A0"

        assert result.downloads.csv.href == "https://download.example.gov.uk/downloads/cpih01.csv"
        assert result.downloads.csv.size == "100"

    def test_distributions_without_url_dropped(self, rewriter: LinkRewriter) -> None:
        result = rewriter.rewrite_version(_version())
        assert len(result.distributions) == 1
        assert result.distributions[0].download_url == "https://download.example.gov.uk/downloads-new/cpih01/file.csv"

    def test_original_untouched(self, rewriter: LinkRewriter) -> None:
        version = _version()
        rewriter.rewrite_version(version)
        assert version.links.dataset.href == f"{INTERNAL}/datasets/cpih01"
        assert len(version.distributions) == 2

    def test_bad_href_aborts_whole_rewrite(self, rewriter: LinkRewriter) -> None:
        version = _version()
        version.links.spatial = LinkObject(href="not a link")
        with pytest.raises(InternalError):
            rewriter.rewrite_version(version)


class TestInstanceRewrite:
    def test_job_link_uses_import_base(self, rewriter: LinkRewriter) -> None:
        instance = Instance(
            id="inst-1",
            links=InstanceLinks(
                job=LinkObject(href="http://localhost:21800/jobs/j-1", id="j-1"),
                self=LinkObject(href=f"{INTERNAL}/instances/inst-1"),
            ),
        )
        envelope = VersionedResource[Instance](id="inst-1", next=instance)
        result = rewriter.rewrite_instance_envelope(envelope)
        assert result.next.links.job.href == "https://import.example.gov.uk/jobs/j-1"
        assert result.next.links.self.href == f"{API}/instances/inst-1"


class TestCollections:
    def test_rewrite_dimension_options(self, rewriter: LinkRewriter) -> None:
        options = [
            DimensionOption(
                option="A0",
                links=DimensionOptionLinks(
                    code_list=LinkObject(href="http://localhost:22400/code-lists/x"),
                    version=LinkObject(href=f"{INTERNAL}/datasets/d/editions/e/versions/1"),
                ),
            )
        ]
        result = rewriter.rewrite_dimension_options(options)
        assert result[0].links.code_list.href == "https://codes.example.gov.uk/code-lists/x"
        assert result[0].links.version.href == f"{API}/datasets/d/editions/e/versions/1"

    def test_rewrite_distributions_none(self, rewriter: LinkRewriter) -> None:
        assert rewriter.rewrite_distributions(None) is None

    def test_rewrite_downloads_none(self, rewriter: LinkRewriter) -> None:
        assert rewriter.rewrite_downloads(None) is None

    def test_rewrite_downloads_skips_empty_slots(self, rewriter: LinkRewriter) -> None:
        downloads = DownloadList(xlsx=DownloadObject(href="/downloads/x.xlsx", size="10"), csv=DownloadObject())
        result = rewriter.rewrite_downloads(downloads)
        assert result.xlsx.href == "https://download.example.gov.uk/downloads/x.xlsx"
        assert result.csv.href is None
        assert result.xls is None


class TestMetadataRewrite:
    def test_links_rewritten_and_website_page_added(self, rewriter: LinkRewriter) -> None:
        version_href = f"{INTERNAL}/datasets/cpih01/editions/time-series/versions/3"
        metadata = Metadata(
            title="CPIH",
            dimensions=[Dimension(name="aggregate", href=f"{INTERNAL}/code-lists/cpih1dim1aggid")],
            downloads=DownloadList(csv=DownloadObject(href=f"{INTERNAL}/downloads/v3.csv")),
            links=MetadataLinks(
                self=LinkObject(href=f"{version_href}/metadata"),
                version=LinkObject(href=version_href, id="3"),
            ),
        )

        result = rewriter.rewrite_metadata(metadata, "cpih01", "time-series", 3)

        assert result.links.self.href == f"{API}/datasets/cpih01/editions/time-series/versions/3/metadata"
        assert result.links.version.id == "3"
        assert result.links.website_version.href == (
            "https://www.example.gov.uk/datasets/cpih01/editions/time-series/versions/3"
        )
        assert result.dimensions[0].href == "https://codes.example.gov.uk/code-lists/cpih1dim1aggid"
        assert result.downloads.csv.href == "https://download.example.gov.uk/downloads/v3.csv"
        assert metadata.links.website_version is None
        assert metadata.links.self.href.startswith(INTERNAL)

    def test_metadata_without_links(self, rewriter: LinkRewriter) -> None:
        result = rewriter.rewrite_metadata(Metadata(title="CPIH"), "cpih01", "2021", 1)

        assert result.links.website_version.href.endswith("/datasets/cpih01/editions/2021/versions/1")
