"""Build externally-routable URLs from internally stored hrefs.

Documents store links against the internal API host (or as host-relative
paths).  Before a document leaves the service, each href is re-rooted on the
public base URL that serves its role: dataset links on the API gateway,
code-list links on the code-list service, file links on the download service,
and so on.
"""

import enum
import posixpath
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit, urlunsplit

_ALLOWED_SCHEMES = ("", "http", "https")
_DOWNLOAD_FILES_PATH = "/downloads-new"


class LinkRole(enum.StrEnum):
    """Semantic role of a link, selecting the base URL it is rebuilt on."""

    DATASET = "dataset"
    CODE_LIST = "code_list"
    DOWNLOAD = "download"
    DOWNLOAD_FILE = "download_file"
    IMPORT = "import"
    WEBSITE = "website"


class LinkBuildError(ValueError):
    """Raised when an internal href cannot be parsed into a routable link.

    Args:
        href: The offending href.
        reason: Why it was rejected.
    """

    def __init__(self, href: str, reason: str) -> None:
        self.href = href
        self.reason = reason
        super().__init__(f"cannot build link from {href!r}: {reason}")


@dataclass(frozen=True)
class LinkBaseURLs:
    """Public base URLs, fixed at process start."""

    website: str
    api: str
    download: str
    code_list: str
    import_service: str


def _parse_href(href: str) -> SplitResult:
    """Split an internal href, rejecting anything that is not a clean absolute path."""
    if not href:
        raise LinkBuildError(href, "empty href")
    if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in href):
        raise LinkBuildError(href, "contains whitespace or control characters")
    try:
        parts = urlsplit(href)
        # Accessing .port validates the netloc's port component
        _ = parts.port
    except ValueError as exc:
        raise LinkBuildError(href, str(exc)) from exc
    if parts.scheme not in _ALLOWED_SCHEMES:
        raise LinkBuildError(href, f"unsupported scheme {parts.scheme!r}")
    if parts.scheme and not parts.netloc:
        raise LinkBuildError(href, "scheme without host")
    if not parts.path.startswith("/"):
        raise LinkBuildError(href, "path must be absolute")
    return parts


def _parse_base(base: str) -> SplitResult:
    parts = urlsplit(base)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Base URL {base!r} must be an absolute http(s) URL"
        raise ValueError(msg)
    return parts


def _join_paths(prefix: str, path: str) -> str:
    prefix = prefix.rstrip("/")
    if not prefix:
        return path
    if path == prefix or path.startswith(prefix + "/"):
        return path
    return prefix + path


class LinkBuilder:
    """Resolves internal hrefs against the public base URL for each link role."""

    def __init__(self, bases: LinkBaseURLs) -> None:
        self._bases: dict[LinkRole, SplitResult] = {
            LinkRole.DATASET: _parse_base(bases.api),
            LinkRole.CODE_LIST: _parse_base(bases.code_list),
            LinkRole.DOWNLOAD: _parse_base(bases.download),
            LinkRole.DOWNLOAD_FILE: _parse_base(bases.download),
            LinkRole.IMPORT: _parse_base(bases.import_service),
            LinkRole.WEBSITE: _parse_base(bases.website),
        }
        self.website_url = bases.website.rstrip("/")
        self.api_url = bases.api.rstrip("/")

    def build_link(self, href: str, role: LinkRole = LinkRole.DATASET) -> str:
        """Rebuild ``href`` on the base URL for ``role``.

        The href's scheme and host are replaced by the base's, the base path
        prefix is prepended unless already present, and the query string is
        kept.  Distribution file links are additionally rooted under the
        download service's files path.

        Raises:
            LinkBuildError: If the href cannot be parsed.
        """
        parts = _parse_href(href)
        base = self._bases[role]
        path = posixpath.normpath(parts.path) if "/." in parts.path else parts.path
        if role is LinkRole.DOWNLOAD_FILE:
            path = _join_paths(base.path, _join_paths(_DOWNLOAD_FILES_PATH, path))
        else:
            path = _join_paths(base.path, path)
        return urlunsplit((base.scheme, base.netloc, path, parts.query, ""))

    def website_version_url(self, dataset_id: str, edition: str, version: str | int) -> str:
        """Website page for a specific dataset version."""
        return f"{self.website_url}/datasets/{dataset_id}/editions/{edition}/versions/{version}"
