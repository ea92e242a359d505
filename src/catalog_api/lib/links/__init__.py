"""Links library — public API for hypermedia link construction.

Public API:
    - LinkBuilder: Resolves internal hrefs against per-role public base URLs
    - LinkBaseURLs: The base URL configuration a builder is constructed from
    - LinkRewriter: Deep, copy-on-write rewrite of every link in a resource graph
    - LinkBuildError: Raised for an href that cannot be rebuilt
"""

from catalog_api.lib.links.builder import LinkBaseURLs, LinkBuilder, LinkBuildError, LinkRole
from catalog_api.lib.links.rewriter import LinkRewriter

__all__ = [
    "LinkBaseURLs",
    "LinkBuildError",
    "LinkBuilder",
    "LinkRewriter",
    "LinkRole",
]
