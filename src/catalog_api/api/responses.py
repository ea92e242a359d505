"""JSON response helpers for rewritten documents."""

from collections.abc import Sequence

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _dump(doc: BaseModel) -> dict:
    return doc.model_dump(mode="json", exclude_none=True)


def document_response(
    doc: BaseModel,
    *,
    etag: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Render one document (or envelope), with its ``ETag`` when known."""
    headers = {"ETag": etag} if etag else None
    return JSONResponse(content=_dump(doc), status_code=status_code, headers=headers)


def list_response(items: Sequence[BaseModel]) -> JSONResponse:
    """Render a list of documents as ``{"items": [...], "count": n}``."""
    return JSONResponse(content={"items": [_dump(i) for i in items], "count": len(items)})
