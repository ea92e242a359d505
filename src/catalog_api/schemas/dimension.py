"""Pydantic v2 schemas for dimensions and dimension options."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from catalog_api.schemas.common import LinkObject


class DimensionLinks(BaseModel):
    code_list: LinkObject | None = None
    options: LinkObject | None = None
    version: LinkObject | None = None


class DimensionOptionLinks(BaseModel):
    code: LinkObject | None = None
    code_list: LinkObject | None = None
    version: LinkObject | None = None


class DimensionOption(BaseModel):
    """A single selectable value of a dimension."""

    model_config = ConfigDict(extra="ignore")

    dimension: str | None = None
    label: str | None = None
    option: str | None = None
    code: str | None = None
    node_id: str | None = None
    links: DimensionOptionLinks | None = None


class Dimension(BaseModel):
    """A dimension of a version, linked to its code list.

    ``href`` points at the code list and is rewritten against the code-list
    service, as is ``links.code_list``.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    label: str | None = None
    description: str | None = None
    href: str | None = None
    variable: str | None = None
    number_of_options: int | None = None
    links: DimensionLinks | None = None
    options: list[DimensionOption] | None = None


# ---------------------------------------------------------------------------
# Write schemas
# ---------------------------------------------------------------------------


class DimensionOptionCreateRequest(BaseModel):
    """An option the import pipeline found for one dimension of an instance.

    Either ``option`` or ``code_list`` must be given.
    """

    dimension: str = Field(min_length=1)
    option: str | None = None
    label: str | None = None
    code: str | None = None
    code_list: str | None = None
    node_id: str | None = None

    @model_validator(mode="after")
    def _option_or_code_list(self) -> "DimensionOptionCreateRequest":
        if not self.option and not self.code_list:
            raise ValueError("missing properties: option or code_list")
        return self


class DimensionUpdateRequest(BaseModel):
    """New label and/or description for a dimension of an instance."""

    label: str | None = None
    description: str | None = None
