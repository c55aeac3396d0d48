from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from asset_vault.services.query_session import NO_PAGINATION


class QueryParams(BaseModel):
    """List query string as sent by the web UI.

    Parsing never fails: missing or malformed paging values mean "no pagination".
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    owner: str = ""
    page_size: int = Field(default=NO_PAGINATION, alias="pageSize")
    page: int = Field(default=NO_PAGINATION, alias="p")
    field: str = ""
    value: str = ""
    sort_field: str = Field(default="", alias="sortField")
    sort_order: str = Field(default="", alias="sortOrder")

    @field_validator("page_size", "page", mode="before")
    @classmethod
    def _parse_positive_int(cls, v: Any) -> int:
        try:
            n = int(str(v).strip())
        except (TypeError, ValueError):
            return NO_PAGINATION
        return n if n > 0 else NO_PAGINATION

    @field_validator("owner", "field", "value", "sort_field", "sort_order", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "QueryParams":
        return cls.model_validate(dict(query))

    @property
    def limit(self) -> int:
        if self.page_size == NO_PAGINATION or self.page == NO_PAGINATION:
            return NO_PAGINATION
        return self.page_size

    @property
    def offset(self) -> int:
        if self.limit == NO_PAGINATION:
            return NO_PAGINATION
        return (self.page - 1) * self.page_size
