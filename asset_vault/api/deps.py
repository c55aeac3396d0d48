from __future__ import annotations

from fastapi import Request

from asset_vault.api.schemas import QueryParams
from asset_vault.core.settings import Settings
from asset_vault.db.runtime import Database
from asset_vault.services.query_session import QuerySession


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_query_params(request: Request) -> QueryParams:
    return QueryParams.from_query(request.query_params)


def get_query_session(request: Request) -> QuerySession:
    params = get_query_params(request)
    return get_database(request).session(
        owner=params.owner,
        offset=params.offset,
        limit=params.limit,
        field=params.field,
        value=params.value,
        sort_field=params.sort_field,
        sort_order=params.sort_order,
    )
