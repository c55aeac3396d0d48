from __future__ import annotations

from fastapi import Depends
from fastapi.testclient import TestClient

from asset_vault.api.app import create_app
from asset_vault.api.deps import get_query_session
from asset_vault.api.schemas import QueryParams
from asset_vault.services.query_session import QuerySession


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "ok"
    assert body["db"] == {"ok": True, "driver": "sqlite", "database": "asset_vault"}


def test_lifespan_shuts_database_down(settings):
    app = create_app(settings)
    with TestClient(app):
        db = app.state.database
        assert not db.closed
    assert db.closed


def _probe_app(settings):
    app = create_app(settings)

    @app.get("/probe")
    def probe(session: QuerySession = Depends(get_query_session)):
        return {
            "owner": session.owner,
            "limit": session.limit,
            "offset": session.offset,
            "like": session.like,
            "sort": session.sort_column,
            "asc": session.ascending,
        }

    return app


def test_query_session_dependency(settings):
    with TestClient(_probe_app(settings)) as c:
        r = c.get(
            "/probe",
            params={
                "owner": "alice",
                "pageSize": "10",
                "p": "3",
                "field": "displayName",
                "value": "web",
                "sortField": "name",
                "sortOrder": "ascend",
            },
        )
    assert r.status_code == 200, r.text
    assert r.json() == {
        "owner": "alice",
        "limit": 10,
        "offset": 20,
        "like": ["display_name", "%web%"],
        "sort": "name",
        "asc": True,
    }


def test_query_session_dependency_tolerates_bad_input(settings):
    with TestClient(_probe_app(settings)) as c:
        r = c.get("/probe", params={"pageSize": "ten", "p": "1", "field": "name;--", "value": "x", "sortField": "1=1 or"})
    assert r.status_code == 200, r.text
    assert r.json() == {
        "owner": None,
        "limit": None,
        "offset": None,
        "like": None,
        "sort": "created_time",
        "asc": False,
    }


def test_query_params_pagination():
    assert (QueryParams.from_query({"pageSize": "25", "p": "1"}).offset, QueryParams.from_query({"pageSize": "25", "p": "1"}).limit) == (0, 25)
    p = QueryParams.from_query({"pageSize": "25"})
    assert (p.offset, p.limit) == (-1, -1)
    p = QueryParams.from_query({"pageSize": "0", "p": "2"})
    assert (p.offset, p.limit) == (-1, -1)
    p = QueryParams.from_query({"pageSize": None, "p": "-4", "owner": None})
    assert (p.offset, p.limit, p.owner) == (-1, -1, "")
