"""Tests for the GIPHY proxy (/api/giphy)."""

from unittest.mock import MagicMock

import pytest
import requests

from helpers import login
from tempchat.api.deps import get_giphy
from tempchat.services.giphy import GiphyClient

GIPHY_URL = "https://giphy.test/v1/gifs"


def upstream(ok=True, payload=None, reason="OK"):
    resp = MagicMock()
    resp.ok = ok
    resp.reason = reason
    resp.status_code = 200 if ok else 502
    resp.json.return_value = payload or {}
    return resp


@pytest.fixture
def giphy_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def use_giphy(app, giphy_session):
    def _use(api_key="test-key"):
        giphy = GiphyClient(api_key=api_key, base_url=GIPHY_URL, session=giphy_session)
        app.dependency_overrides[get_giphy] = lambda: giphy
        return giphy

    return _use


@pytest.fixture
def alice(client, make_user):
    make_user("alice", "alice-pw")
    login(client, "alice", "alice-pw")
    return client


def test_requires_session(client, use_giphy):
    use_giphy()
    assert client.get("/api/giphy/trending").status_code == 401


def test_search_forwards_query_with_key_and_rating(alice, use_giphy, giphy_session):
    use_giphy()
    giphy_session.get.return_value = upstream(payload={"data": [{"id": "g1"}]})

    response = alice.get("/api/giphy/search", params={"q": "cats", "limit": 5, "offset": 10})

    assert response.status_code == 200
    assert response.json() == {"data": [{"id": "g1"}]}
    url = giphy_session.get.call_args.args[0]
    params = giphy_session.get.call_args.kwargs["params"]
    assert url == f"{GIPHY_URL}/search"
    assert params == {"api_key": "test-key", "rating": "g", "q": "cats", "limit": 5, "offset": 10}


def test_trending_defaults(alice, use_giphy, giphy_session):
    use_giphy()
    giphy_session.get.return_value = upstream(payload={"data": []})

    assert alice.get("/api/giphy/trending").status_code == 200

    assert giphy_session.get.call_args.args[0] == f"{GIPHY_URL}/trending"
    params = giphy_session.get.call_args.kwargs["params"]
    assert params["limit"] == 20
    assert params["offset"] == 0


def test_missing_key_is_a_server_error(alice, use_giphy, giphy_session):
    use_giphy(api_key="")

    response = alice.get("/api/giphy/trending")

    assert response.status_code == 500
    assert response.json() == {"error": "Giphy API key not configured"}
    giphy_session.get.assert_not_called()


def test_upstream_failure_is_reported(alice, use_giphy, giphy_session):
    use_giphy()
    giphy_session.get.return_value = upstream(ok=False, reason="Bad Gateway")

    response = alice.get("/api/giphy/search", params={"q": "dogs"})

    assert response.status_code == 500
    assert response.json() == {"error": "Giphy API error: Bad Gateway"}


def test_unreachable_upstream_is_reported(alice, use_giphy, giphy_session):
    use_giphy()
    giphy_session.get.side_effect = requests.ConnectionError("down")

    response = alice.get("/api/giphy/trending")

    assert response.status_code == 500
    assert response.json()["error"].startswith("Giphy API error")


def test_limit_is_bounded(alice, use_giphy):
    use_giphy()
    assert alice.get("/api/giphy/trending", params={"limit": 500}).status_code == 422
