import email
import email.policy
import json
import re
from http import HTTPStatus
from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from bbcloud.client import APIError, Client, Link, Paginated, User

BASE = "https://api.example.com/2.0"
ANY_URL = re.compile(re.escape(BASE) + r"/.*")


@pytest.fixture
def mock_api():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_get_joins_path_and_sends_auth(mock_api):
    mock_api.add(responses.GET, ANY_URL, json={"ok": True}, status=200)
    client = Client(base_url=BASE, token="token")
    response = client.get("/repositories/ws")
    request = mock_api.calls[0].request
    assert request.url == BASE + "/repositories/ws"
    assert request.headers["Authorization"] == "Bearer token"
    assert request.headers["Accept"] == "application/json"
    assert json.loads(response.body) == {"ok": True}
    assert response.status_code == 200


def test_no_token_means_no_authorization(mock_api):
    mock_api.add(responses.GET, ANY_URL, json={"anonymous": True}, status=200)
    response = Client(base_url=BASE).get("x")
    assert "Authorization" not in mock_api.calls[0].request.headers
    assert response.status_code == 200
    assert json.loads(response.body) == {"anonymous": True}


def test_params_are_sent_as_query(mock_api):
    mock_api.add(responses.GET, ANY_URL, json={"values": []}, status=200)
    response = Client(base_url=BASE).get("items", params={"sort": "-updated_on", "page": "2"})
    query = parse_qs(urlsplit(mock_api.calls[0].request.url).query)
    assert query == {"sort": ["-updated_on"], "page": ["2"]}
    assert json.loads(response.body) == {"values": []}


def test_extra_headers_override_defaults(mock_api):
    mock_api.add(responses.GET, ANY_URL, body="plain", status=200)
    response = Client(base_url=BASE).get("diff", headers={"Accept": "text/plain"})
    assert mock_api.calls[0].request.headers["Accept"] == "text/plain"
    assert response.body == b"plain"


@pytest.mark.parametrize("method", ["post", "put"])
def test_json_body_round_trip(mock_api, method):
    mock_api.add(method.upper(), ANY_URL, json={"saved": True}, status=200)
    payload = {"name": "demo", "is_private": False, "nested": {"key": "K"}}
    response = getattr(Client(base_url=BASE), method)("things", payload)
    request = mock_api.calls[0].request
    assert request.method == method.upper()
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.body) == payload
    assert response.status_code == 200
    assert json.loads(response.body) == {"saved": True}


def test_delete_uses_delete_method(mock_api):
    mock_api.add(responses.DELETE, ANY_URL, body="", status=204)
    response = Client(base_url=BASE).delete("things/1")
    assert mock_api.calls[0].request.method == "DELETE"
    assert response.status_code == 204
    assert response.body == b""


def test_error_with_json_body(mock_api):
    mock_api.add(
        responses.GET,
        ANY_URL,
        json={"error": {"message": "Validation error", "detail": "bad", "fields": {"key": "Invalid key"}}},
        status=400,
    )
    with pytest.raises(APIError) as info:
        Client(base_url=BASE).get("x")
    assert info.value.status_code == 400
    assert info.value.message == "Validation error"
    assert info.value.detail == "bad"
    assert info.value.fields == {"key": "Invalid key"}


def test_error_without_json_body_uses_status_text(mock_api):
    mock_api.add(responses.GET, ANY_URL, body="oops", status=503)
    with pytest.raises(APIError) as info:
        Client(base_url=BASE).get("x")
    assert info.value.status_code == 503
    assert info.value.message == HTTPStatus(503).phrase
    assert info.value.fields == {}


def test_multipart_round_trip(mock_api):
    mock_api.add(responses.POST, ANY_URL, json={"id": 1}, status=201)
    response = Client(base_url=BASE, token="token").request_multipart(
        "POST",
        "snippets/ws",
        {"title": "Test Title", "is_private": "true"},
        [("file", "test.py", "print('test')")],
    )
    assert response.status_code == 201
    assert json.loads(response.body) == {"id": 1}
    request = mock_api.calls[0].request
    content_type = request.headers["Content-Type"]
    assert content_type.startswith("multipart/form-data")
    message = email.message_from_bytes(
        b"Content-Type: " + content_type.encode() + b"\r\n\r\n" + request.body,
        policy=email.policy.HTTP,
    )
    parts = list(message.iter_parts())
    assert [part.get_param("name", header="content-disposition") for part in parts] == [
        "title",
        "is_private",
        "file",
    ]
    assert parts[0].get_content().strip() == "Test Title"
    assert parts[1].get_content().strip() == "true"
    assert parts[2].get_filename() == "test.py"
    assert parts[2].get_payload(decode=True).rstrip(b"\r\n") == b"print('test')"


def test_paginated_from_dict_parses_values():
    page = Paginated.from_dict(
        {"size": 50, "page": 2, "pagelen": 10, "next": "n", "values": [{"href": "a"}, {"href": "b"}]},
        Link.from_dict,
    )
    assert page.size == 50
    assert page.page == 2
    assert page.pagelen == 10
    assert page.next == "n"
    assert page.previous == ""
    assert [link.href for link in page.values] == ["a", "b"]


def test_models_tolerate_missing_data():
    assert Link.from_dict(None).href == ""
    user = User.from_dict({"display_name": "Test User", "uuid": "{user-uuid}"})
    assert user.display_name == "Test User"
    assert user.uuid == "{user-uuid}"
    assert user.username == ""