"""Tests for the authenticated request layer."""

import json
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter

from asc_cli.client.asc_client import AppStoreConnectClient, parse_error_body
from asc_cli.client.auth import TokenProvider
from asc_cli.client.errors import (
    APIError,
    AppStoreConnectError,
    SigningError,
    TransportError,
)
from asc_cli.settings import Settings

BASE_URL = "https://asc.test"


class StubAdapter(BaseAdapter):
    """Transport adapter that records requests and replays canned responses."""

    def __init__(self):
        super().__init__()
        self.sent = []
        self.responses = []
        self.error = None

    def queue(self, status=200, body=b"", reason="OK"):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode()
        elif isinstance(body, str):
            body = body.encode()
        self.responses.append((status, body, reason))

    def send(self, request, **kwargs):
        self.sent.append((request, kwargs))
        if self.error is not None:
            raise self.error

        status, body, reason = self.responses.pop(0) if self.responses else (200, b"", "OK")
        response = requests.Response()
        response.status_code = status
        response.reason = reason
        response._content = body
        response._content_consumed = True
        response.request = request
        response.url = request.url
        return response

    def close(self):
        pass

    @property
    def last(self):
        return self.sent[-1][0]


@pytest.fixture
def provider(signer):
    return TokenProvider(signer)


@pytest.fixture
def adapter():
    return StubAdapter()


@pytest.fixture
def client(provider, adapter):
    client = AppStoreConnectClient(provider, base_url=BASE_URL)
    client.session.mount("https://", adapter)
    return client


def _query(request):
    return dict(parse_qsl(urlsplit(request.url).query))


def test_get_returns_raw_bytes(client, adapter):
    adapter.queue(200, b'{"data": []}')

    assert client.get("/v1/apps") == b'{"data": []}'


def test_request_carries_bearer_token_and_json_headers(client, adapter, provider, signer):
    adapter.queue(200, b"{}")
    client.get("/v1/apps")

    request = adapter.last
    assert request.method == "GET"
    assert request.url == f"{BASE_URL}/v1/apps"
    assert request.headers["Authorization"] == f"Bearer {provider.get_token()}"
    assert request.headers["Content-Type"] == "application/json"
    assert signer.verify(request.headers["Authorization"].split(" ", 1)[1])


def test_injected_session_still_sends_json_headers(provider, adapter):
    session = requests.Session()
    session.mount("https://", adapter)
    client = AppStoreConnectClient(provider, base_url=BASE_URL, session=session)

    client.post("/v1/apps", {"a": 1})

    assert adapter.last.headers["Content-Type"] == "application/json"
    assert adapter.last.headers["Accept"] == "application/json"
    assert adapter.last.headers["Authorization"].startswith("Bearer ")


def test_query_parameters_are_url_encoded(client, adapter):
    client.get("/v1/builds", params={"limit": 5, "filter[app]": "123 456"})

    url = adapter.last.url
    assert "filter%5Bapp%5D=123+456" in url
    assert _query(adapter.last) == {"limit": "5", "filter[app]": "123 456"}


def test_post_sends_json_body(client, adapter):
    adapter.queue(201, b'{"data": {"id": "1"}}')
    body = {"data": {"type": "betaGroups", "attributes": {"name": "QA"}}}

    assert client.post("/v1/betaGroups", body) == b'{"data": {"id": "1"}}'
    assert adapter.last.method == "POST"
    assert json.loads(adapter.last.body) == body


def test_patch_uses_patch_verb(client, adapter):
    client.patch("/v1/apps/1", {"data": {"id": "1", "type": "apps"}})
    assert adapter.last.method == "PATCH"


def test_delete_discards_body(client, adapter):
    adapter.queue(204, b"ignored")

    assert client.delete("/v1/betaGroups/9") is None
    assert adapter.last.method == "DELETE"
    assert adapter.last.body is None


def test_default_and_per_call_timeout(client, adapter):
    client.get("/v1/apps")
    assert adapter.sent[-1][1]["timeout"] == 30

    client.get("/v1/apps", timeout=2.5)
    assert adapter.sent[-1][1]["timeout"] == 2.5


def test_token_is_reused_across_requests(client, adapter):
    client.get("/v1/apps")
    client.get("/v1/builds")

    first, second = (r.headers["Authorization"] for r, _ in adapter.sent)
    assert first == second


def test_status_below_400_is_success(client, adapter):
    adapter.queue(302, b"moved", reason="Found")
    assert client.get("/v1/apps") == b"moved"


def test_json_api_error_message(client, adapter):
    adapter.queue(400, {"errors": [
        {"title": "Invalid Parameter", "detail": "The value is not valid"}
    ]}, reason="Bad Request")

    with pytest.raises(APIError) as exc_info:
        client.get("/v1/apps")

    err = exc_info.value
    assert err.status == 400
    assert err.message == "Invalid Parameter: The value is not valid"
    assert str(err) == "API error (400): Invalid Parameter: The value is not valid"
    assert err.errors[0]["title"] == "Invalid Parameter"
    assert not err.retryable


def test_multiple_errors_are_joined(client, adapter):
    adapter.queue(409, {"errors": [
        {"status": "409", "code": "ENTITY_ERROR", "title": "A", "detail": "first"},
        {"title": "B", "detail": "second"},
    ]})

    with pytest.raises(APIError) as exc_info:
        client.post("/v1/betaGroups", {})

    assert exc_info.value.message == "A: first; B: second"


def test_not_found_without_errors_array(client, adapter):
    adapter.queue(404, b"{}", reason="Not Found")

    with pytest.raises(APIError) as exc_info:
        client.get("/v1/apps/missing")

    assert exc_info.value.status == 404
    assert exc_info.value.message == "{}"
    assert "404" in str(exc_info.value)


def test_plain_text_error_body_is_used_verbatim(client, adapter):
    adapter.queue(502, b"<html>Bad Gateway</html>", reason="Bad Gateway")

    with pytest.raises(APIError) as exc_info:
        client.get("/v1/apps")

    assert exc_info.value.message == "<html>Bad Gateway</html>"
    assert exc_info.value.retryable


def test_empty_error_body_falls_back_to_reason(client, adapter):
    adapter.queue(503, b"", reason="Service Unavailable")

    with pytest.raises(APIError) as exc_info:
        client.get("/v1/apps")

    assert exc_info.value.message == "Service Unavailable"


def test_rate_limit_is_retryable(client, adapter):
    adapter.queue(429, {"errors": [{"title": "Rate limit", "detail": "slow down"}]})

    with pytest.raises(APIError) as exc_info:
        client.get("/v1/apps")

    assert exc_info.value.retryable


@pytest.mark.parametrize("exc", [
    requests.ConnectionError("connection refused"),
    requests.Timeout("read timed out"),
    requests.exceptions.SSLError("certificate verify failed"),
])
def test_transport_failures_become_transport_error(client, adapter, exc):
    adapter.error = exc

    with pytest.raises(TransportError) as exc_info:
        client.get("/v1/apps")

    assert exc_info.value.__cause__ is exc
    assert not isinstance(exc_info.value, APIError)
    assert exc_info.value.metadata["method"] == "GET"


def test_signing_error_stops_request(adapter, signer):
    class BrokenProvider:
        def get_token(self):
            raise SigningError("no entropy")

    client = AppStoreConnectClient(BrokenProvider(), base_url=BASE_URL)
    client.session.mount("https://", adapter)

    with pytest.raises(SigningError):
        client.get("/v1/apps")
    assert adapter.sent == []


def test_unserializable_body(client, adapter):
    with pytest.raises(AppStoreConnectError, match="Failed to encode request body"):
        client.post("/v1/apps", {"when": object()})
    assert adapter.sent == []


def test_session_does_not_retry(client):
    adapter = client._create_session().get_adapter("https://asc.test")
    assert adapter.max_retries.total == 0


@pytest.mark.parametrize("body, expected", [
    (b'{"errors": []}', '{"errors": []}'),
    (b'{"errors": "nope"}', '{"errors": "nope"}'),
    (b'[1, 2]', '[1, 2]'),
    (b'\xff\xfe', '\ufffd\ufffd'),
    (b'{"errors": [{"title": "Only title"}]}', 'Only title: '),
    (b'{"errors": ["x", {"title": "T", "detail": "D"}]}',
     '{"errors": ["x", {"title": "T", "detail": "D"}]}'),
])
def test_parse_error_body_fallbacks(body, expected):
    message, errors = parse_error_body(body)
    assert message == expected
    if not expected.endswith(": "):
        assert errors == []


# ── resource helpers ────────────────────────────────────────────────

def test_list_builds_sends_limit_and_filter(client, adapter):
    adapter.queue(200, {"data": [{"id": "b1", "type": "builds"}]})

    result = client.list_builds(app_id="123", limit=10)

    assert result["data"][0]["id"] == "b1"
    assert urlsplit(adapter.last.url).path == "/v1/builds"
    assert _query(adapter.last) == {"limit": "10", "filter[app]": "123"}


def test_list_apps_omits_empty_params(client, adapter):
    adapter.queue(200, {"data": []})
    client.list_apps()
    assert urlsplit(adapter.last.url).query == ""


def test_get_app_path(client, adapter):
    adapter.queue(200, {"data": {"id": "42", "type": "apps"}})
    assert client.get_app("42")["data"]["id"] == "42"
    assert adapter.last.url == f"{BASE_URL}/v1/apps/42"


def test_create_beta_group_body(client, adapter):
    adapter.queue(201, {"data": {"id": "g1", "type": "betaGroups"}})

    client.create_beta_group("app1", "QA", public_link_limit=50)

    body = json.loads(adapter.last.body)
    assert body == {
        "data": {
            "type": "betaGroups",
            "attributes": {
                "name": "QA",
                "publicLinkLimitEnabled": True,
                "publicLinkLimit": 50,
            },
            "relationships": {"app": {"data": {"type": "apps", "id": "app1"}}},
        }
    }


def test_create_beta_tester_with_groups(client, adapter):
    adapter.queue(201, {"data": {"id": "t1", "type": "betaTesters"}})

    client.create_beta_tester("qa@example.com", first_name="Q", beta_group_ids=["g1", "g2"])

    data = json.loads(adapter.last.body)["data"]
    assert data["attributes"] == {"email": "qa@example.com", "firstName": "Q"}
    assert [g["id"] for g in data["relationships"]["betaGroups"]["data"]] == ["g1", "g2"]


def test_add_tester_to_group(client, adapter):
    client.add_beta_tester_to_group("g1", "t1")

    assert adapter.last.method == "POST"
    assert adapter.last.url == f"{BASE_URL}/v1/betaGroups/g1/relationships/betaTesters"
    assert json.loads(adapter.last.body) == {"data": [{"type": "betaTesters", "id": "t1"}]}


def test_remove_tester_from_group_sends_linkage(client, adapter):
    adapter.queue(204)

    client.remove_beta_tester_from_group("g1", "t1")

    assert adapter.last.method == "DELETE"
    assert adapter.last.url == f"{BASE_URL}/v1/betaGroups/g1/relationships/betaTesters"
    assert json.loads(adapter.last.body) == {"data": [{"type": "betaTesters", "id": "t1"}]}


def test_register_device_body(client, adapter):
    adapter.queue(201, {"data": {"id": "d1", "type": "devices"}})

    client.register_device("Test iPhone", "00008030-000000000000002E")

    assert json.loads(adapter.last.body)["data"]["attributes"] == {
        "name": "Test iPhone",
        "udid": "00008030-000000000000002E",
        "platform": "IOS",
    }


def test_empty_success_body_decodes_to_empty_dict(client, adapter):
    adapter.queue(200, b"")
    assert client.get_profile("p1") == {}


def test_non_json_success_body_is_an_error(client, adapter):
    adapter.queue(200, b"<html>")
    with pytest.raises(AppStoreConnectError, match="Failed to decode response"):
        client.list_devices()


def test_from_settings(key_file):
    settings = Settings(
        issuer_id="issuer",
        key_id="KEY",
        private_key_path=str(key_file),
        base_url=BASE_URL,
        request_timeout=7,
    )

    client = AppStoreConnectClient.from_settings(settings, verbose=True)

    assert client.base_url == BASE_URL
    assert client.timeout == 7
    assert client.verbose
    assert client.token_provider.signer.verify(client.token_provider.get_token())


def test_verbose_output_never_prints_token(provider, adapter, capsys):
    client = AppStoreConnectClient(provider, base_url=BASE_URL, verbose=True)
    client.session.mount("https://", adapter)
    adapter.queue(200, b"{}", reason="OK")

    client.post("/v1/apps", {"name": "x"})

    err = capsys.readouterr().err
    assert ">> POST https://asc.test/v1/apps" in err
    assert "<< 200 OK" in err
    assert provider.get_token() not in err
