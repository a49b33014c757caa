"""HTTP client for the App Store Connect API."""

import sys
import json
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    API_BASE_URL,
    REQUEST_TIMEOUT,
    POOL_MAXSIZE,
    READ_CHUNK_SIZE,
)
from .auth import TokenProvider, TokenSigner
from .errors import (
    AppStoreConnectError,
    APIError,
    TransportError,
)

JSON_HEADERS = {
    'Accept': 'application/json',
    'Content-Type': 'application/json',
}


def parse_error_body(content: bytes):
    """Extract a readable message from an error response body.

    Returns:
        (message, errors) where message joins each JSON:API error as
        "title: detail" with "; ", and errors is the decoded error list.
        Bodies that are not a JSON:API envelope with a non-empty list of
        error objects come back as their raw text with an empty list.
    """
    try:
        body = json.loads(content)
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get('errors'), list):
        errors = body['errors']
        if errors and all(isinstance(e, dict) for e in errors):
            message = '; '.join(
                f"{e.get('title', '')}: {e.get('detail', '')}" for e in errors
            )
            return message, errors

    return content.decode('utf-8', errors='replace'), []


def _list_params(limit: int = 0, **filters) -> dict:
    """Build query params for a list endpoint; empty values are skipped."""
    params = {}
    if limit and limit > 0:
        params['limit'] = limit
    for name, value in filters.items():
        if value:
            params[f'filter[{name}]'] = value
    return params


class AppStoreConnectClient:
    """HTTP client for api.appstoreconnect.apple.com with JWT bearer auth.

    The four verbs (``get``, ``post``, ``patch``, ``delete``) return the raw
    response bytes; the resource helpers further down decode them into
    dicts. Instances are safe to share between threads.
    """

    def __init__(self, token_provider: TokenProvider, base_url: str = API_BASE_URL,
                 timeout: float = REQUEST_TIMEOUT, session: requests.Session = None,
                 verbose: bool = False):
        self.token_provider = token_provider
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.verbose = verbose
        self.session = session or self._create_session()

    @classmethod
    def from_settings(cls, settings, verbose: bool = False) -> "AppStoreConnectClient":
        """Build a client (signer, token provider, session) from Settings.

        Raises:
            KeyLoadError: If the private key cannot be read or parsed
        """
        signer = TokenSigner.from_file(
            settings.issuer_id,
            settings.key_id,
            settings.private_key_path,
            token_duration=settings.token_duration,
        )
        provider = TokenProvider(signer, refresh_buffer=settings.refresh_buffer)
        return cls(
            provider,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            verbose=verbose,
        )

    def _create_session(self) -> requests.Session:
        """Create a pooled requests session with JSON headers."""
        session = requests.Session()

        # Retry policy belongs to the caller.
        adapter = HTTPAdapter(
            pool_maxsize=POOL_MAXSIZE,
            max_retries=Retry(total=0, read=False),
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        session.headers.update(JSON_HEADERS)

        return session

    def execute(self, method: str, path: str, params=None, body=None,
                timeout=None) -> bytes:
        """Perform one authenticated request.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: URL path (appended to base_url), e.g. '/v1/apps'
            params: Query parameters (dict or list of pairs)
            body: JSON-serializable request body
            timeout: Seconds, or a (connect, read) tuple (default: self.timeout).
                requests applies it to the connect and to each socket read;
                the body read also stops once the call as a whole has run
                longer than the total. The total is checked between chunks,
                so one stalled read can still overrun it by up to the read
                timeout.

        Returns:
            Raw response body

        Raises:
            APIError: On status codes of 400 and above
            TransportError: On network failure or timeout
            SigningError: If a fresh token cannot be signed
        """
        if timeout is None:
            timeout = self.timeout
        token = self.token_provider.get_token()
        url = f"{self.base_url}{path}"

        data = None
        if body is not None:
            try:
                data = json.dumps(body).encode('utf-8')
            except (TypeError, ValueError) as e:
                raise AppStoreConnectError(f"Failed to encode request body: {e}") from e

        if self.verbose:
            print(f">> {method} {url}", file=sys.stderr)
            if params:
                print(f"   Params: {params}", file=sys.stderr)
            if data is not None:
                print(f"   Body: {data.decode('utf-8')[:200]}", file=sys.stderr)

        try:
            started = time.monotonic()
            response = self.session.request(
                method,
                url,
                params=params,
                data=data,
                headers={**JSON_HEADERS, 'Authorization': f'Bearer {token}'},
                timeout=timeout,
                stream=True,
            )
            content = _read_body(response, _deadline(started, timeout))
        except requests.RequestException as e:
            raise TransportError(
                f"{method} {url} failed: {e}", method=method, url=url
            ) from e

        if self.verbose:
            print(f"<< {response.status_code} {response.reason}", file=sys.stderr)

        return self._handle_response(response, content)

    def _handle_response(self, response: requests.Response, content: bytes) -> bytes:
        """Return the body for status < 400, raise APIError otherwise."""
        if response.status_code < 400:
            return content

        message, errors = parse_error_body(content)
        if not message:
            message = response.reason or ''
        raise APIError(response.status_code, message, errors)

    def get(self, path: str, params=None, timeout=None) -> bytes:
        """Perform a GET request."""
        return self.execute('GET', path, params=params, timeout=timeout)

    def post(self, path: str, body, timeout=None) -> bytes:
        """Perform a POST request."""
        return self.execute('POST', path, body=body, timeout=timeout)

    def patch(self, path: str, body, timeout=None) -> bytes:
        """Perform a PATCH request."""
        return self.execute('PATCH', path, body=body, timeout=timeout)

    def delete(self, path: str, body=None, timeout=None) -> None:
        """Perform a DELETE request, discarding the response body."""
        self.execute('DELETE', path, body=body, timeout=timeout)

    @staticmethod
    def _decode(content: bytes) -> dict:
        if not content:
            return {}
        try:
            return json.loads(content)
        except ValueError as e:
            raise AppStoreConnectError(f"Failed to decode response: {e}") from e

    def get_json(self, path: str, params=None) -> dict:
        """GET ``path`` and decode the JSON response."""
        return self._decode(self.get(path, params=params))

    # ── Apps ────────────────────────────────────────────────────────

    def list_apps(self, limit: int = 0, bundle_id: str = None) -> dict:
        """List apps, optionally filtered by bundle identifier."""
        return self.get_json('/v1/apps', _list_params(limit, bundleId=bundle_id))

    def get_app(self, app_id: str) -> dict:
        """Get a single app by ID."""
        return self.get_json(f'/v1/apps/{app_id}')

    def get_app_versions(self, app_id: str, limit: int = 0) -> dict:
        """List App Store versions for an app."""
        return self.get_json(
            f'/v1/apps/{app_id}/appStoreVersions',
            _list_params(limit)
        )

    # ── Builds ──────────────────────────────────────────────────────

    def list_builds(self, app_id: str = None, limit: int = 0) -> dict:
        """List builds, optionally for a single app."""
        return self.get_json('/v1/builds', _list_params(limit, app=app_id))

    def get_build(self, build_id: str) -> dict:
        """Get a single build by ID."""
        return self.get_json(f'/v1/builds/{build_id}')

    # ── TestFlight: beta groups ─────────────────────────────────────

    def list_beta_groups(self, app_id: str = None, limit: int = 0) -> dict:
        """List beta groups, optionally for a single app."""
        return self.get_json('/v1/betaGroups', _list_params(limit, app=app_id))

    def create_beta_group(self, app_id: str, name: str,
                          public_link_enabled: bool = False,
                          public_link_limit: int = 0,
                          feedback_enabled: bool = False) -> dict:
        """Create a beta group for an app.

        Args:
            app_id: App the group belongs to
            name: Group name
            public_link_enabled: Enable the public TestFlight link
            public_link_limit: Max testers via the public link (0 = no limit)
            feedback_enabled: Allow testers to send feedback

        Returns:
            The created beta group document
        """
        attributes = {'name': name}
        if public_link_enabled:
            attributes['publicLinkEnabled'] = True
        if public_link_limit > 0:
            attributes['publicLinkLimitEnabled'] = True
            attributes['publicLinkLimit'] = public_link_limit
        if feedback_enabled:
            attributes['feedbackEnabled'] = True

        body = {
            'data': {
                'type': 'betaGroups',
                'attributes': attributes,
                'relationships': {
                    'app': {'data': {'type': 'apps', 'id': app_id}},
                },
            }
        }
        return self._decode(self.post('/v1/betaGroups', body))

    def delete_beta_group(self, beta_group_id: str) -> None:
        """Delete a beta group."""
        self.delete(f'/v1/betaGroups/{beta_group_id}')

    def add_beta_tester_to_group(self, beta_group_id: str, beta_tester_id: str) -> None:
        """Add an existing beta tester to a group."""
        self.post(
            f'/v1/betaGroups/{beta_group_id}/relationships/betaTesters',
            _tester_linkage(beta_tester_id)
        )

    def remove_beta_tester_from_group(self, beta_group_id: str, beta_tester_id: str) -> None:
        """Remove a beta tester from a group (the tester itself is kept)."""
        self.delete(
            f'/v1/betaGroups/{beta_group_id}/relationships/betaTesters',
            body=_tester_linkage(beta_tester_id)
        )

    # ── TestFlight: beta testers ────────────────────────────────────

    def list_beta_testers(self, beta_group_id: str = None, limit: int = 0) -> dict:
        """List beta testers, optionally for a single group."""
        return self.get_json(
            '/v1/betaTesters',
            _list_params(limit, betaGroups=beta_group_id)
        )

    def create_beta_tester(self, email: str, first_name: str = None,
                           last_name: str = None, beta_group_ids: list = None) -> dict:
        """Invite a beta tester, optionally straight into some groups."""
        attributes = {'email': email}
        if first_name:
            attributes['firstName'] = first_name
        if last_name:
            attributes['lastName'] = last_name

        data = {'type': 'betaTesters', 'attributes': attributes}
        if beta_group_ids:
            data['relationships'] = {
                'betaGroups': {
                    'data': [{'type': 'betaGroups', 'id': g} for g in beta_group_ids]
                }
            }

        return self._decode(self.post('/v1/betaTesters', {'data': data}))

    def delete_beta_tester(self, beta_tester_id: str) -> None:
        """Remove a beta tester from all groups and builds."""
        self.delete(f'/v1/betaTesters/{beta_tester_id}')

    # ── Provisioning ────────────────────────────────────────────────

    def list_bundle_ids(self, limit: int = 0, identifier: str = None) -> dict:
        """List registered bundle IDs."""
        return self.get_json('/v1/bundleIds', _list_params(limit, identifier=identifier))

    def get_bundle_id(self, bundle_id_id: str) -> dict:
        """Get a bundle ID resource by its resource ID (not the identifier string)."""
        return self.get_json(f'/v1/bundleIds/{bundle_id_id}')

    def list_devices(self, limit: int = 0, platform: str = None) -> dict:
        """List registered devices."""
        return self.get_json('/v1/devices', _list_params(limit, platform=platform))

    def register_device(self, name: str, udid: str, platform: str = 'IOS') -> dict:
        """Register a device for development and ad hoc provisioning."""
        body = {
            'data': {
                'type': 'devices',
                'attributes': {'name': name, 'udid': udid, 'platform': platform},
            }
        }
        return self._decode(self.post('/v1/devices', body))

    def list_certificates(self, limit: int = 0, certificate_type: str = None) -> dict:
        """List signing certificates."""
        return self.get_json(
            '/v1/certificates',
            _list_params(limit, certificateType=certificate_type)
        )

    def list_profiles(self, limit: int = 0) -> dict:
        """List provisioning profiles."""
        return self.get_json('/v1/profiles', _list_params(limit))

    def get_profile(self, profile_id: str) -> dict:
        """Get a provisioning profile by ID."""
        return self.get_json(f'/v1/profiles/{profile_id}')


def _tester_linkage(beta_tester_id: str) -> dict:
    return {'data': [{'type': 'betaTesters', 'id': beta_tester_id}]}


def _deadline(started: float, timeout):
    if timeout is None:
        return None
    if isinstance(timeout, tuple):
        timeout = sum(t for t in timeout if t is not None)
    return started + timeout


def _read_body(response: requests.Response, deadline) -> bytes:
    """Read a streamed body, giving up once ``deadline`` has passed.

    Raises:
        requests.Timeout: If the body is still arriving at the deadline
    """
    chunks = []
    with response:
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            if deadline is not None and time.monotonic() > deadline:
                raise requests.Timeout("Response body not received before the deadline")
            chunks.append(chunk)
    return b''.join(chunks)
