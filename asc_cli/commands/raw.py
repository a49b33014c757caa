"""Raw request command for endpoints without a dedicated helper."""

import json


class RawCommands:
    """Send an arbitrary authenticated request."""

    def __init__(self, client):
        self.client = client

    def request(self, method: str, path: str, params: list = None, body=None):
        """Send a request and decode the response when it is JSON.

        Args:
            method: HTTP method
            path: Path starting with '/', e.g. '/v1/apps'
            params: List of (name, value) query pairs
            body: JSON-serializable body

        Returns:
            Decoded JSON, {'raw': text} for non-JSON bodies, or a status
            dict for empty bodies
        """
        method = method.upper()
        if not path.startswith('/'):
            path = '/' + path

        content = self.client.execute(method, path, params=params or None, body=body)
        if not content:
            return {'status': 'ok', 'method': method, 'path': path}
        try:
            return json.loads(content)
        except ValueError:
            return {'raw': content.decode('utf-8', errors='replace')}
