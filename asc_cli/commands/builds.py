"""Build commands."""

from .resources import flatten_collection, flatten_document


class BuildCommands:
    """Commands for uploaded builds."""

    def __init__(self, client):
        self.client = client

    def list_builds(self, app_id: str = None, limit: int = 0) -> dict:
        """List builds, optionally for one app."""
        return flatten_collection(
            self.client.list_builds(app_id=app_id, limit=limit), 'builds'
        )

    def get_build(self, build_id: str) -> dict:
        """Get a single build."""
        return flatten_document(self.client.get_build(build_id))
