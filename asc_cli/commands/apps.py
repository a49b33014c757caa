"""App commands: list apps, show one, list its App Store versions."""

from .resources import flatten_collection, flatten_document


class AppCommands:
    """Commands for app records."""

    def __init__(self, client):
        self.client = client

    def list_apps(self, limit: int = 0, bundle_id: str = None) -> dict:
        """List apps visible to the API key."""
        return flatten_collection(
            self.client.list_apps(limit=limit, bundle_id=bundle_id), 'apps'
        )

    def get_app(self, app_id: str) -> dict:
        """Get a single app."""
        return flatten_document(self.client.get_app(app_id))

    def list_versions(self, app_id: str, limit: int = 0) -> dict:
        """List App Store versions for an app, newest first as returned."""
        return flatten_collection(
            self.client.get_app_versions(app_id, limit=limit), 'versions'
        )
