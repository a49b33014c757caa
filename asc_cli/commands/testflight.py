"""TestFlight commands: beta groups and beta testers."""

from .resources import flatten_collection, flatten_document


class TestFlightCommands:
    """Commands for managing TestFlight groups and testers."""

    __test__ = False

    def __init__(self, client):
        self.client = client

    def list_groups(self, app_id: str = None, limit: int = 0) -> dict:
        """List beta groups, optionally for one app."""
        return flatten_collection(
            self.client.list_beta_groups(app_id=app_id, limit=limit), 'groups'
        )

    def create_group(self, app_id: str, name: str, public_link: bool = False,
                     public_link_limit: int = 0, feedback: bool = False) -> dict:
        """Create a beta group."""
        return flatten_document(self.client.create_beta_group(
            app_id,
            name,
            public_link_enabled=public_link,
            public_link_limit=public_link_limit,
            feedback_enabled=feedback,
        ))

    def delete_group(self, group_id: str, dry_run: bool = False) -> dict:
        """Delete a beta group."""
        if dry_run:
            return _preview('DELETE', f'/v1/betaGroups/{group_id}')
        self.client.delete_beta_group(group_id)
        return {'status': 'deleted', 'betaGroup': group_id}

    def add_tester(self, group_id: str, tester_id: str) -> dict:
        """Add an existing tester to a group."""
        self.client.add_beta_tester_to_group(group_id, tester_id)
        return {'status': 'added', 'betaGroup': group_id, 'betaTester': tester_id}

    def remove_tester(self, group_id: str, tester_id: str, dry_run: bool = False) -> dict:
        """Remove a tester from a group without deleting the tester."""
        if dry_run:
            return _preview(
                'DELETE',
                f'/v1/betaGroups/{group_id}/relationships/betaTesters',
                {'data': [{'type': 'betaTesters', 'id': tester_id}]},
            )
        self.client.remove_beta_tester_from_group(group_id, tester_id)
        return {'status': 'removed', 'betaGroup': group_id, 'betaTester': tester_id}

    def list_testers(self, group_id: str = None, limit: int = 0) -> dict:
        """List beta testers, optionally for one group."""
        return flatten_collection(
            self.client.list_beta_testers(beta_group_id=group_id, limit=limit), 'testers'
        )

    def invite_tester(self, email: str, first_name: str = None, last_name: str = None,
                      group_ids: list = None) -> dict:
        """Invite a tester by email."""
        return flatten_document(self.client.create_beta_tester(
            email,
            first_name=first_name,
            last_name=last_name,
            beta_group_ids=group_ids,
        ))

    def delete_tester(self, tester_id: str, dry_run: bool = False) -> dict:
        """Delete a tester from every group and build."""
        if dry_run:
            return _preview('DELETE', f'/v1/betaTesters/{tester_id}')
        self.client.delete_beta_tester(tester_id)
        return {'status': 'deleted', 'betaTester': tester_id}


def _preview(method: str, path: str, body: dict = None) -> dict:
    preview = {'dry_run': True, 'method': method, 'path': path}
    if body is not None:
        preview['body'] = body
    return preview
