"""Provisioning commands: bundle IDs, devices, certificates, profiles."""

from .resources import flatten_collection, flatten_document

# Profile and certificate documents embed large base64 blobs.
_BULKY_FIELDS = ('profileContent', 'certificateContent')


def _strip_bulky(result: dict, key: str) -> dict:
    for item in result.get(key, []):
        for field in _BULKY_FIELDS:
            item.pop(field, None)
    return result


class ProvisioningCommands:
    """Commands for code-signing resources."""

    def __init__(self, client):
        self.client = client

    def list_bundle_ids(self, limit: int = 0, identifier: str = None) -> dict:
        """List registered bundle IDs."""
        return flatten_collection(
            self.client.list_bundle_ids(limit=limit, identifier=identifier), 'bundleIds'
        )

    def get_bundle_id(self, bundle_id_id: str) -> dict:
        """Get a bundle ID resource."""
        return flatten_document(self.client.get_bundle_id(bundle_id_id))

    def list_devices(self, limit: int = 0, platform: str = None) -> dict:
        """List registered devices."""
        return flatten_collection(
            self.client.list_devices(limit=limit, platform=platform), 'devices'
        )

    def register_device(self, name: str, udid: str, platform: str = 'IOS') -> dict:
        """Register a device."""
        return flatten_document(self.client.register_device(name, udid, platform=platform))

    def list_certificates(self, limit: int = 0, certificate_type: str = None) -> dict:
        """List certificates without their encoded content."""
        result = flatten_collection(
            self.client.list_certificates(limit=limit, certificate_type=certificate_type),
            'certificates'
        )
        return _strip_bulky(result, 'certificates')

    def list_profiles(self, limit: int = 0) -> dict:
        """List provisioning profiles without their encoded content."""
        result = flatten_collection(self.client.list_profiles(limit=limit), 'profiles')
        return _strip_bulky(result, 'profiles')

    def get_profile(self, profile_id: str, include_content: bool = False) -> dict:
        """Get a provisioning profile; content is omitted unless asked for."""
        result = flatten_document(self.client.get_profile(profile_id))
        if not include_content:
            result.pop('profileContent', None)
        return result
