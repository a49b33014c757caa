"""Token commands: mint and inspect App Store Connect JWTs."""

from datetime import datetime, timezone

from ..client.auth import decode_claims


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class AuthCommands:
    """Commands that only need the signer, never the network."""

    def __init__(self, signer):
        self.signer = signer

    def mint_token(self, verify: bool = False) -> dict:
        """Mint a token and describe it.

        Args:
            verify: Also check the signature against the key's public half

        Returns:
            Dict with token, key/issuer IDs, and issue/expiry times
        """
        token, expires_at = self.signer.mint()
        claims = decode_claims(token)

        result = {
            'token': token,
            'keyId': self.signer.key_id,
            'issuerId': claims.get('iss'),
            'audience': claims.get('aud'),
            'issuedAt': _iso(claims['iat']),
            'expiresAt': _iso(expires_at),
        }
        if verify:
            result['verified'] = self.signer.verify(token)
        return result
