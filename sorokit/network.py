
from __future__ import annotations
from sorokit.crypto import sha256
from sorokit.errors import SorokitError
from sorokit.xdr import (
    Hash, MAX_OPS_PER_TX, SCVAL_LIMIT, SCSYMBOL_LIMIT, SIGNATURE_LIMIT
)


# Network passphrases, hashed with SHA-256 into the network id that
# every preimage starts with.

PUBLIC_NETWORK_PASSPHRASE = 'Public Global Stellar Network ; September 2015'
TESTNET_NETWORK_PASSPHRASE = 'Test SDF Network ; September 2015'
FUTURENET_NETWORK_PASSPHRASE = 'Test SDF Future Network ; October 2022'
STANDALONE_NETWORK_PASSPHRASE = 'Standalone Network ; February 2017'


class Parameters(object):
    """
    Network-specific configuration. Invocation limits are not fixed by the
    wire format, so they are supplied here instead of hardcoded.
    """

    def __init__(self,
        passphrase: str = FUTURENET_NETWORK_PASSPHRASE,
        max_invocations: int = 64,      # nodes per authorization tree
        max_depth: int | None = None,   # levels per authorization tree
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(passphrase, str) or not passphrase:
                raise SorokitError('Invalid passphrase.')
            if not isinstance(max_invocations, int) or max_invocations <= 0:
                raise SorokitError('Invalid max_invocations.')
            if max_depth is not None and (
                not isinstance(max_depth, int) or max_depth <= 0
            ):
                raise SorokitError('Invalid max_depth.')
        self.passphrase = passphrase
        self.max_invocations = max_invocations
        self.max_depth = max_depth
        self._network_id: bytes | None = None

    def __eq__(self, value: Parameters) -> bool:
        return (
            isinstance(value, Parameters)
            and self.passphrase == value.passphrase
            and self.max_invocations == value.max_invocations
            and self.max_depth == value.max_depth
        )

    async def network_id(self) -> Hash:
        if self._network_id is None:
            self._network_id = await sha256(self.passphrase.encode('utf-8'))
        return Hash(self._network_id)
