
from __future__ import annotations
from enum import IntEnum
from struct import pack
from sorokit.crypto import sha256
from sorokit.errors import MalformedInput
from sorokit.host import AuthorizedInvocation
from sorokit.xdr import (
    AbstractElement, AccountID, Asset, AssetNative, AssetAlphaNum4,
    AssetAlphaNum12, Hash, SCContractCode, SCContractCodeToken,
    SCContractCodeWasmRef, Uint256
)


class EnvelopeType(IntEnum):
    ENVELOPE_TYPE_CONTRACT_ID_FROM_ED25519 = 8
    ENVELOPE_TYPE_CONTRACT_ID_FROM_CONTRACT = 9
    ENVELOPE_TYPE_CONTRACT_ID_FROM_ASSET = 10
    ENVELOPE_TYPE_CONTRACT_ID_FROM_SOURCE_ACCOUNT = 11
    ENVELOPE_TYPE_CREATE_CONTRACT_ARGS = 12
    ENVELOPE_TYPE_CONTRACT_AUTH = 13


class HashIDPreimage(AbstractElement):
    """
    Envelope-tagged preimage. Every variant starts with the envelope type
    and the network id, so ids and signatures never collide across variants
    or networks.
    """

    ENVELOPE_TYPE: EnvelopeType

    def __init__(self, network_id: Hash, _validate: bool = True):
        if _validate:
            if not isinstance(network_id, Hash):
                raise MalformedInput('Invalid network_id.')
        self.network_id = network_id

    def __eq__(self, value: HashIDPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.network_id == value.network_id
        )

    def _encode_prefix(self) -> bytes:
        return pack('>i', self.ENVELOPE_TYPE) + self.network_id.encode()

    async def hash(self) -> Hash:
        return Hash(await sha256(self.encode()))


class ContractIDFromEd25519Preimage(HashIDPreimage):

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CONTRACT_ID_FROM_ED25519

    def __init__(self,
        network_id: Hash, key: Uint256, salt: Uint256,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(key, Uint256) or not isinstance(salt, Uint256):
                raise MalformedInput('Invalid key or salt.')
        super().__init__(network_id, _validate=_validate)
        self.key = key
        self.salt = salt

    def __eq__(self, value: ContractIDFromEd25519Preimage) -> bool:
        return (
            super().__eq__(value)
            and self.key == value.key
            and self.salt == value.salt
        )

    def encode(self) -> bytes:
        return b''.join([
            self._encode_prefix(), self.key.encode(), self.salt.encode()
        ])


class ContractIDFromContractPreimage(HashIDPreimage):

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CONTRACT_ID_FROM_CONTRACT

    def __init__(self,
        network_id: Hash, contract_id: Hash, salt: Uint256,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(contract_id, Hash) or not isinstance(salt, Uint256):
                raise MalformedInput('Invalid contract_id or salt.')
        super().__init__(network_id, _validate=_validate)
        self.contract_id = contract_id
        self.salt = salt

    def __eq__(self, value: ContractIDFromContractPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.contract_id == value.contract_id
            and self.salt == value.salt
        )

    def encode(self) -> bytes:
        return b''.join([
            self._encode_prefix(), self.contract_id.encode(), self.salt.encode()
        ])


class ContractIDFromAssetPreimage(HashIDPreimage):

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CONTRACT_ID_FROM_ASSET

    def __init__(self, network_id: Hash, asset: Asset, _validate: bool = True):
        if _validate:
            if not isinstance(asset, (AssetNative, AssetAlphaNum4, AssetAlphaNum12)):
                raise MalformedInput('Invalid asset.')
        super().__init__(network_id, _validate=_validate)
        self.asset = asset

    def __eq__(self, value: ContractIDFromAssetPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.asset == value.asset
        )

    def encode(self) -> bytes:
        return self._encode_prefix() + self.asset.encode()


class ContractIDFromSourceAccountPreimage(HashIDPreimage):

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CONTRACT_ID_FROM_SOURCE_ACCOUNT

    def __init__(self,
        network_id: Hash, source_account: AccountID, salt: Uint256,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(source_account, AccountID):
                raise MalformedInput('Invalid source_account.')
            if not isinstance(salt, Uint256):
                raise MalformedInput('Invalid salt.')
        super().__init__(network_id, _validate=_validate)
        self.source_account = source_account
        self.salt = salt

    def __eq__(self, value: ContractIDFromSourceAccountPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.source_account == value.source_account
            and self.salt == value.salt
        )

    def encode(self) -> bytes:
        return b''.join([
            self._encode_prefix(), self.source_account.encode(),
            self.salt.encode()
        ])


class CreateContractArgsPreimage(HashIDPreimage):
    """
    Message signed by the key of an Ed25519 contract id scheme.
    """

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CREATE_CONTRACT_ARGS

    def __init__(self,
        network_id: Hash, source: SCContractCode, salt: Uint256,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(source, (SCContractCodeWasmRef, SCContractCodeToken)):
                raise MalformedInput('Invalid source.')
            if not isinstance(salt, Uint256):
                raise MalformedInput('Invalid salt.')
        super().__init__(network_id, _validate=_validate)
        self.source = source
        self.salt = salt

    def __eq__(self, value: CreateContractArgsPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.source == value.source
            and self.salt == value.salt
        )

    def encode(self) -> bytes:
        return b''.join([
            self._encode_prefix(), self.source.encode(), self.salt.encode()
        ])


class ContractAuthPreimage(HashIDPreimage):
    """
    Payload signed for a `ContractAuth` entry.
    """

    ENVELOPE_TYPE = EnvelopeType.ENVELOPE_TYPE_CONTRACT_AUTH

    def __init__(self,
        network_id: Hash, nonce: int, invocation: AuthorizedInvocation,
        _validate: bool = True
    ):
        if _validate:
            if (
                not isinstance(nonce, int)
                or nonce < 0
                or nonce >= 0x1_0000_0000_0000_0000
            ):
                raise MalformedInput('Invalid nonce.')
            if not isinstance(invocation, AuthorizedInvocation):
                raise MalformedInput('Invalid invocation.')
        super().__init__(network_id, _validate=_validate)
        self.nonce = nonce
        self.invocation = invocation

    def __eq__(self, value: ContractAuthPreimage) -> bool:
        return (
            super().__eq__(value)
            and self.nonce == value.nonce
            and self.invocation == value.invocation
        )

    def encode(self) -> bytes:
        return b''.join([
            self._encode_prefix(), pack('>Q', self.nonce),
            self.invocation.encode()
        ])
