
from __future__ import annotations
from typing import Awaitable, Callable, Generator
from asyncio import gather
from sorokit.crypto import Keypair, verify
from sorokit.errors import (
    MalformedInput, SignatureInvalid, UnsupportedAddressKind
)
from sorokit.host import (
    AddressWithNonce, AuthorizedInvocation, ContractAuth, InvokeHostFunctionOp
)
from sorokit.invocation import walk
from sorokit.nonce import NonceTracker, check_conflicts
from sorokit.preimage import ContractAuthPreimage
from sorokit.xdr import (
    AccountID, Hash, SCAddress, SCAddressAccount, SCAddressContract,
    SCMapEntry, SCVal, SCVBytes, SCVMap, SCVSymbol, SCVVec
)

import logging


logger = logging.getLogger(__name__)


PUBLIC_KEY = SCVSymbol('public_key')
SIGNATURE = SCVSymbol('signature')


CustomSign = Callable[[bytes], Awaitable[list[SCVal]]]
CustomVerify = Callable[[bytes, list[SCVal]], Awaitable[bool]]


class AbstractSigner(object):
    """
    Signing capability for one address. `sign` may be slow (e.g. an
    external device) and may fail; errors propagate to the caller.
    """

    @property
    def address(self) -> SCAddress:
        raise NotImplementedError()

    async def sign(self, payload: bytes) -> list[SCVal]:
        raise NotImplementedError()


class AccountSigner(AbstractSigner):
    """
    Stellar account signer. Produces one vec of
    `{public_key, signature}` maps ordered by public key.
    """

    def __init__(self, *keypairs: Keypair, account: AccountID | None = None):
        if not keypairs:
            raise MalformedInput('AccountSigner requires a keypair.')
        if account is not None and not isinstance(account, AccountID):
            raise MalformedInput('Invalid account.')
        self.keypairs = keypairs
        self._account = account

    def __await__(self) -> Generator[object, object, AccountSigner]:
        return self.derive().__await__()

    async def derive(self) -> AccountSigner:
        await gather(*[kp.derive() for kp in self.keypairs])
        if self._account is None:
            self._account = AccountID.from_public_key(self.keypairs[0].public_key)
        return self

    @property
    def address(self) -> SCAddressAccount:
        if self._account is None:
            raise MalformedInput('AccountSigner is not derived.')
        return SCAddressAccount(self._account)

    async def sign(self, payload: bytes) -> list[SCVal]:
        await self
        signatures = await gather(*[kp.sign(payload) for kp in self.keypairs])
        pairs = sorted(
            zip([kp.public_key for kp in self.keypairs], signatures)
        )
        return [SCVVec([
            SCVMap([
                SCMapEntry(PUBLIC_KEY, SCVBytes(pk)),
                SCMapEntry(SIGNATURE, SCVBytes(sig)),
            ])
            for pk, sig in pairs
        ])]


class CustomAccountSigner(AbstractSigner):
    """
    Signer for a contract address; the payload format is defined by the
    account contract itself.
    """

    def __init__(self, contract_id: Hash, sign: CustomSign):
        if not isinstance(contract_id, Hash):
            raise MalformedInput('Invalid contract_id.')
        self._address = SCAddressContract(contract_id)
        self._sign = sign

    @property
    def address(self) -> SCAddressContract:
        return self._address

    async def sign(self, payload: bytes) -> list[SCVal]:
        return await self._sign(payload)


def _check_tree(tree: AuthorizedInvocation) -> None:
    if not isinstance(tree, AuthorizedInvocation):
        raise MalformedInput('Invalid invocation tree.')
    for _ in walk(tree):
        pass


async def payload(
    network_id: Hash, nonce: int, invocation: AuthorizedInvocation
) -> Hash:
    return await ContractAuthPreimage(network_id, nonce, invocation).hash()


async def build(
    address_with_nonce: AddressWithNonce | None,
    tree: AuthorizedInvocation,
    signer: AbstractSigner | None,
    network_id: Hash
) -> ContractAuth:
    """
    Authorize `tree`. Without an address the entry authorizes the invoker
    and carries no signature; otherwise `signer` signs the payload bound to
    the network, the nonce and the whole tree.
    """
    _check_tree(tree)
    if address_with_nonce is None:
        return ContractAuth(None, tree, [])
    if signer is None:
        raise MalformedInput('Address authorization requires a signer.')
    if isinstance(signer, AccountSigner):
        await signer
    if signer.address != address_with_nonce.address:
        raise MalformedInput('Signer does not match the authorizing address.')
    digest = await payload(network_id, address_with_nonce.nonce, tree)
    logger.debug('auth payload %s for %r', digest.value.hex(), address_with_nonce)
    signature_args = await signer.sign(digest.value)
    return ContractAuth(address_with_nonce, tree, signature_args)


class AuthBuilder(object):
    """
    Binds a network and a nonce tracker so entries can be built from a
    signer alone.
    """

    def __init__(self, network_id: Hash, tracker: NonceTracker | None = None):
        if not isinstance(network_id, Hash):
            raise MalformedInput('Invalid network_id.')
        self.network_id = network_id
        self.tracker = tracker

    async def build(self,
        address_with_nonce: AddressWithNonce | None,
        tree: AuthorizedInvocation,
        signer: AbstractSigner | None = None
    ) -> ContractAuth:
        return await build(address_with_nonce, tree, signer, self.network_id)

    async def authorize(self,
        tree: AuthorizedInvocation,
        signer: AbstractSigner | None = None
    ) -> ContractAuth:
        """
        Build an entry for `signer` using the tracker's next nonce, or an
        invoker entry when there is no signer.
        """
        if signer is None:
            return await self.build(None, tree)
        if self.tracker is None:
            raise MalformedInput('Authorizing an address requires a nonce tracker.')
        if isinstance(signer, AccountSigner):
            await signer
        nonce = self.tracker.next(signer.address, tree.contract_id)
        return await self.build(
            AddressWithNonce(signer.address, nonce), tree, signer
        )


def _account_signatures(signature_args: list[SCVal]) -> list[tuple[bytes, bytes]]:
    match signature_args:
        case [SCVVec(values=list() as values)] if values:
            pass
        case _:
            raise SignatureInvalid('Malformed account signature.')
    pairs: list[tuple[bytes, bytes]] = []
    for x in values:
        match x:
            case SCVMap(entries=[
                SCMapEntry(key=SCVSymbol(value='public_key'), val=SCVBytes() as pk),
                SCMapEntry(key=SCVSymbol(value='signature'), val=SCVBytes() as sig),
            ]) if len(pk.value) == 32 and len(sig.value) == 64:
                pairs.append((pk.value, sig.value))
            case _:
                raise SignatureInvalid('Malformed account signature.')
    for a, b in zip(pairs, pairs[1:]):
        if a[0] >= b[0]:
            raise SignatureInvalid('Account signatures are not ordered.')
    return pairs


class AuthVerifier(object):
    """
    Recomputes the signed payload of a `ContractAuth` and checks its
    signature arguments against the format of the authorizing address.
    """

    def __init__(self,
        network_id: Hash,
        tracker: NonceTracker | None = None,
        account_signers: dict[AccountID, list[bytes]] | None = None,
        custom_verifiers: dict[Hash, CustomVerify] | None = None
    ):
        if not isinstance(network_id, Hash):
            raise MalformedInput('Invalid network_id.')
        self.network_id = network_id
        self.tracker = tracker
        self.account_signers = account_signers or {}
        self.custom_verifiers = custom_verifiers or {}

    async def verify(self, auth: ContractAuth) -> None:
        await self._verify(auth, 0)

    async def verify_operation(self, op: InvokeHostFunctionOp) -> None:
        """
        Verify every entry of `op`. Entries of one address and contract
        consume consecutive nonces in order, so the k-th of them must carry
        the tracker's next nonce plus k.
        """
        check_conflicts(op)
        pending: dict[tuple[SCAddress, Hash], int] = {}
        for auth in op.auth:
            n = 0
            if auth.address_with_nonce is not None:
                key = (
                    auth.address_with_nonce.address,
                    auth.root_invocation.contract_id
                )
                n = pending.get(key, 0)
                pending[key] = n + 1
            await self._verify(auth, n)

    async def _verify(self, auth: ContractAuth, pending: int) -> None:
        if not isinstance(auth, ContractAuth):
            raise MalformedInput('Invalid auth.')
        _check_tree(auth.root_invocation)
        if auth.address_with_nonce is None:
            if auth.signature_args:
                raise MalformedInput('Invoker authorization carries no signature.')
            return
        address = auth.address_with_nonce.address
        nonce = auth.address_with_nonce.nonce
        if self.tracker is not None:
            self.tracker.check(
                address, auth.root_invocation.contract_id, nonce, pending
            )
        digest = await payload(self.network_id, nonce, auth.root_invocation)
        match address:
            case SCAddressAccount():
                await self._verify_account(
                    address.account_id, digest.value, auth.signature_args
                )
            case SCAddressContract():
                await self._verify_custom(
                    address.contract_id, digest.value, auth.signature_args
                )
            case _:
                raise UnsupportedAddressKind('Unknown address kind.')

    async def _verify_account(self,
        account: AccountID, digest: bytes, signature_args: list[SCVal]
    ) -> None:
        pairs = _account_signatures(signature_args)
        allowed = {account.key.value, *self.account_signers.get(account, [])}
        for pk, _ in pairs:
            if pk not in allowed:
                logger.warning('key %s is not a signer of %r', pk.hex(), account)
                raise SignatureInvalid('Key is not a signer of the account.')
        results = await gather(*[verify(pk, sig, digest) for pk, sig in pairs])
        if not all(results):
            logger.warning('rejected account signature for %r', account)
            raise SignatureInvalid('Account signature does not verify.')

    async def _verify_custom(self,
        contract_id: Hash, digest: bytes, signature_args: list[SCVal]
    ) -> None:
        verifier = self.custom_verifiers.get(contract_id)
        if verifier is None:
            raise UnsupportedAddressKind(
                f'No verifier for contract account {contract_id.value.hex()}.'
            )
        if not await verifier(digest, signature_args):
            logger.warning(
                'rejected custom account signature for %s', contract_id.value.hex()
            )
            raise SignatureInvalid('Custom account signature does not verify.')
