
from __future__ import annotations
from sorokit.errors import MalformedInput, NonceConflict, NonceMismatch
from sorokit.host import ContractAuth, InvokeHostFunctionOp
from sorokit.xdr import (
    Hash, LedgerKeyContractData, SCAddress, SCAddressAccount,
    SCAddressContract, SCVLedgerKeyNonce
)

import logging


logger = logging.getLogger(__name__)


def ledger_key(address: SCAddress, contract_id: Hash) -> LedgerKeyContractData:
    """
    Key of the ledger entry holding the next nonce of `address` in
    `contract_id`.
    """
    return LedgerKeyContractData(contract_id, SCVLedgerKeyNonce(address))


class AbstractNonceStore(object):
    """
    Externally owned nonce state, keyed by nonce ledger key.
    """

    def get(self, key: LedgerKeyContractData) -> int | None:
        raise NotImplementedError()

    def put(self, key: LedgerKeyContractData, nonce: int) -> None:
        raise NotImplementedError()


class MemoryNonceStore(AbstractNonceStore):

    def __init__(self, entries: dict[LedgerKeyContractData, int] | None = None):
        self.entries = dict(entries or {})

    def get(self, key: LedgerKeyContractData) -> int | None:
        return self.entries.get(key)

    def put(self, key: LedgerKeyContractData, nonce: int) -> None:
        self.entries[key] = nonce


class NonceTracker(object):
    """
    Reads expected nonces from a store. The tracker never increments on
    its own; `observe` is the update the ledger applies once an
    authorization is consumed. Callers serialize `next`/`observe` per
    (address, contract) pair.
    """

    def __init__(self, store: AbstractNonceStore | None = None):
        self.store = store if store is not None else MemoryNonceStore()

    def next(self, address: SCAddress, contract_id: Hash) -> int:
        if not isinstance(address, (SCAddressAccount, SCAddressContract)):
            raise MalformedInput('Invalid address.')
        nonce = self.store.get(ledger_key(address, contract_id))
        return 0 if nonce is None else nonce

    def check(self,
        address: SCAddress, contract_id: Hash, nonce: int, pending: int = 0
    ) -> None:
        """
        `pending` counts earlier entries of the same operation that will
        consume nonces of this address and contract first.
        """
        expected = self.next(address, contract_id) + pending
        if nonce != expected:
            raise NonceMismatch(
                f'Nonce {nonce} does not match expected {expected}.'
            )

    def observe(self, address: SCAddress, contract_id: Hash, used_nonce: int) -> None:
        self.check(address, contract_id, used_nonce)
        self.store.put(ledger_key(address, contract_id), used_nonce + 1)
        logger.debug(
            'nonce %d consumed for %r in %s',
            used_nonce, address, contract_id.value.hex()
        )


def check_conflicts(auth: list[ContractAuth] | InvokeHostFunctionOp) -> None:
    """
    Reject two entries of one operation that authorize the same address in
    the same contract with the same nonce.
    """
    if isinstance(auth, InvokeHostFunctionOp):
        auth = auth.auth
    seen: set[tuple[SCAddress, Hash, int]] = set()
    for x in auth:
        if x.address_with_nonce is None:
            continue
        key = (
            x.address_with_nonce.address,
            x.root_invocation.contract_id,
            x.address_with_nonce.nonce
        )
        if key in seen:
            raise NonceConflict(
                f'Nonce {key[2]} used twice for {key[0]!r} '
                f'in {key[1].value.hex()}.'
            )
        seen.add(key)
