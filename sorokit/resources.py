
from __future__ import annotations
from typing import Callable, Iterable
from sorokit.contract_id import DerivationContext, derive_create
from sorokit.crypto import sha256
from sorokit.errors import FeeInsufficient, FootprintInsufficient, MalformedInput
from sorokit.host import (
    ContractAuth, CreateContractArgs, HostFunction, InvokeHostFunctionOp,
    SorobanResources, SorobanTransactionData, UploadContractWasmArgs
)
from sorokit.invocation import walk
from sorokit.nonce import ledger_key
from sorokit.xdr import (
    Hash, LedgerFootprint, LedgerKey, LedgerKeyContractCode,
    LedgerKeyContractData, SCContractCodeWasmRef, SCVBytes,
    SCVLedgerKeyContractExecutable
)

import logging


logger = logging.getLogger(__name__)


def executable_key(contract_id: Hash) -> LedgerKeyContractData:
    """
    Key of the entry holding the code reference of `contract_id`.
    """
    return LedgerKeyContractData(contract_id, SCVLedgerKeyContractExecutable())


def _sorted(keys: Iterable[LedgerKey]) -> list[LedgerKey]:
    return sorted(set(keys), key=lambda x: x.encode())


def _footprint(
    read_only: Iterable[LedgerKey], read_write: Iterable[LedgerKey]
) -> LedgerFootprint:
    read_write = set(read_write)
    return LedgerFootprint(
        _sorted(x for x in read_only if x not in read_write),
        _sorted(read_write)
    )


def _invoked_contract(args: list) -> Hash:
    match args:
        case [SCVBytes(value=bytes() as value), *_] if len(value) == Hash.SIZE:
            return Hash(value)
        case _:
            raise MalformedInput('Invocation does not start with a contract id.')


async def build_footprint(
    functions: list[HostFunction] | InvokeHostFunctionOp,
    auth: Iterable[ContractAuth] = (),
    context: DerivationContext | None = None
) -> LedgerFootprint:
    """
    Compute the ledger keys the operation will touch.

    Every invoked contract and every contract named in an authorization
    tree is read for its executable; every authorizing address writes its
    nonce at the root contract of its tree. Creating a contract writes the
    new contract's executable and reads the referenced code; uploading
    writes the code entry. `context` is required to derive created ids.
    """
    if isinstance(functions, InvokeHostFunctionOp):
        functions = functions.functions
    read_only: set[LedgerKey] = set()
    read_write: set[LedgerKey] = set()
    entries = list(auth)
    for function in functions:
        if not isinstance(function, HostFunction):
            raise MalformedInput('Invalid host function.')
        entries.extend(function.auth)
        match function.args.value:
            case list() as args:
                read_only.add(executable_key(_invoked_contract(args)))
            case CreateContractArgs() as args:
                if context is None:
                    raise MalformedInput('Creating a contract requires a derivation context.')
                contract_id = await derive_create(args, context)
                read_write.add(executable_key(contract_id))
                if isinstance(args.source, SCContractCodeWasmRef):
                    read_only.add(LedgerKeyContractCode(args.source.hash))
            case UploadContractWasmArgs() as args:
                code_hash = Hash(await sha256(args.code))
                read_write.add(LedgerKeyContractCode(code_hash))
    for x in entries:
        if not isinstance(x, ContractAuth):
            raise MalformedInput('Invalid auth.')
        for node in walk(x.root_invocation):
            read_only.add(executable_key(node.contract_id))
        if x.address_with_nonce is not None:
            read_write.add(ledger_key(
                x.address_with_nonce.address, x.root_invocation.contract_id
            ))
    footprint = _footprint(read_only, read_write)
    logger.debug(
        'computed footprint with %d read-only and %d read-write keys',
        len(footprint.read_only), len(footprint.read_write)
    )
    return footprint


def validate(
    data: SorobanTransactionData,
    computed: LedgerFootprint,
    minimum_fee_for: Callable[[int], int]
) -> None:
    """
    Check declared resources against a computed footprint. Read-write keys
    satisfy read-only requirements; the converse does not hold.
    """
    if not isinstance(data, SorobanTransactionData):
        raise MalformedInput('Invalid transaction data.')
    declared = data.resources.footprint
    writable = set(declared.read_write)
    readable = set(declared.read_only) | writable
    missing_read_only = [x for x in computed.read_only if x not in readable]
    missing_read_write = [x for x in computed.read_write if x not in writable]
    if missing_read_only or missing_read_write:
        logger.warning(
            'declared footprint is missing %d read-only and %d read-write keys',
            len(missing_read_only), len(missing_read_write)
        )
        raise FootprintInsufficient(missing_read_only, missing_read_write)
    minimum_fee = minimum_fee_for(data.resources.extended_meta_data_size_bytes)
    if data.refundable_fee < minimum_fee:
        raise FeeInsufficient(data.refundable_fee, minimum_fee)


def augment(
    suggested: SorobanTransactionData, computed: LedgerFootprint
) -> SorobanTransactionData:
    """
    Merge a preflight suggestion with the computed footprint. Keys from
    either side are kept, and a key written by either side is read-write.
    """
    footprint = suggested.resources.footprint
    resources = suggested.resources
    return SorobanTransactionData(
        SorobanResources(
            _footprint(
                [*footprint.read_only, *computed.read_only],
                [*footprint.read_write, *computed.read_write]
            ),
            resources.instructions,
            resources.read_bytes,
            resources.write_bytes,
            resources.extended_meta_data_size_bytes
        ),
        suggested.refundable_fee,
        suggested.ext
    )


def linear_fee(fee_per_kb: int) -> Callable[[int], int]:
    """
    Fee formula charging `fee_per_kb` per kilobyte of metadata, rounded up.
    """
    if fee_per_kb < 0:
        raise MalformedInput('Invalid fee_per_kb.')
    def minimum_fee_for(size: int) -> int:
        return (size * fee_per_kb + 1023) // 1024
    return minimum_fee_for
