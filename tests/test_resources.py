
from sorokit import resources, xdr
from sorokit.contract_id import DerivationContext, derive
from sorokit.errors import FeeInsufficient, FootprintInsufficient, MalformedInput
from sorokit.host import (
    AddressWithNonce, AuthorizedInvocation, ContractAuth,
    ContractIDFromAsset, ContractIDFromSourceAccount, CreateContractArgs,
    HostFunction, HostFunctionArgs, InvokeHostFunctionOp, SorobanResources,
    SorobanTransactionData, UploadContractWasmArgs
)
from sorokit.network import Parameters
from sorokit.nonce import ledger_key
from os import urandom

import hashlib
import pytest


def contract() -> xdr.Hash:
    return xdr.Hash(urandom(32))


def account_address() -> xdr.SCAddressAccount:
    return xdr.SCAddressAccount(xdr.AccountID.from_public_key(urandom(32)))


def invoke(contract_id: xdr.Hash, fn: str, auth: list[ContractAuth] | None = None) -> HostFunction:
    return HostFunction(
        HostFunctionArgs([xdr.SCVBytes(contract_id.value), xdr.SCVSymbol(fn)]),
        auth
    )


def data(footprint: xdr.LedgerFootprint, fee: int = 0, meta: int = 0) -> SorobanTransactionData:
    return SorobanTransactionData(
        SorobanResources(footprint, 1_000_000, 4096, 4096, meta), fee
    )


def is_sorted(keys: list[xdr.LedgerKey]) -> bool:
    encoded = [x.encode() for x in keys]
    return encoded == sorted(encoded)


@pytest.mark.asyncio
async def test_invoke_footprint():
    c = contract()
    footprint = await resources.build_footprint([invoke(c, 'hello')])
    assert footprint.read_only == [resources.executable_key(c)]
    assert footprint.read_write == []
    assert footprint.read_only[0].key == xdr.SCVLedgerKeyContractExecutable()


@pytest.mark.asyncio
async def test_auth_footprint():
    root, child = contract(), contract()
    address = account_address()
    tree = AuthorizedInvocation(root, 'swap', [], [
        AuthorizedInvocation(child, 'transfer')
    ])
    entries = [
        ContractAuth(AddressWithNonce(address, 0), tree),
        ContractAuth(None, AuthorizedInvocation(root, 'swap')),
    ]
    op = InvokeHostFunctionOp([invoke(root, 'swap', entries)])
    footprint = await resources.build_footprint(op)
    assert set(footprint.read_only) == {
        resources.executable_key(root), resources.executable_key(child)
    }
    assert footprint.read_write == [ledger_key(address, root)]
    assert is_sorted(footprint.read_only)
    # entries passed separately are accounted the same way
    footprint2 = await resources.build_footprint([invoke(root, 'swap')], entries)
    assert footprint2 == footprint


@pytest.mark.asyncio
async def test_cyclic_tree_footprint():
    root, child = contract(), contract()
    tree = AuthorizedInvocation(root, 'swap', [], [AuthorizedInvocation(child, 'transfer')])
    tree.sub_invocations[0].sub_invocations.append(tree)
    entries = [ContractAuth(AddressWithNonce(account_address(), 0), tree)]
    with pytest.raises(MalformedInput):
        await resources.build_footprint([invoke(root, 'swap', entries)])
    with pytest.raises(MalformedInput):
        await resources.build_footprint([invoke(root, 'swap')], entries)
    # a node shared by two parents is rejected the same way
    shared = AuthorizedInvocation(child, 'transfer')
    tree = AuthorizedInvocation(root, 'swap', [], [shared, shared])
    with pytest.raises(MalformedInput):
        await resources.build_footprint([invoke(root, 'swap', [ContractAuth(None, tree)])])


@pytest.mark.asyncio
async def test_create_footprint():
    network_id = await Parameters().network_id()
    source = xdr.AccountID.from_public_key(urandom(32))
    context = DerivationContext(network_id, source)
    code = xdr.SCContractCodeWasmRef(contract())
    args = CreateContractArgs(ContractIDFromSourceAccount(xdr.Uint256(urandom(32))), code)
    functions = [HostFunction(HostFunctionArgs(args))]
    footprint = await resources.build_footprint(functions, context=context)
    created = await derive(args.contract_id, context, code)
    assert footprint.read_write == [resources.executable_key(created)]
    assert footprint.read_only == [xdr.LedgerKeyContractCode(code.hash)]
    with pytest.raises(MalformedInput):
        await resources.build_footprint(functions)


@pytest.mark.asyncio
async def test_create_token_footprint():
    network_id = await Parameters().network_id()
    context = DerivationContext(network_id)
    args = CreateContractArgs(
        ContractIDFromAsset(xdr.AssetNative()), xdr.SCContractCodeToken()
    )
    footprint = await resources.build_footprint(
        [HostFunction(HostFunctionArgs(args))], context=context
    )
    assert footprint.read_only == []
    assert len(footprint.read_write) == 1


@pytest.mark.asyncio
async def test_upload_then_create_footprint():
    network_id = await Parameters().network_id()
    context = DerivationContext(network_id, xdr.AccountID.from_public_key(urandom(32)))
    wasm = urandom(100)
    code_hash = xdr.Hash(hashlib.sha256(wasm).digest())
    args = CreateContractArgs(
        ContractIDFromSourceAccount(xdr.Uint256(urandom(32))),
        xdr.SCContractCodeWasmRef(code_hash)
    )
    footprint = await resources.build_footprint([
        HostFunction(HostFunctionArgs(UploadContractWasmArgs(wasm))),
        HostFunction(HostFunctionArgs(args)),
    ], context=context)
    code_key = xdr.LedgerKeyContractCode(code_hash)
    # written keys are not repeated as read-only
    assert code_key in footprint.read_write
    assert code_key not in footprint.read_only
    assert footprint.read_only == []
    assert len(footprint.read_write) == 2
    assert is_sorted(footprint.read_write)


@pytest.mark.asyncio
async def test_footprint_is_sorted_and_unique():
    contracts = [contract() for _ in range(8)]
    functions = [invoke(c, 'a') for c in contracts] + [invoke(contracts[0], 'b')]
    footprint = await resources.build_footprint(functions)
    assert len(footprint.read_only) == 8
    assert is_sorted(footprint.read_only)


@pytest.mark.asyncio
async def test_invoke_requires_contract_id():
    for args in (
        [],
        [xdr.SCVSymbol('hello')],
        [xdr.SCVBytes(urandom(31)), xdr.SCVSymbol('hello')],
    ):
        with pytest.raises(MalformedInput):
            await resources.build_footprint([HostFunction(HostFunctionArgs(args))])


@pytest.mark.asyncio
async def test_validate():
    address, root = account_address(), contract()
    tree = AuthorizedInvocation(root, 'swap')
    computed = await resources.build_footprint(
        [invoke(root, 'swap', [ContractAuth(AddressWithNonce(address, 0), tree)])]
    )
    fee_for = resources.linear_fee(1024)
    resources.validate(data(computed, 100, 100), computed, fee_for)
    # read-write satisfies read-only
    upgraded = xdr.LedgerFootprint([], computed.read_only + computed.read_write)
    resources.validate(data(upgraded, 100, 100), computed, fee_for)
    # read-only does not satisfy read-write
    downgraded = xdr.LedgerFootprint(computed.read_only + computed.read_write, [])
    with pytest.raises(FootprintInsufficient) as e:
        resources.validate(data(downgraded, 100, 100), computed, fee_for)
    assert e.value.missing_read_only == []
    assert e.value.missing_read_write == computed.read_write
    with pytest.raises(FootprintInsufficient) as e:
        resources.validate(data(xdr.LedgerFootprint(), 100, 100), computed, fee_for)
    assert e.value.missing_read_only == computed.read_only
    with pytest.raises(FeeInsufficient) as e:
        resources.validate(data(computed, 99, 100), computed, fee_for)
    assert e.value.minimum_fee == 100
    assert e.value.refundable_fee == 99
    with pytest.raises(MalformedInput):
        resources.validate(computed, computed, fee_for)


@pytest.mark.asyncio
async def test_augment():
    address, root = account_address(), contract()
    tree = AuthorizedInvocation(root, 'swap')
    computed = await resources.build_footprint(
        [invoke(root, 'swap', [ContractAuth(AddressWithNonce(address, 0), tree)])]
    )
    extra = xdr.LedgerKeyContractCode(contract())
    # preflight declared the nonce read-only and missed nothing else
    suggested = data(xdr.LedgerFootprint(
        [extra, *computed.read_write], computed.read_only
    ), 500, 200)
    with pytest.raises(FootprintInsufficient):
        resources.validate(suggested, computed, resources.linear_fee(0))
    merged = resources.augment(suggested, computed)
    assert extra in merged.resources.footprint.read_only
    assert computed.read_write[0] in merged.resources.footprint.read_write
    assert computed.read_write[0] not in merged.resources.footprint.read_only
    assert merged.refundable_fee == 500
    assert merged.resources.extended_meta_data_size_bytes == 200
    resources.validate(merged, computed, resources.linear_fee(0))


def test_linear_fee():
    fee_for = resources.linear_fee(10)
    assert fee_for(0) == 0
    assert fee_for(1) == 1
    assert fee_for(1024) == 10
    assert fee_for(1025) == 11
    with pytest.raises(MalformedInput):
        resources.linear_fee(-1)
