
from sorokit import auth, xdr
from sorokit.crypto import Keypair
from sorokit.errors import (
    MalformedInput, NonceConflict, NonceMismatch, SignatureInvalid,
    UnsupportedAddressKind
)
from sorokit.host import (
    AddressWithNonce, AuthorizedInvocation, ContractAuth, HostFunction,
    HostFunctionArgs, InvokeHostFunctionOp
)
from sorokit.network import Parameters, TESTNET_NETWORK_PASSPHRASE
from sorokit.nonce import NonceTracker
from sorokit.preimage import ContractAuthPreimage
from os import urandom

import pytest


def contract() -> xdr.Hash:
    return xdr.Hash(urandom(32))


def tree() -> AuthorizedInvocation:
    return AuthorizedInvocation(contract(), 'swap', [xdr.SCVI128(10)], [
        AuthorizedInvocation(contract(), 'transfer', [xdr.SCVI128(10)])
    ])


@pytest.mark.asyncio
async def test_invoker_auth():
    network_id = await Parameters().network_id()
    x = await auth.build(None, tree(), None, network_id)
    assert x.address_with_nonce is None
    assert x.signature_args == []
    await auth.AuthVerifier(network_id).verify(x)


@pytest.mark.asyncio
async def test_account_auth():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    x = await auth.build(AddressWithNonce(signer.address, 0), t, signer, network_id)
    assert x.root_invocation is t
    [vec] = x.signature_args
    [entry] = vec.values
    assert entry.get(auth.PUBLIC_KEY).value == signer.keypairs[0].public_key
    assert len(entry.get(auth.SIGNATURE).value) == 64
    # signature covers the preimage of network, nonce and tree
    payload = await ContractAuthPreimage(network_id, 0, t).hash()
    verifier = await signer.keypairs[0].verifier()
    assert await verifier.verify(entry.get(auth.SIGNATURE).value, payload.value)
    await auth.AuthVerifier(network_id).verify(x)
    decoded = ContractAuth.decode(x.encode())
    await auth.AuthVerifier(network_id).verify(decoded)


@pytest.mark.asyncio
async def test_multi_key_account():
    network_id = await Parameters().network_id()
    kp1, kp2, kp3 = await Keypair(), await Keypair(), await Keypair()
    account = xdr.AccountID.from_public_key(kp1.public_key)
    signer = await auth.AccountSigner(kp3, kp1, kp2, account=account)
    assert signer.address == xdr.SCAddressAccount(account)
    x = await auth.build(AddressWithNonce(signer.address, 4), tree(), signer, network_id)
    keys = [m.get(auth.PUBLIC_KEY).value for m in x.signature_args[0].values]
    assert keys == sorted([kp1.public_key, kp2.public_key, kp3.public_key])
    verifier = auth.AuthVerifier(network_id, account_signers={
        account: [kp2.public_key, kp3.public_key]
    })
    await verifier.verify(x)
    # keys not registered for the account are rejected
    with pytest.raises(SignatureInvalid):
        await auth.AuthVerifier(network_id).verify(x)


@pytest.mark.asyncio
async def test_account_signature_binding():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    x = await auth.build(AddressWithNonce(signer.address, 0), t, signer, network_id)
    verifier = auth.AuthVerifier(network_id)
    # tree changed after signing
    t.sub_invocations[0].args = [xdr.SCVI128(11)]
    with pytest.raises(SignatureInvalid):
        await verifier.verify(x)
    # nonce changed after signing
    x = await auth.build(AddressWithNonce(signer.address, 0), tree(), signer, network_id)
    y = ContractAuth(AddressWithNonce(signer.address, 1), x.root_invocation, x.signature_args)
    with pytest.raises(SignatureInvalid):
        await verifier.verify(y)
    # other network
    testnet = await Parameters(TESTNET_NETWORK_PASSPHRASE).network_id()
    with pytest.raises(SignatureInvalid):
        await auth.AuthVerifier(testnet).verify(x)
    # signature lifted onto another address
    other = await auth.AccountSigner(await Keypair())
    y = ContractAuth(AddressWithNonce(other.address, 0), x.root_invocation, x.signature_args)
    with pytest.raises(SignatureInvalid):
        await verifier.verify(y)


@pytest.mark.asyncio
async def test_malformed_account_signatures():
    network_id = await Parameters().network_id()
    kp1, kp2 = await Keypair(), await Keypair()
    signer = await auth.AccountSigner(kp1, kp2, account=xdr.AccountID.from_public_key(kp1.public_key))
    x = await auth.build(AddressWithNonce(signer.address, 0), tree(), signer, network_id)
    verifier = auth.AuthVerifier(network_id, account_signers={
        signer.address.account_id: [kp2.public_key]
    })
    await verifier.verify(x)
    entries = x.signature_args[0].values
    for signature_args in (
        [],
        [xdr.SCVVec([])],
        [xdr.SCVVec(None)],
        [xdr.SCVVec(entries), xdr.SCVVoid()],
        [xdr.SCVVec(list(reversed(entries)))],
        [xdr.SCVVec([entries[0], entries[0]])],
        [xdr.SCVVec([xdr.SCVMap(list(reversed(entries[0].entries)))])],
        [xdr.SCVVec([xdr.SCVMap(entries[0].entries[:1])])],
        [xdr.SCVVec([xdr.SCVMap([
            xdr.SCMapEntry(auth.PUBLIC_KEY, entries[0].entries[0].val),
            xdr.SCMapEntry(auth.SIGNATURE, xdr.SCVBytes(urandom(63))),
        ])])],
        [xdr.SCVMap(entries[0].entries)],
    ):
        y = ContractAuth(x.address_with_nonce, x.root_invocation, signature_args)
        with pytest.raises(SignatureInvalid):
            await verifier.verify(y)


@pytest.mark.asyncio
async def test_signer_address_mismatch():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    other = await auth.AccountSigner(await Keypair())
    with pytest.raises(MalformedInput):
        await auth.build(AddressWithNonce(other.address, 0), tree(), signer, network_id)
    with pytest.raises(MalformedInput):
        await auth.build(AddressWithNonce(other.address, 0), tree(), None, network_id)


@pytest.mark.asyncio
async def test_signer_failure_propagates():
    network_id = await Parameters().network_id()
    class Unavailable(Exception):
        pass
    async def sign(payload: bytes) -> list[xdr.SCVal]:
        raise Unavailable()
    signer = auth.CustomAccountSigner(contract(), sign)
    with pytest.raises(Unavailable):
        await auth.build(AddressWithNonce(signer.address, 0), tree(), signer, network_id)


@pytest.mark.asyncio
async def test_custom_account():
    network_id = await Parameters().network_id()
    owner = await Keypair()
    wallet = contract()
    async def sign(payload: bytes) -> list[xdr.SCVal]:
        return [xdr.SCVBytes(await owner.sign(payload))]
    async def check(payload: bytes, signature_args: list[xdr.SCVal]) -> bool:
        match signature_args:
            case [xdr.SCVBytes() as sig]:
                verifier = await owner.verifier()
                return await verifier.verify(sig.value, payload)
        return False
    signer = auth.CustomAccountSigner(wallet, sign)
    assert signer.address == xdr.SCAddressContract(wallet)
    x = await auth.build(AddressWithNonce(signer.address, 0), tree(), signer, network_id)
    verifier = auth.AuthVerifier(network_id, custom_verifiers={wallet: check})
    await verifier.verify(x)
    y = ContractAuth(x.address_with_nonce, x.root_invocation, [xdr.SCVBytes(urandom(64))])
    with pytest.raises(SignatureInvalid):
        await verifier.verify(y)
    with pytest.raises(UnsupportedAddressKind):
        await auth.AuthVerifier(network_id).verify(x)


@pytest.mark.asyncio
async def test_builder_authorize():
    network_id = await Parameters().network_id()
    tracker = NonceTracker()
    builder = auth.AuthBuilder(network_id, tracker)
    verifier = auth.AuthVerifier(network_id, tracker)
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    x = await builder.authorize(t, signer)
    assert x.address_with_nonce.nonce == 0
    await verifier.verify(x)
    tracker.observe(signer.address, t.contract_id, 0)
    # replay after consumption
    with pytest.raises(NonceMismatch):
        await verifier.verify(x)
    y = await builder.authorize(t, signer)
    assert y.address_with_nonce.nonce == 1
    await verifier.verify(y)
    z = await builder.authorize(t)
    assert z.address_with_nonce is None
    with pytest.raises(MalformedInput):
        await auth.AuthBuilder(network_id).authorize(t, signer)


@pytest.mark.asyncio
async def test_verify_operation():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    args = HostFunctionArgs([xdr.SCVBytes(t.contract_id.value), xdr.SCVSymbol('swap')])
    x = await auth.build(AddressWithNonce(signer.address, 0), t, signer, network_id)
    verifier = auth.AuthVerifier(network_id)
    await verifier.verify_operation(InvokeHostFunctionOp([HostFunction(args, [x])]))
    op = InvokeHostFunctionOp([HostFunction(args, [x, x])])
    with pytest.raises(NonceConflict):
        await verifier.verify_operation(op)


@pytest.mark.asyncio
async def test_verify_operation_consecutive_nonces():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    args = HostFunctionArgs([xdr.SCVBytes(t.contract_id.value), xdr.SCVSymbol('swap')])
    x0, x1, x2 = [
        await auth.build(AddressWithNonce(signer.address, n), t, signer, network_id)
        for n in range(3)
    ]
    tracker = NonceTracker()
    verifier = auth.AuthVerifier(network_id, tracker)
    await verifier.verify_operation(InvokeHostFunctionOp([
        HostFunction(args, [x0]), HostFunction(args, [x1])
    ]))
    await verifier.verify_operation(InvokeHostFunctionOp([
        HostFunction(args, [x0, x1, x2])
    ]))
    # entries of another contract keep their own sequence
    other = await auth.build(AddressWithNonce(signer.address, 0), tree(), signer, network_id)
    await verifier.verify_operation(InvokeHostFunctionOp([
        HostFunction(args, [x0, other, x1])
    ]))
    for entries in ([x0, x2], [x1, x0], [x1]):
        with pytest.raises(NonceMismatch):
            await verifier.verify_operation(
                InvokeHostFunctionOp([HostFunction(args, entries)])
            )
    tracker.observe(signer.address, t.contract_id, 0)
    await verifier.verify_operation(InvokeHostFunctionOp([
        HostFunction(args, [x1]), HostFunction(args, [x2])
    ]))


@pytest.mark.asyncio
async def test_cyclic_tree():
    network_id = await Parameters().network_id()
    signer = await auth.AccountSigner(await Keypair())
    t = tree()
    x = await auth.build(AddressWithNonce(signer.address, 0), t, signer, network_id)
    t.sub_invocations[0].sub_invocations.append(t)
    with pytest.raises(MalformedInput):
        await auth.build(AddressWithNonce(signer.address, 0), t, signer, network_id)
    with pytest.raises(MalformedInput):
        await auth.build(None, t, None, network_id)
    verifier = auth.AuthVerifier(network_id)
    with pytest.raises(MalformedInput):
        await verifier.verify(x)
    with pytest.raises(MalformedInput):
        await verifier.verify(ContractAuth(None, t))


@pytest.mark.asyncio
async def test_invalid_inputs():
    network_id = await Parameters().network_id()
    with pytest.raises(MalformedInput):
        auth.AccountSigner()
    with pytest.raises(MalformedInput):
        auth.CustomAccountSigner(urandom(32), None)
    with pytest.raises(MalformedInput):
        auth.AuthVerifier(network_id.value)
    with pytest.raises(MalformedInput):
        await auth.AuthVerifier(network_id).verify(tree())
    with pytest.raises(MalformedInput):
        auth.AccountSigner(Keypair()).address
