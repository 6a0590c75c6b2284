
from os import urandom
from sorokit import crypto
import hashlib
import pytest


def test_sign_happy_case():
    seed = urandom(32)
    kp = crypto._keypair(seed)
    sk, pk = kp[:32], kp[32:]
    assert seed == sk
    assert len(pk) == 32
    msg = urandom(32)
    sig = crypto._sign(kp, msg)
    assert len(sig) == 64
    assert crypto._verify(pk, sig, msg)


def test_keypair_bad_seed():
    with pytest.raises(ValueError):
        crypto._keypair(urandom(31))


@pytest.mark.asyncio
async def test_sign_happy_case_async():
    kp = await crypto.Keypair()
    hash = urandom(32)
    sig = await kp.sign(hash)
    verifier = await kp.verifier()
    assert await verifier.verify(sig, hash)
    assert await crypto.verify(kp.public_key, sig, hash)


@pytest.mark.asyncio
async def test_keypair_from_seed():
    seed = urandom(32)
    kp1 = await crypto.Keypair(seed)
    kp2 = await crypto.Keypair(seed)
    assert kp1.public_key == kp2.public_key
    msg = urandom(32)
    assert await kp1.sign(msg) == await kp2.sign(msg)


@pytest.mark.asyncio
async def test_public_key_requires_derive():
    kp = crypto.Keypair()
    with pytest.raises(ValueError):
        kp.public_key
    await kp
    assert len(kp.public_key) == 32


def test_sign_bad_pkey():
    xA = crypto._keypair(urandom(32))
    yQ = crypto._keypair(urandom(32))
    msg = urandom(32)
    sig = crypto._sign(xA, msg)
    assert not crypto._verify(yQ[32:], sig, msg)


@pytest.mark.asyncio
async def test_sign_bad_pkey_async():
    kp1 = await crypto.Keypair()
    kp2 = await crypto.Keypair()
    hash = urandom(32)
    sig = await kp1.sign(hash)
    verifier1 = await kp1.verifier()
    verifier2 = await kp2.verifier()
    assert await verifier1.verify(sig, hash)
    assert not await verifier2.verify(sig, hash)


@pytest.mark.asyncio
async def test_sign_bad_msg_async():
    kp = await crypto.Keypair()
    hash = urandom(32)
    sig = await kp.sign(hash)
    verifier = await kp.verifier()
    assert not await verifier.verify(sig, urandom(32))


@pytest.mark.asyncio
async def test_sign_bad_sig_async():
    kp = await crypto.Keypair()
    hash = urandom(32)
    verifier = await kp.verifier()
    assert not await verifier.verify(urandom(64), hash)
    assert not await verifier.verify(urandom(63), hash)


def test_verify_bad_key_length():
    assert not crypto._verify(urandom(31), urandom(64), urandom(32))


@pytest.mark.asyncio
async def test_sha256():
    for x in (b'', urandom(32), urandom(256)):
        assert await crypto.sha256(x) == hashlib.sha256(x).digest()
