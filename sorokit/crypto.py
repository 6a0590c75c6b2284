
from __future__ import annotations
from typing import Generator
from secrets import token_bytes as rand
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey
)

import asyncio
import hashlib


def _keypair(seed: bytes) -> bytes:
    if len(seed) != 32:
        raise ValueError('seed must be 32 bytes.')
    key = Ed25519PrivateKey.from_private_bytes(seed).public_key()
    return seed + key.public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )


def _sign(keypair: bytes, msg: bytes) -> bytes:
    return Ed25519PrivateKey.from_private_bytes(keypair[:32]).sign(msg)


def _verify(key: bytes, signature: bytes, msg: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(key).verify(signature, msg)
    except (InvalidSignature, ValueError):
        return False
    return True


def _sha256(msg: bytes | bytearray | memoryview) -> bytes:
    return hashlib.sha256(msg).digest()


class Verifier(object):

    def __init__(self,
        key: bytes, loop: asyncio.AbstractEventLoop | None = None
    ):
        self.key = key
        self._loop = loop or asyncio.get_running_loop()

    async def verify(self, signature: bytes, msg: bytes) -> bool:
        return await self._loop.run_in_executor(
            None, _verify, self.key, signature, msg
        )


class Keypair(object):

    def __init__(self,
        seed: bytes | None = None,
        loop: asyncio.AbstractEventLoop | None = None
    ):
        self._seed = rand(32) if seed is None else seed
        self._keypair: bytes | None = None
        self._verifier: bytes | None = None
        self._loop = loop or asyncio.get_running_loop()

    def __await__(self) -> Generator[object, object, Keypair]:
        return self.derive().__await__()

    @property
    def public_key(self) -> bytes:
        if self._verifier is None:
            raise ValueError('Keypair is not derived.')
        return self._verifier

    async def derive(self) -> Keypair:
        if self._keypair is None:
            self._keypair = await self._loop.run_in_executor(
                None, _keypair, self._seed
            )
            self._verifier = self._keypair[32:]
        return self

    async def sign(self, msg: bytes) -> bytes:
        if self._keypair is None:
            await self
        return await self._loop.run_in_executor(
            None, _sign, self._keypair, msg
        )

    async def verifier(self) -> Verifier:
        if self._verifier is None:
            await self
        return Verifier(self._verifier, self._loop)


async def sha256(
    msg: bytes | bytearray | memoryview,
    loop: asyncio.AbstractEventLoop | None = None
) -> bytes:
    loop = loop or asyncio.get_running_loop()
    return await loop.run_in_executor(None, _sha256, msg)


async def verify(
    key: bytes,
    signature: bytes,
    msg: bytes,
    loop: asyncio.AbstractEventLoop | None = None
) -> bool:
    loop = loop or asyncio.get_running_loop()
    return await loop.run_in_executor(None, _verify, key, signature, msg)
