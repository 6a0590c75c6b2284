
from __future__ import annotations
from struct import pack, unpack_from, error as StructError
from sorokit.errors import MalformedInput, LimitExceeded

import re


MAX_OPS_PER_TX = 100
SCVAL_LIMIT = 256_000
SCSYMBOL_LIMIT = 32
SIGNATURE_LIMIT = 64

# Nesting levels accepted when decoding SCVal containers and invocation trees.
DEPTH_LIMIT = 100

_SYMBOL_RE = re.compile(r"[A-Za-z0-9_]*")


def _pad(n: int) -> int:
    return (4 - (n & 3)) & 3


def _peek_type(view: bytes | bytearray | memoryview) -> int:
    try:
        return unpack_from('>i', view, 0)[0]
    except StructError:
        raise MalformedInput('Invalid view size.')


def _check_type(view: bytes | bytearray | memoryview, expected: int) -> None:
    if _peek_type(view) != expected:
        raise MalformedInput('Invalid discriminant.')


def _encode_opaque(value: bytes | bytearray | memoryview, limit: int) -> bytes:
    n = len(value)
    if n > limit:
        raise LimitExceeded(f'Opaque length {n} exceeds limit {limit}.')
    return b''.join([pack('>I', n), bytes(value), bytes(_pad(n))])


def _decode_opaque(view: bytes | bytearray | memoryview, limit: int) -> bytes:
    try:
        n = unpack_from('>I', view, 0)[0]
    except StructError:
        raise MalformedInput('Invalid view size.')
    if n > limit:
        raise LimitExceeded(f'Opaque length {n} exceeds limit {limit}.')
    end = 4 + n
    pad = _pad(n)
    if len(view) < end + pad:
        raise MalformedInput('Invalid view size.')
    if any(view[end:end + pad]):
        raise MalformedInput('Invalid padding.')
    return bytes(view[4:end])


def _opaque_size(n: int) -> int:
    return 4 + n + _pad(n)


def _encode_symbol(value: str) -> bytes:
    if not isinstance(value, str) or not _SYMBOL_RE.fullmatch(value):
        raise MalformedInput('Invalid symbol.')
    return _encode_opaque(value.encode('ascii'), SCSYMBOL_LIMIT)


def _decode_symbol(view: bytes | bytearray | memoryview) -> str:
    value = _decode_opaque(view, SCSYMBOL_LIMIT).decode('ascii', 'replace')
    if not _SYMBOL_RE.fullmatch(value):
        raise MalformedInput('Invalid symbol.')
    return value


def _encode_array(items: list[AbstractElement], limit: int | None = None) -> bytes:
    if limit is not None and len(items) > limit:
        raise LimitExceeded(f'Array length {len(items)} exceeds limit {limit}.')
    return b''.join([pack('>I', len(items))] + [x.encode() for x in items])


def _decode_array(
    decoder, view: bytes | bytearray | memoryview, limit: int | None = None
) -> tuple[list, int]:
    view = memoryview(view)
    try:
        n = unpack_from('>I', view, 0)[0]
    except StructError:
        raise MalformedInput('Invalid view size.')
    if limit is not None and n > limit:
        raise LimitExceeded(f'Array length {n} exceeds limit {limit}.')
    # Every element is at least one XDR unit wide.
    if n > (len(view) - 4) >> 2:
        raise MalformedInput('Invalid view size.')
    items = []
    offset = 4
    for _ in range(n):
        x = decoder(view[offset:])
        items.append(x)
        offset += x.size
    return items, offset


def _encode_optional(x: AbstractElement | None) -> bytes:
    if x is None:
        return pack('>I', 0)
    return pack('>I', 1) + x.encode()


def _decode_flag(view: bytes | bytearray | memoryview, offset: int = 0) -> bool:
    try:
        flag = unpack_from('>I', view, offset)[0]
    except StructError:
        raise MalformedInput('Invalid view size.')
    if flag > 1:
        raise MalformedInput('Invalid boolean.')
    return bool(flag)


class AbstractElement(object):

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Overriding __eq__ drops the inherited __hash__.
        if cls.__hash__ is None:
            cls.__hash__ = AbstractElement.__hash__

    def __eq__(self, value: AbstractElement) -> bool:
        return type(value) is type(self)

    def __ne__(self, value: AbstractElement) -> bool:
        return not self.__eq__(value)

    def __hash__(self) -> int:
        return hash(self.encode())

    @property
    def size(self) -> int:
        return len(self.encode())

    def encode(self) -> bytes:
        raise NotImplementedError()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> AbstractElement:
        raise NotImplementedError()

    @classmethod
    def from_xdr(cls, data: bytes | bytearray | memoryview) -> AbstractElement:
        """
        Decode `data` as exactly one element, rejecting trailing bytes.
        """
        x = cls.decode(data)
        if x.size != len(data):
            raise MalformedInput('Trailing bytes after element.')
        return x


class Bytes(AbstractElement):

    def __init__(self,
        value: bytes | bytearray | memoryview,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise MalformedInput('Invalid value type.')
            if len(value) != self.SIZE:
                raise MalformedInput('Invalid value size.')
        self.value = value if isinstance(value, bytes) else bytes(value)

    def __eq__(self, value: Bytes) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.value.hex()})'

    @property
    def size(self) -> int:
        return self.SIZE

    def encode(self) -> bytes:
        return self.value

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> Bytes:
        if len(view) < cls.SIZE:
            raise MalformedInput('Invalid size when decoding.')
        return cls(bytes(view[:cls.SIZE]), _validate=False)


class Hash(Bytes):

    SIZE = 32


class Uint256(Bytes):

    SIZE = 32


class AssetCode4(Bytes):

    SIZE = 4


class AssetCode12(Bytes):

    SIZE = 12


class Signature(AbstractElement):

    LIMIT = SIGNATURE_LIMIT

    def __init__(self,
        value: bytes | bytearray | memoryview,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise MalformedInput('Invalid value type.')
            if len(value) > self.LIMIT:
                raise LimitExceeded('Signature is too long.')
        self.value = value if isinstance(value, bytes) else bytes(value)

    def __eq__(self, value: Signature) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    @property
    def size(self) -> int:
        return _opaque_size(len(self.value))

    def encode(self) -> bytes:
        return _encode_opaque(self.value, self.LIMIT)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> Signature:
        return cls(_decode_opaque(view, cls.LIMIT), _validate=False)


class AccountID(AbstractElement):

    PUBLIC_KEY_TYPE_ED25519 = 0
    SIZE = 36

    def __init__(self, key: Uint256, _validate: bool = True):
        if _validate:
            if not isinstance(key, Uint256):
                raise MalformedInput('Invalid account key.')
        self.key = key

    def __eq__(self, value: AccountID) -> bool:
        return (
            super().__eq__(value)
            and self.key == value.key
        )

    def __repr__(self) -> str:
        return f'AccountID({self.key.value.hex()})'

    @classmethod
    def from_public_key(cls, key: bytes) -> AccountID:
        return cls(Uint256(key))

    @property
    def size(self) -> int:
        return self.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.PUBLIC_KEY_TYPE_ED25519) + self.key.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> AccountID:
        _check_type(view, cls.PUBLIC_KEY_TYPE_ED25519)
        return cls(Uint256.decode(view[4:]), _validate=False)


class SCAddress(AbstractElement):

    SC_ADDRESS_TYPE_ACCOUNT = 0
    SC_ADDRESS_TYPE_CONTRACT = 1

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCAddress:
        match _peek_type(view):
            case cls.SC_ADDRESS_TYPE_ACCOUNT:
                return SCAddressAccount.decode(view)
            case cls.SC_ADDRESS_TYPE_CONTRACT:
                return SCAddressContract.decode(view)
            case _:
                raise MalformedInput('Invalid address type.')


class SCAddressAccount(SCAddress):

    def __init__(self, account_id: AccountID, _validate: bool = True):
        if _validate:
            if not isinstance(account_id, AccountID):
                raise MalformedInput('Invalid account_id.')
        self.account_id = account_id

    def __eq__(self, value: SCAddressAccount) -> bool:
        return (
            super().__eq__(value)
            and self.account_id == value.account_id
        )

    def __repr__(self) -> str:
        return f'SCAddressAccount({self.account_id.key.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + AccountID.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.SC_ADDRESS_TYPE_ACCOUNT) + self.account_id.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCAddressAccount:
        _check_type(view, cls.SC_ADDRESS_TYPE_ACCOUNT)
        return cls(AccountID.decode(view[4:]), _validate=False)


class SCAddressContract(SCAddress):

    def __init__(self, contract_id: Hash, _validate: bool = True):
        if _validate:
            if not isinstance(contract_id, Hash):
                raise MalformedInput('Invalid contract_id.')
        self.contract_id = contract_id

    def __eq__(self, value: SCAddressContract) -> bool:
        return (
            super().__eq__(value)
            and self.contract_id == value.contract_id
        )

    def __repr__(self) -> str:
        return f'SCAddressContract({self.contract_id.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + Hash.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.SC_ADDRESS_TYPE_CONTRACT) + self.contract_id.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCAddressContract:
        _check_type(view, cls.SC_ADDRESS_TYPE_CONTRACT)
        return cls(Hash.decode(view[4:]), _validate=False)


class Asset(AbstractElement):

    ASSET_TYPE_NATIVE = 0
    ASSET_TYPE_CREDIT_ALPHANUM4 = 1
    ASSET_TYPE_CREDIT_ALPHANUM12 = 2

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> Asset:
        match _peek_type(view):
            case cls.ASSET_TYPE_NATIVE:
                return AssetNative.decode(view)
            case cls.ASSET_TYPE_CREDIT_ALPHANUM4:
                return AssetAlphaNum4.decode(view)
            case cls.ASSET_TYPE_CREDIT_ALPHANUM12:
                return AssetAlphaNum12.decode(view)
            case _:
                raise MalformedInput('Invalid asset type.')


class AssetNative(Asset):

    @property
    def size(self) -> int:
        return 4

    def encode(self) -> bytes:
        return pack('>i', self.ASSET_TYPE_NATIVE)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> AssetNative:
        _check_type(view, cls.ASSET_TYPE_NATIVE)
        return cls()


class _AssetCredit(Asset):

    def __init__(self,
        code: AssetCode4 | AssetCode12,
        issuer: AccountID,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(code, self.CODE):
                raise MalformedInput('Invalid asset code.')
            if not any(code.value):
                raise MalformedInput('Empty asset code.')
            if not isinstance(issuer, AccountID):
                raise MalformedInput('Invalid issuer.')
        self.code = code
        self.issuer = issuer

    def __eq__(self, value: _AssetCredit) -> bool:
        return (
            super().__eq__(value)
            and self.code == value.code
            and self.issuer == value.issuer
        )

    def __repr__(self) -> str:
        code = self.code.value.rstrip(b'\x00').decode('ascii', 'replace')
        return f'{type(self).__name__}({code}:{self.issuer.key.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + self.CODE.SIZE + AccountID.SIZE

    def encode(self) -> bytes:
        return b''.join([
            pack('>i', self.TYPE), self.code.encode(), self.issuer.encode()
        ])

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> _AssetCredit:
        _check_type(view, cls.TYPE)
        code = cls.CODE.decode(view[4:])
        issuer = AccountID.decode(view[4 + code.size:])
        return cls(code, issuer, _validate=False)


class AssetAlphaNum4(_AssetCredit):

    TYPE = Asset.ASSET_TYPE_CREDIT_ALPHANUM4
    CODE = AssetCode4


class AssetAlphaNum12(_AssetCredit):

    TYPE = Asset.ASSET_TYPE_CREDIT_ALPHANUM12
    CODE = AssetCode12


def credit_asset(code: str, issuer: AccountID) -> AssetAlphaNum4 | AssetAlphaNum12:
    raw = code.encode('ascii')
    if not raw or len(raw) > 12:
        raise MalformedInput('Invalid asset code.')
    if len(raw) <= 4:
        return AssetAlphaNum4(AssetCode4(raw.ljust(4, b'\x00')), issuer)
    return AssetAlphaNum12(AssetCode12(raw.ljust(12, b'\x00')), issuer)


class SCContractCode(AbstractElement):

    SCCONTRACT_CODE_WASM_REF = 0
    SCCONTRACT_CODE_TOKEN = 1

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCContractCode:
        match _peek_type(view):
            case cls.SCCONTRACT_CODE_WASM_REF:
                return SCContractCodeWasmRef.decode(view)
            case cls.SCCONTRACT_CODE_TOKEN:
                return SCContractCodeToken.decode(view)
            case _:
                raise MalformedInput('Invalid contract code type.')


class SCContractCodeWasmRef(SCContractCode):

    def __init__(self, hash: Hash, _validate: bool = True):
        if _validate:
            if not isinstance(hash, Hash):
                raise MalformedInput('Invalid wasm hash.')
        self.hash = hash

    def __eq__(self, value: SCContractCodeWasmRef) -> bool:
        return (
            super().__eq__(value)
            and self.hash == value.hash
        )

    @property
    def size(self) -> int:
        return 4 + Hash.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.SCCONTRACT_CODE_WASM_REF) + self.hash.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCContractCodeWasmRef:
        _check_type(view, cls.SCCONTRACT_CODE_WASM_REF)
        return cls(Hash.decode(view[4:]), _validate=False)


class SCContractCodeToken(SCContractCode):

    @property
    def size(self) -> int:
        return 4

    def encode(self) -> bytes:
        return pack('>i', self.SCCONTRACT_CODE_TOKEN)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SCContractCodeToken:
        _check_type(view, cls.SCCONTRACT_CODE_TOKEN)
        return cls()


class SCVal(AbstractElement):

    SCV_BOOL = 0
    SCV_VOID = 1
    SCV_STATUS = 2
    SCV_U32 = 3
    SCV_I32 = 4
    SCV_U64 = 5
    SCV_I64 = 6
    SCV_TIMEPOINT = 7
    SCV_DURATION = 8
    SCV_U128 = 9
    SCV_I128 = 10
    SCV_U256 = 11
    SCV_I256 = 12
    SCV_BYTES = 13
    SCV_STRING = 14
    SCV_SYMBOL = 15
    SCV_VEC = 16
    SCV_MAP = 17
    SCV_CONTRACT_EXECUTABLE = 18
    SCV_ADDRESS = 19
    SCV_LEDGER_KEY_CONTRACT_EXECUTABLE = 20
    SCV_LEDGER_KEY_NONCE = 21

    TYPE: int

    def _encode_type(self) -> bytes:
        return pack('>i', self.TYPE)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVal:
        if depth > DEPTH_LIMIT:
            raise LimitExceeded(f'SCVal nesting exceeds limit {DEPTH_LIMIT}.')
        arm = _SCVAL_ARMS.get(_peek_type(view))
        if arm is None or (cls is not SCVal and arm is not cls):
            raise MalformedInput('Invalid SCVal type.')
        return arm._decode_arm(view, depth)

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVal:
        raise NotImplementedError()


class SCVBool(SCVal):

    TYPE = SCVal.SCV_BOOL

    def __init__(self, value: bool, _validate: bool = True):
        if _validate:
            if not isinstance(value, bool):
                raise MalformedInput('Invalid bool.')
        self.value = value

    def __eq__(self, value: SCVBool) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    @property
    def size(self) -> int:
        return 8

    def encode(self) -> bytes:
        return self._encode_type() + pack('>I', int(self.value))

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVBool:
        return cls(_decode_flag(view, 4), _validate=False)


class SCVVoid(SCVal):

    TYPE = SCVal.SCV_VOID

    @property
    def size(self) -> int:
        return 4

    def encode(self) -> bytes:
        return self._encode_type()

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVVoid:
        return cls()


class SCVStatus(SCVal):

    TYPE = SCVal.SCV_STATUS

    SST_OK = 0
    SST_MAX = 9     # SST_HOST_AUTH_ERROR

    def __init__(self, type: int, code: int | None = None, _validate: bool = True):
        if _validate:
            if not isinstance(type, int) or type < 0 or type > self.SST_MAX:
                raise MalformedInput('Invalid status type.')
            if type == self.SST_OK:
                if code is not None:
                    raise MalformedInput('SST_OK does not carry a code.')
            elif (
                not isinstance(code, int)
                or code < 0
                or code >= 0x1_0000_0000
            ):
                raise MalformedInput('Invalid status code.')
        self.type = type
        self.code = code

    def __eq__(self, value: SCVStatus) -> bool:
        return (
            super().__eq__(value)
            and self.type == value.type
            and self.code == value.code
        )

    @property
    def size(self) -> int:
        return 8 if self.code is None else 12

    def encode(self) -> bytes:
        if self.type == self.SST_OK:
            return self._encode_type() + pack('>i', self.type)
        return self._encode_type() + pack('>iI', self.type, self.code)

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVStatus:
        try:
            type = unpack_from('>i', view, 4)[0]
            if type < 0 or type > cls.SST_MAX:
                raise MalformedInput('Invalid status type.')
            if type == cls.SST_OK:
                return cls(type, None, _validate=False)
            return cls(type, unpack_from('>I', view, 8)[0], _validate=False)
        except StructError:
            raise MalformedInput('Invalid view size.')


class _SCVInt(SCVal):

    BYTES: int
    SIGNED: bool

    def __init__(self, value: int, _validate: bool = True):
        if _validate:
            if not isinstance(value, int) or isinstance(value, bool):
                raise MalformedInput('Invalid integer.')
            bits = self.BYTES << 3
            if self.SIGNED:
                lo, hi = -(1 << (bits - 1)), 1 << (bits - 1)
            else:
                lo, hi = 0, 1 << bits
            if value < lo or value >= hi:
                raise MalformedInput('Integer out of range.')
        self.value = value

    def __eq__(self, value: _SCVInt) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.value})'

    @property
    def size(self) -> int:
        return 4 + self.BYTES

    def encode(self) -> bytes:
        return self._encode_type() + self.value.to_bytes(
            self.BYTES, 'big', signed=self.SIGNED
        )

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> _SCVInt:
        if len(view) < 4 + cls.BYTES:
            raise MalformedInput('Invalid view size.')
        value = int.from_bytes(view[4:4 + cls.BYTES], 'big', signed=cls.SIGNED)
        return cls(value, _validate=False)


class SCVU32(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_U32, 4, False


class SCVI32(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_I32, 4, True


class SCVU64(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_U64, 8, False


class SCVI64(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_I64, 8, True


class SCVTimepoint(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_TIMEPOINT, 8, False


class SCVDuration(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_DURATION, 8, False


# 128/256-bit integers are hi/lo 64-bit parts on the wire, which is the
# same as one big-endian two's complement integer.

class SCVU128(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_U128, 16, False


class SCVI128(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_I128, 16, True


class SCVU256(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_U256, 32, False


class SCVI256(_SCVInt):
    TYPE, BYTES, SIGNED = SCVal.SCV_I256, 32, True


class SCVBytes(SCVal):

    TYPE = SCVal.SCV_BYTES

    def __init__(self, value: bytes | bytearray | memoryview, _validate: bool = True):
        if _validate:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise MalformedInput('Invalid bytes.')
            if len(value) > SCVAL_LIMIT:
                raise LimitExceeded('Bytes value is too long.')
        self.value = value if isinstance(value, bytes) else bytes(value)

    def __eq__(self, value: SCVBytes) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    def __repr__(self) -> str:
        return f'SCVBytes({self.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + _opaque_size(len(self.value))

    def encode(self) -> bytes:
        return self._encode_type() + _encode_opaque(self.value, SCVAL_LIMIT)

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVBytes:
        return cls(_decode_opaque(view[4:], SCVAL_LIMIT), _validate=False)


class SCVString(SCVal):

    TYPE = SCVal.SCV_STRING
    LIMIT = SCVAL_LIMIT

    def __init__(self, value: str, _validate: bool = True):
        if _validate:
            if not isinstance(value, str):
                raise MalformedInput('Invalid string.')
            if len(value.encode('utf-8')) > self.LIMIT:
                raise LimitExceeded('String value is too long.')
        self.value = value

    def __eq__(self, value: SCVString) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.value!r})'

    @property
    def size(self) -> int:
        return 4 + _opaque_size(len(self.value.encode('utf-8')))

    def encode(self) -> bytes:
        return self._encode_type() + _encode_opaque(
            self.value.encode('utf-8'), self.LIMIT
        )

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVString:
        raw = _decode_opaque(view[4:], cls.LIMIT)
        try:
            return cls(raw.decode('utf-8'), _validate=False)
        except UnicodeDecodeError:
            raise MalformedInput('Invalid utf-8 string.')


class SCVSymbol(SCVString):

    TYPE = SCVal.SCV_SYMBOL
    LIMIT = SCSYMBOL_LIMIT

    def __init__(self, value: str, _validate: bool = True):
        super().__init__(value, _validate=_validate)
        if _validate and not _SYMBOL_RE.fullmatch(value):
            raise MalformedInput('Invalid symbol character.')

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVSymbol:
        x = super()._decode_arm(view)
        if not _SYMBOL_RE.fullmatch(x.value):
            raise MalformedInput('Invalid symbol character.')
        return x


class SCVVec(SCVal):

    TYPE = SCVal.SCV_VEC

    def __init__(self, values: list[SCVal] | None, _validate: bool = True):
        if _validate and values is not None:
            if not all(isinstance(x, SCVal) for x in values):
                raise MalformedInput('Invalid vec element.')
            if len(values) > SCVAL_LIMIT:
                raise LimitExceeded('Vec is too long.')
        self.values = values

    def __eq__(self, value: SCVVec) -> bool:
        return (
            super().__eq__(value)
            and self.values == value.values
        )

    def __repr__(self) -> str:
        return f'SCVVec({self.values!r})'

    def encode(self) -> bytes:
        if self.values is None:
            return self._encode_type() + pack('>I', 0)
        return b''.join([
            self._encode_type(), pack('>I', 1),
            _encode_array(self.values, SCVAL_LIMIT)
        ])

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVVec:
        if not _decode_flag(view, 4):
            return cls(None, _validate=False)
        values, _ = _decode_array(
            lambda x: SCVal.decode(x, depth + 1), view[8:], SCVAL_LIMIT
        )
        return cls(values, _validate=False)


class SCMapEntry(AbstractElement):

    def __init__(self, key: SCVal, val: SCVal, _validate: bool = True):
        if _validate:
            if not isinstance(key, SCVal) or not isinstance(val, SCVal):
                raise MalformedInput('Invalid map entry.')
        self.key = key
        self.val = val

    def __eq__(self, value: SCMapEntry) -> bool:
        return (
            super().__eq__(value)
            and self.key == value.key
            and self.val == value.val
        )

    def __repr__(self) -> str:
        return f'SCMapEntry({self.key!r}, {self.val!r})'

    def encode(self) -> bytes:
        return self.key.encode() + self.val.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCMapEntry:
        key = SCVal.decode(view, depth)
        val = SCVal.decode(view[key.size:], depth)
        return cls(key, val, _validate=False)


class SCVMap(SCVal):

    TYPE = SCVal.SCV_MAP

    def __init__(self, entries: list[SCMapEntry] | None, _validate: bool = True):
        if _validate and entries is not None:
            if not all(isinstance(x, SCMapEntry) for x in entries):
                raise MalformedInput('Invalid map entry.')
            if len(entries) > SCVAL_LIMIT:
                raise LimitExceeded('Map is too long.')
        self.entries = entries

    def __eq__(self, value: SCVMap) -> bool:
        return (
            super().__eq__(value)
            and self.entries == value.entries
        )

    def __repr__(self) -> str:
        return f'SCVMap({self.entries!r})'

    def get(self, key: SCVal) -> SCVal | None:
        for entry in self.entries or []:
            if entry.key == key:
                return entry.val

    def encode(self) -> bytes:
        if self.entries is None:
            return self._encode_type() + pack('>I', 0)
        return b''.join([
            self._encode_type(), pack('>I', 1),
            _encode_array(self.entries, SCVAL_LIMIT)
        ])

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVMap:
        if not _decode_flag(view, 4):
            return cls(None, _validate=False)
        entries, _ = _decode_array(
            lambda x: SCMapEntry.decode(x, depth + 1), view[8:], SCVAL_LIMIT
        )
        return cls(entries, _validate=False)


class SCVContractExecutable(SCVal):

    TYPE = SCVal.SCV_CONTRACT_EXECUTABLE

    def __init__(self, executable: SCContractCode, _validate: bool = True):
        if _validate:
            if not isinstance(executable, SCContractCode):
                raise MalformedInput('Invalid contract executable.')
        self.executable = executable

    def __eq__(self, value: SCVContractExecutable) -> bool:
        return (
            super().__eq__(value)
            and self.executable == value.executable
        )

    @property
    def size(self) -> int:
        return 4 + self.executable.size

    def encode(self) -> bytes:
        return self._encode_type() + self.executable.encode()

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVContractExecutable:
        return cls(SCContractCode.decode(view[4:]), _validate=False)


class SCVAddress(SCVal):

    TYPE = SCVal.SCV_ADDRESS

    def __init__(self, address: SCAddress, _validate: bool = True):
        if _validate:
            if not isinstance(address, (SCAddressAccount, SCAddressContract)):
                raise MalformedInput('Invalid address.')
        self.address = address

    def __eq__(self, value: SCVAddress) -> bool:
        return (
            super().__eq__(value)
            and self.address == value.address
        )

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.address!r})'

    @property
    def size(self) -> int:
        return 4 + self.address.size

    def encode(self) -> bytes:
        return self._encode_type() + self.address.encode()

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVAddress:
        return cls(SCAddress.decode(view[4:]), _validate=False)


class SCVLedgerKeyContractExecutable(SCVal):

    TYPE = SCVal.SCV_LEDGER_KEY_CONTRACT_EXECUTABLE

    @property
    def size(self) -> int:
        return 4

    def encode(self) -> bytes:
        return self._encode_type()

    @classmethod
    def _decode_arm(cls, view: bytes | bytearray | memoryview, depth: int = 0) -> SCVLedgerKeyContractExecutable:
        return cls()


class SCVLedgerKeyNonce(SCVAddress):
    """
    Key of the nonce entry an address keeps in each contract it authorizes.
    """

    TYPE = SCVal.SCV_LEDGER_KEY_NONCE


_SCVAL_ARMS: dict[int, type[SCVal]] = {
    x.TYPE: x for x in (
        SCVBool, SCVVoid, SCVStatus, SCVU32, SCVI32, SCVU64, SCVI64,
        SCVTimepoint, SCVDuration, SCVU128, SCVI128, SCVU256, SCVI256,
        SCVBytes, SCVString, SCVSymbol, SCVVec, SCVMap,
        SCVContractExecutable, SCVAddress,
        SCVLedgerKeyContractExecutable, SCVLedgerKeyNonce,
    )
}


def encode_sc_vec(values: list[SCVal]) -> bytes:
    if not all(isinstance(x, SCVal) for x in values):
        raise MalformedInput('Invalid vec element.')
    return _encode_array(values, SCVAL_LIMIT)


def decode_sc_vec(
    view: bytes | bytearray | memoryview, depth: int = 0
) -> tuple[list[SCVal], int]:
    return _decode_array(lambda x: SCVal.decode(x, depth), view, SCVAL_LIMIT)


class LedgerKey(AbstractElement):

    ACCOUNT = 0
    TRUSTLINE = 1
    OFFER = 2
    DATA = 3
    CLAIMABLE_BALANCE = 4
    LIQUIDITY_POOL = 5
    CONTRACT_DATA = 6
    CONTRACT_CODE = 7
    CONFIG_SETTING = 8

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> LedgerKey:
        match _peek_type(view):
            case cls.ACCOUNT:
                return LedgerKeyAccount.decode(view)
            case cls.CONTRACT_DATA:
                return LedgerKeyContractData.decode(view)
            case cls.CONTRACT_CODE:
                return LedgerKeyContractCode.decode(view)
            case _:
                raise MalformedInput('Unsupported ledger key type.')


class LedgerKeyAccount(LedgerKey):

    def __init__(self, account_id: AccountID, _validate: bool = True):
        if _validate:
            if not isinstance(account_id, AccountID):
                raise MalformedInput('Invalid account_id.')
        self.account_id = account_id

    def __eq__(self, value: LedgerKeyAccount) -> bool:
        return (
            super().__eq__(value)
            and self.account_id == value.account_id
        )

    def __repr__(self) -> str:
        return f'LedgerKeyAccount({self.account_id.key.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + AccountID.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.ACCOUNT) + self.account_id.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> LedgerKeyAccount:
        _check_type(view, cls.ACCOUNT)
        return cls(AccountID.decode(view[4:]), _validate=False)


class LedgerKeyContractData(LedgerKey):

    def __init__(self, contract_id: Hash, key: SCVal, _validate: bool = True):
        if _validate:
            if not isinstance(contract_id, Hash):
                raise MalformedInput('Invalid contract_id.')
            if not isinstance(key, SCVal):
                raise MalformedInput('Invalid key.')
        self.contract_id = contract_id
        self.key = key

    def __eq__(self, value: LedgerKeyContractData) -> bool:
        return (
            super().__eq__(value)
            and self.contract_id == value.contract_id
            and self.key == value.key
        )

    def __repr__(self) -> str:
        return f'LedgerKeyContractData({self.contract_id.value.hex()}, {self.key!r})'

    @property
    def size(self) -> int:
        return 4 + Hash.SIZE + self.key.size

    def encode(self) -> bytes:
        return b''.join([
            pack('>i', self.CONTRACT_DATA),
            self.contract_id.encode(), self.key.encode()
        ])

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> LedgerKeyContractData:
        _check_type(view, cls.CONTRACT_DATA)
        contract_id = Hash.decode(view[4:])
        key = SCVal.decode(view[4 + Hash.SIZE:])
        return cls(contract_id, key, _validate=False)


class LedgerKeyContractCode(LedgerKey):

    def __init__(self, hash: Hash, _validate: bool = True):
        if _validate:
            if not isinstance(hash, Hash):
                raise MalformedInput('Invalid code hash.')
        self.hash = hash

    def __eq__(self, value: LedgerKeyContractCode) -> bool:
        return (
            super().__eq__(value)
            and self.hash == value.hash
        )

    def __repr__(self) -> str:
        return f'LedgerKeyContractCode({self.hash.value.hex()})'

    @property
    def size(self) -> int:
        return 4 + Hash.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.CONTRACT_CODE) + self.hash.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> LedgerKeyContractCode:
        _check_type(view, cls.CONTRACT_CODE)
        return cls(Hash.decode(view[4:]), _validate=False)


class LedgerFootprint(AbstractElement):

    def __init__(self,
        read_only: list[LedgerKey] | None = None,
        read_write: list[LedgerKey] | None = None,
        _validate: bool = True
    ):
        read_only = list(read_only or ())
        read_write = list(read_write or ())
        if _validate:
            for keys in (read_only, read_write):
                if not all(
                    isinstance(x, (
                        LedgerKeyAccount, LedgerKeyContractData,
                        LedgerKeyContractCode
                    ))
                    for x in keys
                ):
                    raise MalformedInput('Invalid ledger key.')
                if len(set(keys)) != len(keys):
                    raise MalformedInput('Duplicate ledger key.')
        self.read_only = read_only
        self.read_write = read_write

    def __eq__(self, value: LedgerFootprint) -> bool:
        return (
            super().__eq__(value)
            and self.read_only == value.read_only
            and self.read_write == value.read_write
        )

    def __repr__(self) -> str:
        return f'LedgerFootprint({self.read_only!r}, {self.read_write!r})'

    def encode(self) -> bytes:
        return _encode_array(self.read_only) + _encode_array(self.read_write)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> LedgerFootprint:
        read_only, offset = _decode_array(LedgerKey.decode, view)
        read_write, _ = _decode_array(LedgerKey.decode, memoryview(view)[offset:])
        return cls(read_only, read_write, _validate=False)
