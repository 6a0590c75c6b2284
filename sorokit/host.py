
from __future__ import annotations
from struct import pack, unpack_from, error as StructError
from sorokit.errors import MalformedInput, LimitExceeded
from sorokit.xdr import (
    DEPTH_LIMIT, MAX_OPS_PER_TX, SCVAL_LIMIT,
    AbstractElement, Asset, AssetNative, AssetAlphaNum4,
    AssetAlphaNum12, Hash, LedgerFootprint, SCAddress, SCAddressAccount,
    SCAddressContract, SCContractCode, SCContractCodeToken,
    SCContractCodeWasmRef, SCVal, SCVSymbol, Signature, Uint256,
    _check_type, _decode_array, _decode_flag, _decode_opaque, _decode_symbol,
    _encode_array, _encode_opaque, _encode_optional, _encode_symbol,
    _opaque_size, _peek_type,
    decode_sc_vec, encode_sc_vec
)


class ContractID(AbstractElement):

    CONTRACT_ID_FROM_SOURCE_ACCOUNT = 0
    CONTRACT_ID_FROM_ED25519_PUBLIC_KEY = 1
    CONTRACT_ID_FROM_ASSET = 2

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> ContractID:
        match _peek_type(view):
            case cls.CONTRACT_ID_FROM_SOURCE_ACCOUNT:
                return ContractIDFromSourceAccount.decode(view)
            case cls.CONTRACT_ID_FROM_ED25519_PUBLIC_KEY:
                return ContractIDFromEd25519PublicKey.decode(view)
            case cls.CONTRACT_ID_FROM_ASSET:
                return ContractIDFromAsset.decode(view)
            case _:
                raise MalformedInput('Invalid contract id type.')


class ContractIDFromSourceAccount(ContractID):

    def __init__(self, salt: Uint256, _validate: bool = True):
        if _validate:
            if not isinstance(salt, Uint256):
                raise MalformedInput('Invalid salt.')
        self.salt = salt

    def __eq__(self, value: ContractIDFromSourceAccount) -> bool:
        return (
            super().__eq__(value)
            and self.salt == value.salt
        )

    @property
    def size(self) -> int:
        return 4 + Uint256.SIZE

    def encode(self) -> bytes:
        return pack('>i', self.CONTRACT_ID_FROM_SOURCE_ACCOUNT) + self.salt.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> ContractIDFromSourceAccount:
        _check_type(view, cls.CONTRACT_ID_FROM_SOURCE_ACCOUNT)
        return cls(Uint256.decode(view[4:]), _validate=False)


class ContractIDFromEd25519PublicKey(ContractID):
    """
    Self-authorizing scheme: `signature` proves control of `key` without an
    on-chain account.
    """

    def __init__(self,
        key: Uint256, signature: Signature, salt: Uint256,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(key, Uint256):
                raise MalformedInput('Invalid key.')
            if not isinstance(signature, Signature):
                raise MalformedInput('Invalid signature.')
            if not isinstance(salt, Uint256):
                raise MalformedInput('Invalid salt.')
        self.key = key
        self.signature = signature
        self.salt = salt

    def __eq__(self, value: ContractIDFromEd25519PublicKey) -> bool:
        return (
            super().__eq__(value)
            and self.key == value.key
            and self.signature == value.signature
            and self.salt == value.salt
        )

    @property
    def size(self) -> int:
        return 4 + Uint256.SIZE + self.signature.size + Uint256.SIZE

    def encode(self) -> bytes:
        return b''.join([
            pack('>i', self.CONTRACT_ID_FROM_ED25519_PUBLIC_KEY),
            self.key.encode(), self.signature.encode(), self.salt.encode()
        ])

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> ContractIDFromEd25519PublicKey:
        _check_type(view, cls.CONTRACT_ID_FROM_ED25519_PUBLIC_KEY)
        key = Uint256.decode(view[4:])
        offset = 4 + key.size
        signature = Signature.decode(view[offset:])
        offset += signature.size
        salt = Uint256.decode(view[offset:])
        return cls(key, signature, salt, _validate=False)


class ContractIDFromAsset(ContractID):

    def __init__(self, asset: Asset, _validate: bool = True):
        if _validate:
            if not isinstance(asset, (AssetNative, AssetAlphaNum4, AssetAlphaNum12)):
                raise MalformedInput('Invalid asset.')
        self.asset = asset

    def __eq__(self, value: ContractIDFromAsset) -> bool:
        return (
            super().__eq__(value)
            and self.asset == value.asset
        )

    @property
    def size(self) -> int:
        return 4 + self.asset.size

    def encode(self) -> bytes:
        return pack('>i', self.CONTRACT_ID_FROM_ASSET) + self.asset.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> ContractIDFromAsset:
        _check_type(view, cls.CONTRACT_ID_FROM_ASSET)
        return cls(Asset.decode(view[4:]), _validate=False)


class CreateContractArgs(AbstractElement):

    def __init__(self,
        contract_id: ContractID, source: SCContractCode,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(contract_id, (
                ContractIDFromSourceAccount, ContractIDFromEd25519PublicKey,
                ContractIDFromAsset
            )):
                raise MalformedInput('Invalid contract_id.')
            if not isinstance(source, (SCContractCodeWasmRef, SCContractCodeToken)):
                raise MalformedInput('Invalid source.')
        self.contract_id = contract_id
        self.source = source

    def __eq__(self, value: CreateContractArgs) -> bool:
        return (
            super().__eq__(value)
            and self.contract_id == value.contract_id
            and self.source == value.source
        )

    @property
    def size(self) -> int:
        return self.contract_id.size + self.source.size

    def encode(self) -> bytes:
        return self.contract_id.encode() + self.source.encode()

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> CreateContractArgs:
        contract_id = ContractID.decode(view)
        source = SCContractCode.decode(view[contract_id.size:])
        return cls(contract_id, source, _validate=False)


class UploadContractWasmArgs(AbstractElement):

    def __init__(self, code: bytes | bytearray | memoryview, _validate: bool = True):
        if _validate:
            if not isinstance(code, (bytes, bytearray, memoryview)):
                raise MalformedInput('Invalid code.')
            if len(code) > SCVAL_LIMIT:
                raise LimitExceeded('Contract code is too large.')
        self.code = code if isinstance(code, bytes) else bytes(code)

    def __eq__(self, value: UploadContractWasmArgs) -> bool:
        return (
            super().__eq__(value)
            and self.code == value.code
        )

    @property
    def size(self) -> int:
        return _opaque_size(len(self.code))

    def encode(self) -> bytes:
        return _encode_opaque(self.code, SCVAL_LIMIT)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> UploadContractWasmArgs:
        return cls(_decode_opaque(view, SCVAL_LIMIT), _validate=False)


class HostFunctionArgs(AbstractElement):
    """
    Union over the three host functions. `value` is the list of invocation
    arguments (contract id bytes, function symbol, call arguments), a
    `CreateContractArgs`, or an `UploadContractWasmArgs`.
    """

    HOST_FUNCTION_TYPE_INVOKE_CONTRACT = 0
    HOST_FUNCTION_TYPE_CREATE_CONTRACT = 1
    HOST_FUNCTION_TYPE_UPLOAD_CONTRACT_WASM = 2

    def __init__(self,
        value: list[SCVal] | CreateContractArgs | UploadContractWasmArgs,
        _validate: bool = True
    ):
        if _validate:
            match value:
                case list():
                    if not all(isinstance(x, SCVal) for x in value):
                        raise MalformedInput('Invalid invocation argument.')
                    if len(value) > SCVAL_LIMIT:
                        raise LimitExceeded('Too many invocation arguments.')
                case CreateContractArgs() | UploadContractWasmArgs():
                    pass
                case _:
                    raise MalformedInput('Invalid host function args.')
        self.value = value

    def __eq__(self, value: HostFunctionArgs) -> bool:
        return (
            super().__eq__(value)
            and self.value == value.value
        )

    def __repr__(self) -> str:
        return f'HostFunctionArgs({self.value!r})'

    @property
    def type(self) -> int:
        match self.value:
            case list():
                return self.HOST_FUNCTION_TYPE_INVOKE_CONTRACT
            case CreateContractArgs():
                return self.HOST_FUNCTION_TYPE_CREATE_CONTRACT
            case UploadContractWasmArgs():
                return self.HOST_FUNCTION_TYPE_UPLOAD_CONTRACT_WASM
            case _:
                raise MalformedInput('Invalid host function args.')

    def encode(self) -> bytes:
        match self.value:
            case list():
                body = encode_sc_vec(self.value)
            case CreateContractArgs() | UploadContractWasmArgs():
                body = self.value.encode()
            case _:
                raise MalformedInput('Invalid host function args.')
        return pack('>i', self.type) + body

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> HostFunctionArgs:
        match _peek_type(view):
            case cls.HOST_FUNCTION_TYPE_INVOKE_CONTRACT:
                value, _ = decode_sc_vec(view[4:])
            case cls.HOST_FUNCTION_TYPE_CREATE_CONTRACT:
                value = CreateContractArgs.decode(view[4:])
            case cls.HOST_FUNCTION_TYPE_UPLOAD_CONTRACT_WASM:
                value = UploadContractWasmArgs.decode(view[4:])
            case _:
                raise MalformedInput('Invalid host function type.')
        return cls(value, _validate=False)


class AuthorizedInvocation(AbstractElement):
    """
    One `require_auth` checked call; `sub_invocations` are the calls made
    from within it. Each node owns its children exclusively.
    """

    def __init__(self,
        contract_id: Hash,
        function_name: str,
        args: list[SCVal] | None = None,
        sub_invocations: list[AuthorizedInvocation] | None = None,
        _validate: bool = True
    ):
        args = list(args or ())
        sub_invocations = list(sub_invocations or ())
        if _validate:
            if not isinstance(contract_id, Hash):
                raise MalformedInput('Invalid contract_id.')
            SCVSymbol(function_name)
            if not all(isinstance(x, SCVal) for x in args):
                raise MalformedInput('Invalid invocation argument.')
            if len(args) > SCVAL_LIMIT:
                raise LimitExceeded('Too many invocation arguments.')
            if not all(isinstance(x, AuthorizedInvocation) for x in sub_invocations):
                raise MalformedInput('Invalid sub invocation.')
        self.contract_id = contract_id
        self.function_name = function_name
        self.args = args
        self.sub_invocations = sub_invocations

    def __eq__(self, value: AuthorizedInvocation) -> bool:
        return (
            super().__eq__(value)
            and self.contract_id == value.contract_id
            and self.function_name == value.function_name
            and self.args == value.args
            and self.sub_invocations == value.sub_invocations
        )

    def __repr__(self) -> str:
        return (
            f'AuthorizedInvocation({self.contract_id.value.hex()[:8]}.'
            f'{self.function_name}, {len(self.sub_invocations)} sub)'
        )

    def encode(self) -> bytes:
        return b''.join([
            self.contract_id.encode(), _encode_symbol(self.function_name),
            encode_sc_vec(self.args), _encode_array(self.sub_invocations)
        ])

    @classmethod
    def decode(
        cls, view: bytes | bytearray | memoryview, depth: int = 0
    ) -> AuthorizedInvocation:
        if depth > DEPTH_LIMIT:
            raise LimitExceeded(f'Invocation nesting exceeds limit {DEPTH_LIMIT}.')
        view = memoryview(view)
        contract_id = Hash.decode(view)
        offset = contract_id.size
        function_name = _decode_symbol(view[offset:])
        offset += _opaque_size(len(function_name))
        # arguments share the nesting budget of the node that carries them
        args, n = decode_sc_vec(view[offset:], depth)
        offset += n
        sub_invocations, _ = _decode_array(
            lambda x: AuthorizedInvocation.decode(x, depth + 1), view[offset:]
        )
        return cls(
            contract_id, function_name, args, sub_invocations, _validate=False
        )


class AddressWithNonce(AbstractElement):

    def __init__(self, address: SCAddress, nonce: int, _validate: bool = True):
        if _validate:
            if not isinstance(address, (SCAddressAccount, SCAddressContract)):
                raise MalformedInput('Invalid address.')
            if (
                not isinstance(nonce, int)
                or nonce < 0
                or nonce >= 0x1_0000_0000_0000_0000
            ):
                raise MalformedInput('Invalid nonce.')
        self.address = address
        self.nonce = nonce

    def __eq__(self, value: AddressWithNonce) -> bool:
        return (
            super().__eq__(value)
            and self.address == value.address
            and self.nonce == value.nonce
        )

    def __repr__(self) -> str:
        return f'AddressWithNonce({self.address!r}, {self.nonce})'

    @property
    def size(self) -> int:
        return self.address.size + 8

    def encode(self) -> bytes:
        return self.address.encode() + pack('>Q', self.nonce)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> AddressWithNonce:
        address = SCAddress.decode(view)
        try:
            nonce = unpack_from('>Q', view, address.size)[0]
        except StructError:
            raise MalformedInput('Invalid view size.')
        return cls(address, nonce, _validate=False)


class ContractAuth(AbstractElement):
    """
    Authorization of `root_invocation` by one address. Without an
    `address_with_nonce` the transaction source account authorizes and no
    signature is carried.
    """

    def __init__(self,
        address_with_nonce: AddressWithNonce | None,
        root_invocation: AuthorizedInvocation,
        signature_args: list[SCVal] | None = None,
        _validate: bool = True
    ):
        signature_args = list(signature_args or ())
        if _validate:
            if (
                address_with_nonce is not None
                and not isinstance(address_with_nonce, AddressWithNonce)
            ):
                raise MalformedInput('Invalid address_with_nonce.')
            if not isinstance(root_invocation, AuthorizedInvocation):
                raise MalformedInput('Invalid root_invocation.')
            if not all(isinstance(x, SCVal) for x in signature_args):
                raise MalformedInput('Invalid signature argument.')
            if address_with_nonce is None and signature_args:
                raise MalformedInput('Invoker authorization carries no signature.')
        self.address_with_nonce = address_with_nonce
        self.root_invocation = root_invocation
        self.signature_args = signature_args

    def __eq__(self, value: ContractAuth) -> bool:
        return (
            super().__eq__(value)
            and self.address_with_nonce == value.address_with_nonce
            and self.root_invocation == value.root_invocation
            and self.signature_args == value.signature_args
        )

    def __repr__(self) -> str:
        return f'ContractAuth({self.address_with_nonce!r}, {self.root_invocation!r})'

    def encode(self) -> bytes:
        return b''.join([
            _encode_optional(self.address_with_nonce),
            self.root_invocation.encode(),
            encode_sc_vec(self.signature_args)
        ])

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> ContractAuth:
        view = memoryview(view)
        offset = 4
        address_with_nonce = None
        if _decode_flag(view):
            address_with_nonce = AddressWithNonce.decode(view[offset:])
            offset += address_with_nonce.size
        root_invocation = AuthorizedInvocation.decode(view[offset:])
        offset += root_invocation.size
        signature_args, _ = decode_sc_vec(view[offset:])
        if address_with_nonce is None and signature_args:
            raise MalformedInput('Invoker authorization carries no signature.')
        return cls(
            address_with_nonce, root_invocation, signature_args, _validate=False
        )


class HostFunction(AbstractElement):

    def __init__(self,
        args: HostFunctionArgs,
        auth: list[ContractAuth] | None = None,
        _validate: bool = True
    ):
        auth = list(auth or ())
        if _validate:
            if not isinstance(args, HostFunctionArgs):
                raise MalformedInput('Invalid args.')
            if not all(isinstance(x, ContractAuth) for x in auth):
                raise MalformedInput('Invalid auth list.')
        self.args = args
        self.auth = auth

    def __eq__(self, value: HostFunction) -> bool:
        return (
            super().__eq__(value)
            and self.args == value.args
            and self.auth == value.auth
        )

    def __repr__(self) -> str:
        return f'HostFunction({self.args!r}, {self.auth!r})'

    def encode(self) -> bytes:
        return self.args.encode() + _encode_array(self.auth)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> HostFunction:
        view = memoryview(view)
        args = HostFunctionArgs.decode(view)
        auth, _ = _decode_array(ContractAuth.decode, view[args.size:])
        return cls(args, auth, _validate=False)


class InvokeHostFunctionOp(AbstractElement):
    """
    Functions are applied all-or-nothing by the ledger; this element only
    keeps their order and count.
    """

    def __init__(self, functions: list[HostFunction], _validate: bool = True):
        if _validate:
            if not all(isinstance(x, HostFunction) for x in functions):
                raise MalformedInput('Invalid functions list.')
            if len(functions) > MAX_OPS_PER_TX:
                raise LimitExceeded('Too many host functions.')
        self.functions = list(functions)

    def __eq__(self, value: InvokeHostFunctionOp) -> bool:
        return (
            super().__eq__(value)
            and self.functions == value.functions
        )

    @property
    def auth(self) -> list[ContractAuth]:
        return [a for f in self.functions for a in f.auth]

    def encode(self) -> bytes:
        return _encode_array(self.functions, MAX_OPS_PER_TX)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> InvokeHostFunctionOp:
        functions, _ = _decode_array(HostFunction.decode, view, MAX_OPS_PER_TX)
        return cls(functions, _validate=False)


class SorobanResources(AbstractElement):

    def __init__(self,
        footprint: LedgerFootprint,
        instructions: int,
        read_bytes: int,
        write_bytes: int,
        extended_meta_data_size_bytes: int,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(footprint, LedgerFootprint):
                raise MalformedInput('Invalid footprint.')
            for name, x in (
                ('instructions', instructions),
                ('read_bytes', read_bytes),
                ('write_bytes', write_bytes),
                ('extended_meta_data_size_bytes', extended_meta_data_size_bytes),
            ):
                if not isinstance(x, int) or x < 0 or x >= 0x1_0000_0000:
                    raise MalformedInput(f'Invalid {name}.')
        self.footprint = footprint
        self.instructions = instructions
        self.read_bytes = read_bytes
        self.write_bytes = write_bytes
        self.extended_meta_data_size_bytes = extended_meta_data_size_bytes

    def __eq__(self, value: SorobanResources) -> bool:
        return (
            super().__eq__(value)
            and self.footprint == value.footprint
            and self.instructions == value.instructions
            and self.read_bytes == value.read_bytes
            and self.write_bytes == value.write_bytes
            and self.extended_meta_data_size_bytes == value.extended_meta_data_size_bytes
        )

    def encode(self) -> bytes:
        return self.footprint.encode() + pack(
            '>IIII', self.instructions, self.read_bytes,
            self.write_bytes, self.extended_meta_data_size_bytes
        )

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SorobanResources:
        footprint = LedgerFootprint.decode(view)
        try:
            limits = unpack_from('>IIII', view, footprint.size)
        except StructError:
            raise MalformedInput('Invalid view size.')
        return cls(footprint, *limits, _validate=False)


class SorobanTransactionData(AbstractElement):

    def __init__(self,
        resources: SorobanResources,
        refundable_fee: int,
        ext: int = 0,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(resources, SorobanResources):
                raise MalformedInput('Invalid resources.')
            if (
                not isinstance(refundable_fee, int)
                or refundable_fee < -0x8000_0000_0000_0000
                or refundable_fee >= 0x8000_0000_0000_0000
            ):
                raise MalformedInput('Invalid refundable_fee.')
            if ext != 0:
                raise MalformedInput('Invalid extension.')
        self.resources = resources
        self.refundable_fee = refundable_fee
        self.ext = ext

    def __eq__(self, value: SorobanTransactionData) -> bool:
        return (
            super().__eq__(value)
            and self.resources == value.resources
            and self.refundable_fee == value.refundable_fee
            and self.ext == value.ext
        )

    def encode(self) -> bytes:
        return self.resources.encode() + pack('>qi', self.refundable_fee, self.ext)

    @classmethod
    def decode(cls, view: bytes | bytearray | memoryview) -> SorobanTransactionData:
        resources = SorobanResources.decode(view)
        try:
            refundable_fee, ext = unpack_from('>qi', view, resources.size)
        except StructError:
            raise MalformedInput('Invalid view size.')
        if ext != 0:
            raise MalformedInput('Invalid extension.')
        return cls(resources, refundable_fee, ext, _validate=False)
