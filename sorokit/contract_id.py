
from __future__ import annotations
from sorokit.crypto import Keypair, verify
from sorokit.errors import MalformedInput, SchemeMismatch, SignatureInvalid
from sorokit.host import (
    ContractID, ContractIDFromAsset, ContractIDFromEd25519PublicKey,
    ContractIDFromSourceAccount, CreateContractArgs
)
from sorokit.preimage import (
    ContractIDFromAssetPreimage, ContractIDFromContractPreimage,
    ContractIDFromEd25519Preimage, ContractIDFromSourceAccountPreimage,
    CreateContractArgsPreimage
)
from sorokit.xdr import (
    AccountID, Hash, SCContractCode, SCContractCodeToken,
    SCContractCodeWasmRef, Signature, Uint256
)

import logging


logger = logging.getLogger(__name__)


class DerivationContext(object):
    """
    Inputs a contract id depends on besides its scheme: the network, and
    for the source account scheme, the account submitting the operation.
    """

    def __init__(self,
        network_id: Hash,
        source_account: AccountID | None = None,
        _validate: bool = True
    ):
        if _validate:
            if not isinstance(network_id, Hash):
                raise MalformedInput('Invalid network_id.')
            if source_account is not None and not isinstance(source_account, AccountID):
                raise MalformedInput('Invalid source_account.')
        self.network_id = network_id
        self.source_account = source_account


async def derive(
    scheme: ContractID,
    context: DerivationContext,
    source: SCContractCode | None = None
) -> Hash:
    """
    Compute the 32-byte id of the contract created under `scheme`.

    `source` is the code the contract is created with. The token code is
    only legal with the asset scheme, the asset scheme only with the token
    code, and the Ed25519 scheme needs it because its signature covers it.
    """
    match source:
        case SCContractCodeWasmRef() | SCContractCodeToken() | None:
            pass
        case _:
            raise MalformedInput('Invalid source.')
    match scheme:
        case ContractIDFromSourceAccount():
            if isinstance(source, SCContractCodeToken):
                raise SchemeMismatch('Token code requires the asset scheme.')
            if context.source_account is None:
                raise MalformedInput('Source account scheme requires a source account.')
            preimage = ContractIDFromSourceAccountPreimage(
                context.network_id, context.source_account, scheme.salt
            )
        case ContractIDFromEd25519PublicKey():
            if source is None:
                raise SchemeMismatch('Ed25519 scheme requires contract code.')
            if isinstance(source, SCContractCodeToken):
                raise SchemeMismatch('Token code requires the asset scheme.')
            await verify_ed25519_scheme(scheme, context.network_id, source)
            preimage = ContractIDFromEd25519Preimage(
                context.network_id, scheme.key, scheme.salt
            )
        case ContractIDFromAsset():
            if isinstance(source, SCContractCodeWasmRef):
                raise SchemeMismatch('Asset scheme requires token code.')
            preimage = ContractIDFromAssetPreimage(context.network_id, scheme.asset)
        case _:
            raise MalformedInput('Invalid contract id scheme.')
    contract_id = await preimage.hash()
    logger.debug(
        'derived contract id %s (%s)',
        contract_id.value.hex(), type(scheme).__name__
    )
    return contract_id


async def derive_create(args: CreateContractArgs, context: DerivationContext) -> Hash:
    return await derive(args.contract_id, context, args.source)


async def derive_from_contract(
    network_id: Hash, contract_id: Hash, salt: Uint256
) -> Hash:
    """
    Id of a contract deployed by another contract.
    """
    return await ContractIDFromContractPreimage(network_id, contract_id, salt).hash()


async def verify_ed25519_scheme(
    scheme: ContractIDFromEd25519PublicKey,
    network_id: Hash,
    source: SCContractCode
) -> None:
    payload = await CreateContractArgsPreimage(network_id, source, scheme.salt).hash()
    if not await verify(scheme.key.value, scheme.signature.value, payload.value):
        logger.warning(
            'rejected create contract signature for key %s',
            scheme.key.value.hex()
        )
        raise SignatureInvalid('Create contract signature does not verify.')


async def sign_create_contract(
    keypair: Keypair,
    network_id: Hash,
    source: SCContractCode,
    salt: Uint256
) -> ContractIDFromEd25519PublicKey:
    await keypair
    payload = await CreateContractArgsPreimage(network_id, source, salt).hash()
    signature = await keypair.sign(payload.value)
    return ContractIDFromEd25519PublicKey(
        Uint256(keypair.public_key), Signature(signature), salt
    )
