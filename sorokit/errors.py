
from __future__ import annotations


class SorokitError(ValueError):
    """
    Base class for all validation errors raised by sorokit.
    """
    pass


class MalformedInput(SorokitError):
    """
    Shape violation: truncated view, unknown discriminant, bad padding.
    """
    pass


class LimitExceeded(SorokitError):
    """
    A bounded sequence or invocation tree is over its limit.
    """
    pass


class SchemeMismatch(SorokitError):
    """
    Illegal combination of contract id scheme and contract code.
    """
    pass


class SignatureInvalid(SorokitError):
    pass


class NonceMismatch(SorokitError):
    pass


class NonceConflict(SorokitError):
    pass


class UnsupportedAddressKind(SorokitError):
    pass


class FootprintInsufficient(SorokitError):

    def __init__(self, missing_read_only: list, missing_read_write: list):
        super().__init__(
            f'Footprint is missing {len(missing_read_only)} read-only and '
            f'{len(missing_read_write)} read-write keys.'
        )
        self.missing_read_only = missing_read_only
        self.missing_read_write = missing_read_write


class FeeInsufficient(SorokitError):

    def __init__(self, refundable_fee: int, minimum_fee: int):
        super().__init__(
            f'Refundable fee {refundable_fee} is below minimum {minimum_fee}.'
        )
        self.refundable_fee = refundable_fee
        self.minimum_fee = minimum_fee
