# error_codes.py
import re
from enum import Enum
from typing import Optional


class DomainErrorCode(str, Enum):
    INVALID_TAG = "INVALID_TAG"
    INVALID_MACHINE = "INVALID_MACHINE"
    INVALID_PRODUCT = "INVALID_PRODUCT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    MACHINE_NOT_ALLOWED = "MACHINE_NOT_ALLOWED"
    PRODUCT_NOT_ALLOWED = "PRODUCT_NOT_ALLOWED"
    PREVIOUSLY_ROLLED_BACK = "PREVIOUSLY_ROLLED_BACK"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CallSite(str, Enum):
    AUTHORIZE = "authorize"
    ROLLBACK = "rollback"
    BALANCE = "balance"


def _pattern(*phrases: str) -> re.Pattern:
    # "invalid pos eid" matches "InvalidPosEid", "invalid_pos_eid", "invalid pos eid"...
    alts = [r"[\s_-]*".join(re.escape(w) for w in p.split()) for p in phrases]
    return re.compile("|".join(alts))


_INSUFFICIENT = _pattern("insufficient", "insuficient", "saldo")
_TAG = _pattern(
    "invalid tag",
    "invalid consumption account",
    "invalid consumption uid",
    "invalid account",
    "tag",
    "account",
    "cartão",
)
_MACHINE = _pattern(
    "invalid pos eid",
    "invalid pos",
    "invalid machine",
    "machine not found",
    "máquina inválida",
)
_PRODUCT = _pattern("invalid product", "invalid item", "product not found", "item not found")
_REVERSED = _pattern("already reversed")
_NOT_ALLOWED = _pattern("not allowed", "não permitido")
_MACHINE_HINT = _pattern("machine", "máquina", "pos eid")

# Order matters: the first matching rule wins.
_RULES = (
    (_INSUFFICIENT, DomainErrorCode.INSUFFICIENT_BALANCE),
    (_TAG, DomainErrorCode.INVALID_TAG),
    (_MACHINE, DomainErrorCode.INVALID_MACHINE),
    (_PRODUCT, DomainErrorCode.INVALID_PRODUCT),
)


def classify(
    message: Optional[str],
    status: Optional[str] = None,
    *,
    site: CallSite = CallSite.AUTHORIZE,
) -> DomainErrorCode:
    """Map free fault/status text onto exactly one DomainErrorCode.

    ``status`` is the business outcome string of a declined authorization,
    classified together with the message. "Already reversed" is only
    recognized for the rollback and balance call sites.
    """
    text = " ".join(t for t in (status, message) if t).lower()
    if not text:
        return DomainErrorCode.INTERNAL_ERROR

    for pattern, code in _RULES:
        if pattern.search(text):
            return code

    if site is not CallSite.AUTHORIZE and _REVERSED.search(text):
        return DomainErrorCode.PREVIOUSLY_ROLLED_BACK

    if _NOT_ALLOWED.search(text):
        if _MACHINE_HINT.search(text):
            return DomainErrorCode.MACHINE_NOT_ALLOWED
        return DomainErrorCode.PRODUCT_NOT_ALLOWED

    return DomainErrorCode.INTERNAL_ERROR
