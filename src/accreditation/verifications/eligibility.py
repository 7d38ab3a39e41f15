"""Accredited investor eligibility rules.

Thresholds (inclusive):
- INCOME: annual income of at least $200,000 with a stated source
- NET_WORTH: net worth of at least $1,000,000
- PROFESSIONAL: no financial threshold; credentials are evidenced by
  uploaded documents
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ..errors import EligibilityError, ValidationError
from ..models.verification import VerificationType

INCOME_THRESHOLD = Decimal("200000")
NET_WORTH_THRESHOLD = Decimal("1000000")

Amount = Union[Decimal, int, float, str, None]


@dataclass(frozen=True)
class Financials:
    """Self-reported financial attestation attached to a request."""
    annual_income: Optional[Decimal] = None
    income_source: Optional[str] = None
    net_worth: Optional[Decimal] = None
    liquid_net_worth: Optional[Decimal] = None


def to_amount(value: Amount, field: str) -> Optional[Decimal]:
    """Coerce a monetary input to Decimal.

    Floats go through str() so 200000.0 becomes Decimal('200000.0') rather
    than its binary expansion.

    Raises:
        ValidationError: If the value is not a finite, non-negative number
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def normalize_financials(
    annual_income: Amount = None,
    income_source: Optional[str] = None,
    net_worth: Amount = None,
    liquid_net_worth: Amount = None,
) -> Financials:
    source = income_source.strip() if income_source else None
    return Financials(
        annual_income=to_amount(annual_income, "annual_income"),
        income_source=source or None,
        net_worth=to_amount(net_worth, "net_worth"),
        liquid_net_worth=to_amount(liquid_net_worth, "liquid_net_worth"),
    )


def check_attestation(attestation: bool, consent_to_verify: bool) -> None:
    """Both the attestation and the consent must be given, for every type."""
    if attestation is not True:
        raise ValidationError("You must attest that the information provided is accurate")
    if consent_to_verify is not True:
        raise ValidationError("You must consent to verification of the information provided")


def check_eligibility(verification_type: VerificationType, financials: Financials) -> None:
    """Apply the threshold for the claimed basis.

    Raises:
        ValidationError: If verification_type is not a VerificationType
        EligibilityError: If the threshold for the type is not met
    """
    if not isinstance(verification_type, VerificationType):
        raise ValidationError("Invalid verification type")

    if verification_type == VerificationType.INCOME:
        if financials.annual_income is None or financials.annual_income < INCOME_THRESHOLD:
            raise EligibilityError(
                f"Annual income must be at least ${INCOME_THRESHOLD:,.0f} "
                f"for accredited investor status"
            )
        if not financials.income_source:
            raise EligibilityError("An income source is required for income-based verification")

    elif verification_type == VerificationType.NET_WORTH:
        if financials.net_worth is None or financials.net_worth < NET_WORTH_THRESHOLD:
            raise EligibilityError(
                f"Net worth must be at least ${NET_WORTH_THRESHOLD:,.0f} "
                f"for accredited investor status"
            )
