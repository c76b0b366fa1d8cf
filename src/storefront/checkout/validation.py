"""Structural validation of checkout input.

Checks run in a fixed order and stop at the first violation, which is raised
as ``CheckoutValidationError`` naming the offending field. Nothing here
touches the store.
"""

import re
import unicodedata
from dataclasses import dataclass

from storefront.checkout.errors import CheckoutValidationError
from storefront.pricing.currency import Currency, parse_currency

PHONE_PATTERN = re.compile(r"^\+?[\d \-()]+$")
REFERENCE_PATTERN = re.compile(r"^[A-Za-z0-9-]{5,50}$")

MAX_EMAIL_LENGTH = 255
MAX_NOTES_LENGTH = 500

_EMAIL_FORBIDDEN = set(";,()\":<>[]\\")


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class CheckoutInput:
    """Checkout input after validation, with surrounding whitespace removed."""

    customer: CustomerInfo
    payment_method: str
    transaction_reference: str | None
    notes: str | None
    currency: Currency


def _is_name_char(char: str) -> bool:
    if char in " -'":
        return True
    return unicodedata.category(char)[0] in ("L", "M")


def _clean(value) -> str:
    return str(value).strip() if value is not None else ""


def _is_email(email: str) -> bool:
    """One @, no whitespace, no empty or dotted-edge parts, no consecutive
    dots, no forbidden characters, no label starting or ending with a hyphen."""
    if any(char.isspace() for char in email) or email.count("@") != 1:
        return False
    local_part, domain_part = email.split("@")
    for part in (local_part, domain_part):
        if not part or part.startswith(".") or part.endswith(".") or ".." in part:
            return False
    if "." not in domain_part or _EMAIL_FORBIDDEN.intersection(email):
        return False
    return not any(label.startswith("-") or label.endswith("-") for label in domain_part.split("."))


def _is_phone(phone: str) -> bool:
    return 10 <= len(phone) <= 20 and bool(PHONE_PATTERN.match(phone)) and any(char.isdigit() for char in phone)


def validate_customer(info: CustomerInfo) -> CustomerInfo:
    name = _clean(info.name)
    if not 2 <= len(name) <= 100:
        raise CheckoutValidationError("name", "Name must be between 2 and 100 characters")
    if not all(_is_name_char(char) for char in name):
        raise CheckoutValidationError("name", "Name can only contain letters, spaces, hyphens and apostrophes")

    email = _clean(info.email)
    if len(email) > MAX_EMAIL_LENGTH:
        raise CheckoutValidationError("email", f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    if not _is_email(email):
        raise CheckoutValidationError("email", "Invalid email address")

    phone = _clean(info.phone)
    if not _is_phone(phone):
        raise CheckoutValidationError(
            "phone", "Phone must be 10 to 20 characters: digits, spaces, ( ) or hyphens, with an optional leading +"
        )

    return CustomerInfo(name=name, email=email, phone=phone)


def validate_checkout_input(
    customer_info: CustomerInfo,
    payment_method,
    transaction_reference=None,
    notes=None,
    currency="BDT",
    requires_reference: bool = True,
) -> CheckoutInput:
    customer = validate_customer(customer_info)

    method = _clean(payment_method)
    if not method:
        raise CheckoutValidationError("payment_method", "Payment method is required")

    reference = _clean(transaction_reference) or None
    if requires_reference:
        if reference is None:
            raise CheckoutValidationError("transaction_reference", "Transaction reference is required")
        if not REFERENCE_PATTERN.match(reference):
            raise CheckoutValidationError(
                "transaction_reference",
                "Transaction reference must be 5 to 50 letters, digits or hyphens",
            )

    notes = _clean(notes) or None
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise CheckoutValidationError("notes", f"Notes must be at most {MAX_NOTES_LENGTH} characters")

    try:
        parsed_currency = parse_currency(currency)
    except ValueError as exc:
        raise CheckoutValidationError("currency", str(exc)) from None

    return CheckoutInput(
        customer=customer,
        payment_method=method,
        transaction_reference=reference,
        notes=notes,
        currency=parsed_currency,
    )
