"""
Provider SMS parsers.

Each provider is described by a ProviderFormat row holding ordered pattern
lists per field. The first pattern in a list that matches wins, so a new
gateway wording is supported by adding a pattern rather than a branch.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Pattern, Tuple
from reconciler.models import Provider
from reconciler.schemas import ParsedTransaction

# At most two decimals, the scale of the amount columns. A longer fraction
# matches nothing instead of a truncated prefix.
_NUMBER = r"(?<![0-9,])(?<![0-9]\.)([0-9][0-9,]*(?:\.[0-9]{1,2})?)(?![0-9]|\.[0-9])"

_PHONE = r"(01[0-9]{9})"


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _first_group(patterns: Tuple[Pattern, ...], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def parse_amount(value: str) -> Decimal:
    return Decimal(value.replace(",", ""))


@dataclass(frozen=True)
class ProviderFormat:
    provider: Provider
    transaction_id: Tuple[Pattern, ...]
    amount: Tuple[Pattern, ...]
    counterparty_phone: Tuple[Pattern, ...] = ()
    # When set, text without one of these words is not a transaction at all.
    required_keywords: Optional[Pattern] = None

    def parse(self, raw_message: str) -> ParsedTransaction:
        if self.required_keywords is not None and not self.required_keywords.search(raw_message):
            return ParsedTransaction(provider=self.provider, raw_message=raw_message)

        amount = _first_group(self.amount, raw_message)
        return ParsedTransaction(
            provider=self.provider,
            transaction_id=_first_group(self.transaction_id, raw_message),
            amount=parse_amount(amount) if amount is not None else None,
            counterparty_phone=_first_group(self.counterparty_phone, raw_message),
            raw_message=raw_message,
        )


# "Tk 500.00 received from 01712345678. TrxID BK12ABC3DEF at 12/25/2024 2:30 PM"
BKASH_FORMAT = ProviderFormat(
    provider=Provider.BKASH,
    transaction_id=_compile(
        r"\bTrxID\s+([A-Z0-9]{10,15})\b",
        r"\bTrx\s*ID\s*:?\s*([A-Z0-9]{10,15})\b",
        r"\bTransaction\s*ID\s*:?\s*([A-Z0-9]{10,15})\b",
    ),
    amount=_compile(
        r"\b(?:Tk|Taka|BDT)\s*" + _NUMBER,
        _NUMBER + r"\s*(?:Tk|Taka|BDT)\b",
    ),
    counterparty_phone=_compile(r"\b(?:from|sender)\s+" + _PHONE),
)

# "You have received Tk. 500.00 from 01712345678. Trx ID: NGD123456789 at 25-12-2024 14:30"
NAGAD_FORMAT = ProviderFormat(
    provider=Provider.NAGAD,
    transaction_id=_compile(
        r"\bTrx\s*ID\s*:?\s*([A-Z0-9]{10,15})\b",
        r"\bTransaction\s*ID\s*:?\s*([A-Z0-9]{10,15})\b",
    ),
    amount=_compile(
        r"\b(?:Tk|Taka)\.\s*" + _NUMBER,
        _NUMBER + r"\s*(?:Tk|Taka)\b",
        r"\b(?:Tk|Taka|BDT)\s*" + _NUMBER,
    ),
    counterparty_phone=_compile(r"\b(?:from|sender)\s*:?\s*" + _PHONE),
)

# "Bill Pay from A/C: 01712345678 to 1234. Amount: Tk 500.00. Fee: Tk 0.00. TxnId: 1234567890. Bal: Tk 1000.00"
ROCKET_FORMAT = ProviderFormat(
    provider=Provider.ROCKET,
    transaction_id=_compile(
        r"\bTxnId\s*:?\s*([A-Z0-9]+)\b",
        r"\bTrxID\s*:?\s*([A-Z0-9]+)\b",
        r"\bTransaction\s*ID\s*:?\s*([A-Z0-9]+)\b",
    ),
    amount=_compile(
        r"\bAmount\s*:\s*Tk\s*" + _NUMBER,
        r"\b(?:Tk|Taka|BDT)\s*" + _NUMBER,
    ),
    counterparty_phone=_compile(r"(?:\bfrom|\bA/C)\s*:?\s*" + _PHONE),
)

# "Your A/C 1234***789 has been credited with BDT 2,500.00 on 25-Dec-2024. Ref: IB9876543210"
BANK_FORMAT = ProviderFormat(
    provider=Provider.BANK,
    transaction_id=_compile(
        r"\bTrx\s*ID\s*:?\s*([A-Z0-9]{6,})\b",
        r"\bRef(?:erence)?\s*(?:No\.?)?\s*:?\s*([A-Z0-9]{6,})\b",
        r"\bTxn\s*(?:ID)?\s*:?\s*([A-Z0-9]{6,})\b",
    ),
    amount=_compile(
        r"\b(?:BDT|Tk)\s*\.?\s*" + _NUMBER,
        _NUMBER + r"\s*(?:BDT|Tk)\b",
    ),
    required_keywords=re.compile(r"credit|deposit|received", re.IGNORECASE),
)

PROVIDER_FORMATS: Dict[Provider, ProviderFormat] = {
    fmt.provider: fmt for fmt in (BKASH_FORMAT, NAGAD_FORMAT, ROCKET_FORMAT, BANK_FORMAT)
}


def parse_message(provider: Provider, raw_message: str) -> ParsedTransaction:
    return PROVIDER_FORMATS[provider].parse(raw_message)
