"""
backoffice.finance.bank_import — Bank statement CSV import.

Column mapping is heuristic: each header is scored against keyword lists
for the fields we understand and assigned to the best field not yet taken.
The owner can correct the suggestion before the file is read.  Reading is
done with pandas; every cell is kept as text and parsed here so odd bank
formats (``($1,234.56)``, split debit/credit columns) are handled the same
way whatever the source.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from backoffice.core.errors import ValidationError
from backoffice.core.utils import round_half_up
from backoffice.domain.enums import MappingConfidence
from backoffice.domain.models import BankTransaction

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Target fields
# ---------------------------------------------------------------------------

TRANSACTION_DATE = "transaction_date"
POSTED_DATE = "posted_date"
DESCRIPTION = "description"
AMOUNT = "amount"
DEBIT_AMOUNT = "debit_amount"
CREDIT_AMOUNT = "credit_amount"
BALANCE = "balance"
CHECK_NUMBER = "check_number"
REFERENCE_NUMBER = "reference_number"
CATEGORY = "category"
IGNORE = "ignore"

BANK_TARGET_FIELDS = [
    {"value": TRANSACTION_DATE, "label": "Transaction Date", "required": True},
    {"value": POSTED_DATE, "label": "Posted Date", "required": False},
    {"value": DESCRIPTION, "label": "Description", "required": True},
    {"value": AMOUNT, "label": "Amount (signed)", "required": False},
    {"value": DEBIT_AMOUNT, "label": "Debit / Withdrawal", "required": False},
    {"value": CREDIT_AMOUNT, "label": "Credit / Deposit", "required": False},
    {"value": BALANCE, "label": "Balance", "required": False},
    {"value": CHECK_NUMBER, "label": "Check Number", "required": False},
    {"value": REFERENCE_NUMBER, "label": "Reference Number", "required": False},
    {"value": CATEGORY, "label": "Category", "required": False},
    {"value": IGNORE, "label": "(Ignore this column)", "required": False},
]

# (keywords, weight); insertion order breaks score ties
FIELD_PATTERNS: Dict[str, tuple] = {
    TRANSACTION_DATE: ((
        "transaction date", "trans date", "date", "transaction_date",
        "effective date", "value date",
    ), 10),
    POSTED_DATE: ((
        "posted date", "posting date", "post date", "posted_date", "posting_date",
    ), 9),
    DESCRIPTION: ((
        "description", "memo", "payee", "merchant", "details", "narrative",
        "transaction description", "particulars", "name",
    ), 10),
    AMOUNT: (("amount", "transaction amount", "trans amount"), 8),
    DEBIT_AMOUNT: ((
        "debit", "withdrawal", "withdrawals", "money out", "charges",
        "debit amount", "debits",
    ), 9),
    CREDIT_AMOUNT: ((
        "credit", "deposit", "deposits", "money in", "credit amount", "credits",
    ), 9),
    BALANCE: ((
        "balance", "running balance", "available balance", "ending balance",
        "ledger balance",
    ), 7),
    CHECK_NUMBER: ((
        "check number", "check #", "check no", "check or slip #", "check",
        "cheque number",
    ), 6),
    REFERENCE_NUMBER: ((
        "reference", "ref", "reference number", "ref #", "transaction id",
        "confirmation", "trace number",
    ), 6),
    CATEGORY: (("category", "type", "transaction type"), 5),
}


@dataclass
class BankColumnMapping:
    csv_column: str
    target_field: Optional[str]
    confidence: MappingConfidence = MappingConfidence.NONE

    def to_dict(self) -> dict:
        return {
            "csv_column": self.csv_column,
            "target_field": self.target_field,
            "confidence": self.confidence.value,
        }


@dataclass
class MappingValidation:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DetectedAccountInfo:
    account_mask: Optional[str] = None
    institution_name: Optional[str] = None
    account_type: Optional[str] = None


@dataclass
class BankImportResult:
    transactions: List[BankTransaction] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------

def score_to_confidence(score: int) -> MappingConfidence:
    if score >= 70:
        return MappingConfidence.HIGH
    if score >= 40:
        return MappingConfidence.MEDIUM
    if score >= 20:
        return MappingConfidence.LOW
    return MappingConfidence.NONE


def score_column(csv_column: str, target_field: str) -> int:
    """Exact keyword match scores weight×10, substring ×7, all words present ×5."""
    pattern = FIELD_PATTERNS.get(target_field)
    if pattern is None:
        return 0
    keywords, weight = pattern
    header = csv_column.lower().strip()
    if any(header == kw for kw in keywords):
        return weight * 10
    if any(kw in header for kw in keywords):
        return weight * 7
    if any(all(word in header for word in kw.split(" ")) for kw in keywords):
        return weight * 5
    return 0


def suggest_bank_column_mappings(
    headers: Sequence[str],
    sample_rows: Optional[Sequence[Mapping[str, str]]] = None,
) -> List[BankColumnMapping]:
    """Best-guess target field for each header; each field is used at most once.

    A lone posted-date column is promoted to the transaction date.
    """
    mappings: List[BankColumnMapping] = []
    taken = set()

    for column in headers:
        best_field, best_score = None, 0
        for target in FIELD_PATTERNS:
            score = score_column(column, target)
            if score > best_score and target not in taken:
                best_field, best_score = target, score

        confidence = score_to_confidence(best_score)
        if best_field is not None and confidence != MappingConfidence.NONE:
            taken.add(best_field)
            mappings.append(BankColumnMapping(column, best_field, confidence))
        else:
            mappings.append(BankColumnMapping(column, None, MappingConfidence.NONE))

    if not any(m.target_field == TRANSACTION_DATE for m in mappings):
        for m in mappings:
            if m.target_field == POSTED_DATE:
                m.target_field = TRANSACTION_DATE
                break

    logger.debug(
        "Suggested bank mappings: %s",
        {m.csv_column: m.target_field for m in mappings},
    )
    return mappings


def validate_bank_mappings(mappings: Sequence[BankColumnMapping]) -> MappingValidation:
    """Require a date, a description and either an amount or a debit/credit pair."""
    targets = [m.target_field for m in mappings]
    errors: List[str] = []
    warnings: List[str] = []

    has_date = TRANSACTION_DATE in targets or POSTED_DATE in targets
    has_amount = AMOUNT in targets
    has_debit = DEBIT_AMOUNT in targets
    has_credit = CREDIT_AMOUNT in targets

    if not has_date:
        errors.append("A date column is required (Transaction Date or Posted Date)")
    if DESCRIPTION not in targets:
        errors.append("A description column is required")
    if not (has_amount or (has_debit and has_credit)):
        if has_debit:
            errors.append("When using Debit column, a Credit column is also required")
        elif has_credit:
            errors.append("When using Credit column, a Debit column is also required")
        else:
            errors.append(
                "An amount column is required: either a single Amount column "
                "or separate Debit and Credit columns"
            )

    if has_amount and (has_debit or has_credit):
        warnings.append(
            "Both Amount and Debit/Credit columns are mapped. The Amount column will take precedence."
        )

    seen = set()
    for target in targets:
        if target is None or target == IGNORE:
            continue
        if target in seen:
            errors.append(f'Duplicate mapping: "{target}" is mapped to multiple columns')
        seen.add(target)

    return MappingValidation(valid=not errors, errors=errors, warnings=warnings)


# ---------------------------------------------------------------------------
# Account detection
# ---------------------------------------------------------------------------

ACCOUNT_MASK_PATTERNS = [
    re.compile(r"\*{2,}(\d{4})"),
    re.compile(r"\.{3,}(\d{4})"),
    re.compile(r"[xX]{2,}(\d{4})"),
    re.compile(r"ending\s+in\s+(\d{4})", re.IGNORECASE),
    re.compile(r"account\s+#?\s*\*+\s*(\d{4})", re.IGNORECASE),
]

INSTITUTION_PATTERNS = [
    (("chase", "jpmorgan"), "Chase"),
    (("bank of america", "bofa", "bankofamerica"), "Bank of America"),
    (("wells fargo", "wellsfargo"), "Wells Fargo"),
    (("citi", "citibank"), "Citibank"),
    (("capital one", "capitalone"), "Capital One"),
    (("us bank", "usbank"), "US Bank"),
    (("pnc",), "PNC Bank"),
    (("td bank", "tdbank"), "TD Bank"),
    (("american express", "amex"), "American Express"),
    (("discover",), "Discover"),
]

ACCOUNT_TYPE_PATTERNS = [
    (("checking", "dda"), "checking"),
    (("savings", "sav"), "savings"),
    (("credit card", "credit_card", "cc"), "credit_card"),
    (("money market", "mma"), "money_market"),
]


def detect_account_info_from_csv(raw_lines: Sequence[str], filename: str = "") -> DetectedAccountInfo:
    """Look for an account mask, bank name and account type in the file preamble and name."""
    info = DetectedAccountInfo()
    head = "\n".join(raw_lines[:10])

    for pattern in ACCOUNT_MASK_PATTERNS:
        match = pattern.search(head) or pattern.search(filename)
        if match:
            info.account_mask = match.group(1)
            break

    text = f"{head} {filename}".lower()
    for keywords, name in INSTITUTION_PATTERNS:
        if any(kw in text for kw in keywords):
            info.institution_name = name
            break
    for keywords, account_type in ACCOUNT_TYPE_PATTERNS:
        if any(kw in text for kw in keywords):
            info.account_type = account_type
            break
    return info


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_CHARS = re.compile(r"[$€£¥₹\s]")
_LEADING_NUMBER = re.compile(r"\d*\.?\d+")


def parse_single_amount(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    text = str(raw).strip()
    if text in ("", "-"):
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    text = _CURRENCY_CHARS.sub("", text)
    if text.startswith("-"):
        negative = True
        text = text[1:]
    text = text.replace(",", "")

    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    value = float(match.group(0))
    return -value if negative else value


def parse_bank_amount(
    value: Optional[str] = None,
    debit_value: Optional[str] = None,
    credit_value: Optional[str] = None,
) -> Optional[float]:
    """Signed dollar amount: money out is negative.

    A single ``value`` wins when present.  Otherwise a non-zero debit is
    returned as negative, else a non-zero credit as positive.
    """
    if value not in (None, ""):
        return parse_single_amount(value)

    debit = parse_single_amount(debit_value) if debit_value else None
    credit = parse_single_amount(credit_value) if credit_value else None

    if debit:
        return -abs(debit)
    if credit:
        return abs(credit)
    if debit == 0 and credit == 0:
        return 0.0
    if debit is not None:
        return -abs(debit)
    if credit is not None:
        return abs(credit)
    return None


def _to_cents(value: Optional[float]) -> Optional[int]:
    return None if value is None else round_half_up(value * 100)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

MappingSpec = Union[Sequence[BankColumnMapping], Mapping[str, Optional[str]]]


def _columns_by_field(mappings: MappingSpec) -> Dict[str, str]:
    if isinstance(mappings, Mapping):
        pairs: Iterable = mappings.items()
    else:
        pairs = ((m.csv_column, m.target_field) for m in mappings)
    out: Dict[str, str] = {}
    for column, target in pairs:
        if target and target != IGNORE:
            out.setdefault(target, column)
    return out


def read_bank_statement(source: Any, mappings: MappingSpec, skiprows: int = 0) -> BankImportResult:
    """Read a bank CSV into normalized transactions.

    Parameters
    ----------
    source : path or file-like
        Anything ``pandas.read_csv`` accepts.
    mappings : list of BankColumnMapping or dict
        Column to target-field assignments, usually from
        :func:`suggest_bank_column_mappings` after owner review.
    skiprows : int
        Preamble lines before the header row.

    Returns
    -------
    BankImportResult
        Rows without a parseable date or amount are listed in ``skipped``.

    Raises
    ------
    ValidationError
        When the mappings are incomplete or the file is not readable CSV.
    """
    mapping_list = (
        [BankColumnMapping(c, t) for c, t in mappings.items()]
        if isinstance(mappings, Mapping) else list(mappings)
    )
    check = validate_bank_mappings(mapping_list)
    if not check.valid:
        raise ValidationError("Invalid column mapping", details=check.errors)
    cols = _columns_by_field(mapping_list)

    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skiprows=skiprows,
                         skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValidationError("Could not read CSV", details=[str(exc)]) from exc
    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in cols.values() if c not in df.columns]
    if missing:
        raise ValidationError("Mapped columns not found in file", details=[f"Missing column: {c}" for c in missing])

    date_col = cols.get(TRANSACTION_DATE) or cols.get(POSTED_DATE)
    dates = pd.to_datetime(df[date_col].str.strip(), errors="coerce")

    def cell(row, target):
        column = cols.get(target)
        if column is None:
            return None
        value = str(row[column]).strip()
        return value or None

    result = BankImportResult(total_rows=len(df))
    for idx, row in df.iterrows():
        line = int(idx) + skiprows + 2
        if pd.isna(dates[idx]):
            result.skipped.append({"row": line, "reason": "Invalid or missing date"})
            continue
        amount = parse_bank_amount(cell(row, AMOUNT), cell(row, DEBIT_AMOUNT), cell(row, CREDIT_AMOUNT))
        if amount is None:
            result.skipped.append({"row": line, "reason": "Invalid or missing amount"})
            continue

        result.transactions.append(BankTransaction(
            transaction_date=dates[idx].date(),
            description=cell(row, DESCRIPTION) or "",
            amount_cents=_to_cents(amount),
            balance_cents=_to_cents(parse_single_amount(cell(row, BALANCE))),
            check_number=cell(row, CHECK_NUMBER),
            reference=cell(row, REFERENCE_NUMBER),
            category=cell(row, CATEGORY),
        ))

    if result.skipped:
        logger.warning("Bank import skipped %d of %d rows", len(result.skipped), result.total_rows)
    logger.info("Bank import parsed %d transactions", len(result.transactions))
    return result
