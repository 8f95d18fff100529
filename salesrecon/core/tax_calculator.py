from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Sequence
from salesrecon.core.errors import ValidationError
from salesrecon.schemas.invoice import InvoiceLineItem, LineInput
from salesrecon.schemas.tax import TaxClassification

TWO_PLACES = Decimal("0.01")
WHOLE_RUPEE = Decimal("1")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class InvoiceTotals:
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_amount: Decimal
    round_off: Decimal
    grand_total: Decimal


def _check(value: Decimal, field: str) -> Decimal:
    value = Decimal(value)
    if not value.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return value


def validate_line(line: LineInput) -> None:
    quantity = _check(line.quantity, "quantity")
    rate = _check(line.rate, "rate")
    discount = _check(line.discount_percent, "discount_percent")
    tax_rate = _check(line.tax_rate, "tax_rate")

    if quantity <= ZERO:
        raise ValidationError("quantity must be greater than zero", field="quantity")
    if rate < ZERO:
        raise ValidationError("rate cannot be negative", field="rate")
    if discount < ZERO or discount > HUNDRED:
        raise ValidationError("discount_percent must be between 0 and 100", field="discount_percent")
    if tax_rate < ZERO:
        raise ValidationError("tax_rate cannot be negative", field="tax_rate")


def compute_line(line: LineInput, classification: TaxClassification, line_no: int = 1) -> InvoiceLineItem:
    """
    Tax one line. The order of steps is fixed: gross, discount, taxable value,
    rate split, tax amounts, line total. Intermediate values keep full Decimal
    precision; each stored amount is rounded to paise once.
    """
    validate_line(line)

    gross = line.quantity * line.rate
    discount_amount = gross * line.discount_percent / HUNDRED
    taxable = gross - discount_amount

    cgst_rate = sgst_rate = igst_rate = ZERO
    if classification == TaxClassification.INTRA_STATE:
        cgst_rate = sgst_rate = line.tax_rate / 2
    else:
        igst_rate = line.tax_rate

    cgst_amount = quantize_money(taxable * cgst_rate / HUNDRED)
    sgst_amount = quantize_money(taxable * sgst_rate / HUNDRED)
    igst_amount = quantize_money(taxable * igst_rate / HUNDRED)
    taxable_value = quantize_money(taxable)

    return InvoiceLineItem(
        **line.model_dump(),
        line_no=line_no,
        gross_amount=quantize_money(gross),
        discount_amount=quantize_money(discount_amount),
        taxable_value=taxable_value,
        cgst_rate=cgst_rate,
        cgst_amount=cgst_amount,
        sgst_rate=sgst_rate,
        sgst_amount=sgst_amount,
        igst_rate=igst_rate,
        igst_amount=igst_amount,
        line_total=taxable_value + cgst_amount + sgst_amount + igst_amount,
    )


def compute_lines(lines: Sequence[LineInput], classification: TaxClassification) -> List[InvoiceLineItem]:
    if not lines:
        raise ValidationError("An invoice needs at least one line", field="lines")
    return [compute_line(line, classification, line_no=i) for i, line in enumerate(lines, start=1)]


def compute_invoice_totals(items: Iterable[InvoiceLineItem]) -> InvoiceTotals:
    """Sum computed lines; round_off keeps its sign (negative when rounding down)."""
    subtotal = cgst = sgst = igst = ZERO
    for item in items:
        subtotal += item.taxable_value
        cgst += item.cgst_amount
        sgst += item.sgst_amount
        igst += item.igst_amount

    total = subtotal + cgst + sgst + igst
    rounded = total.quantize(WHOLE_RUPEE, rounding=ROUND_HALF_UP)
    round_off = quantize_money(rounded - total)

    return InvoiceTotals(
        subtotal=quantize_money(subtotal),
        cgst=quantize_money(cgst),
        sgst=quantize_money(sgst),
        igst=quantize_money(igst),
        total_amount=quantize_money(total),
        round_off=round_off,
        grand_total=quantize_money(total + round_off),
    )
