from typing import Dict, Iterable, List
from salesrecon.core.tax_calculator import ZERO, quantize_money
from salesrecon.schemas.invoice import InvoiceLineItem
from salesrecon.schemas.tax import TaxSummaryEntry


def summarize_by_hsn(line_items: Iterable[InvoiceLineItem]) -> List[TaxSummaryEntry]:
    """
    Group computed line items by HSN code for statutory reporting.
    Rows come out in order of first appearance of each code, not sorted.
    DOES NOT recompute any tax; amounts are summed as stored on the lines.
    """
    hsn_map: Dict[str, Dict] = {}

    for item in line_items:
        code = item.hsn_code
        if code not in hsn_map:
            hsn_map[code] = {
                "taxable_value": ZERO,
                "cgst_rate": item.cgst_rate,
                "cgst_amount": ZERO,
                "sgst_rate": item.sgst_rate,
                "sgst_amount": ZERO,
                "igst_rate": item.igst_rate,
                "igst_amount": ZERO,
            }

        entry = hsn_map[code]
        entry["taxable_value"] += item.taxable_value
        entry["cgst_amount"] += item.cgst_amount
        entry["sgst_amount"] += item.sgst_amount
        entry["igst_amount"] += item.igst_amount
        # A code taxed both ways in one period keeps a rate for each pattern
        if entry["cgst_rate"] == ZERO and item.cgst_rate:
            entry["cgst_rate"] = item.cgst_rate
            entry["sgst_rate"] = item.sgst_rate
        if entry["igst_rate"] == ZERO and item.igst_rate:
            entry["igst_rate"] = item.igst_rate

    summaries = []
    for code, data in hsn_map.items():
        total_tax = data["cgst_amount"] + data["sgst_amount"] + data["igst_amount"]
        summaries.append(TaxSummaryEntry(
            hsn_code=code,
            taxable_value=quantize_money(data["taxable_value"]),
            cgst_rate=data["cgst_rate"],
            cgst_amount=quantize_money(data["cgst_amount"]),
            sgst_rate=data["sgst_rate"],
            sgst_amount=quantize_money(data["sgst_amount"]),
            igst_rate=data["igst_rate"],
            igst_amount=quantize_money(data["igst_amount"]),
            total_tax=quantize_money(total_tax),
        ))

    # dicts keep insertion order, which is first appearance
    return summaries
