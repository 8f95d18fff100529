from datetime import date
from decimal import Decimal
from salesrecon.core.tax_calculator import compute_lines
from salesrecon.core.tax_summary import summarize_by_hsn
from salesrecon.schemas.invoice import LineInput
from salesrecon.schemas.tax import TaxClassification
from helpers import bitumen_line


def lines():
    return [
        LineInput(hsn_code="27132000", quantity="10", rate="45000", tax_rate="18"),
        LineInput(hsn_code="34039900", quantity="4", rate="1250.50", tax_rate="18"),
        LineInput(hsn_code="27132000", quantity="2.5", rate="44000", discount_percent="1", tax_rate="18"),
        LineInput(hsn_code="99654", quantity="1", rate="8000", tax_rate="12"),
    ]


def test_groups_in_order_of_first_appearance():
    items = compute_lines(lines(), TaxClassification.INTRA_STATE)
    summary = summarize_by_hsn(items)

    assert [s.hsn_code for s in summary] == ["27132000", "34039900", "99654"]

    bitumen = summary[0]
    assert bitumen.taxable_value == items[0].taxable_value + items[2].taxable_value
    assert bitumen.cgst_rate == Decimal("9")
    assert bitumen.sgst_rate == Decimal("9")
    assert bitumen.cgst_amount == items[0].cgst_amount + items[2].cgst_amount
    assert bitumen.total_tax == bitumen.cgst_amount + bitumen.sgst_amount


def test_grouped_totals_match_ungrouped_totals():
    for classification in TaxClassification:
        items = compute_lines(lines(), classification)
        summary = summarize_by_hsn(items)

        assert sum(s.taxable_value for s in summary) == sum(i.taxable_value for i in items)
        assert sum(s.total_tax for s in summary) == sum(i.total_tax for i in items)
        assert sum(s.igst_amount for s in summary) == sum(i.igst_amount for i in items)


def test_inter_state_summary_carries_igst():
    items = compute_lines(lines(), TaxClassification.INTER_STATE)
    summary = summarize_by_hsn(items)

    assert summary[2].igst_rate == Decimal("12")
    assert summary[2].igst_amount == Decimal("960.00")
    assert summary[2].cgst_amount == Decimal("0")


def test_empty_input():
    assert summarize_by_hsn([]) == []


def test_engine_summary_by_invoice_and_period(engine, assam_seller, assam_buyer, maharashtra_buyer):
    march = engine.create_invoice(
        [bitumen_line("10")], assam_buyer, assam_seller, invoice_date=date(2025, 3, 28),
    )
    april = engine.create_invoice(
        [bitumen_line("20"), bitumen_line("1", rate="500", tax_rate="18", hsn_code="3403")],
        maharashtra_buyer, assam_seller, invoice_date=date(2025, 4, 2),
    )
    cancelled = engine.create_invoice(
        [bitumen_line("5")], assam_buyer, assam_seller, invoice_date=date(2025, 4, 3),
    )
    engine.cancel_invoice(cancelled.id)

    by_id = engine.tax_summary(invoice_ids=[march.id])
    assert len(by_id) == 1
    assert by_id[0].taxable_value == Decimal("450000.00")

    april_summary = engine.tax_summary(date_from=date(2025, 4, 1), date_to=date(2025, 4, 30))
    assert [s.hsn_code for s in april_summary] == ["27132000", "3403"]
    assert april_summary[0].taxable_value == Decimal("900000.00")
    assert april_summary[0].igst_amount == Decimal("45000.00")

    everything = engine.tax_summary()
    assert everything[0].taxable_value == Decimal("1350000.00")
    assert everything[0].cgst_amount == Decimal("11250.00")
    assert everything[0].igst_amount == Decimal("45000.00")
