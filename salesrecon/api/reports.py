from fastapi import APIRouter, HTTPException, Depends, Header
from fastapi.responses import Response, StreamingResponse
from salesrecon.core.audit import audit_repo
from salesrecon.core.config import settings
from salesrecon.core.engine import engine
from salesrecon.core.pending_report import report_to_csv
from salesrecon.schemas.audit import AuditLogEntry, AuditStatus
from salesrecon.schemas.report import PendingOrdersFilter, PendingOrdersReport
from typing import Optional
import logging
import io
import hashlib
from xml.sax.saxutils import escape
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors

router = APIRouter()
logger = logging.getLogger(__name__)

def report_filter(
    order_number: Optional[str] = None,
    buyer_name: Optional[str] = None,
    invoice_number: Optional[str] = None,
    only_open: bool = False,
) -> PendingOrdersFilter:
    return PendingOrdersFilter(
        order_number=order_number,
        buyer_name=buyer_name,
        invoice_number=invoice_number,
        only_open=only_open,
    )

@router.get("/reports/pending-orders", response_model=PendingOrdersReport)
async def get_pending_orders_report(flt: PendingOrdersFilter = Depends(report_filter)):
    logger.info(f"Pending orders report requested: {flt.model_dump(exclude_defaults=True)}")
    return engine.pending_orders_report(flt)

@router.get("/reports/pending-orders/csv")
async def get_pending_orders_csv(flt: PendingOrdersFilter = Depends(report_filter)):
    report = engine.pending_orders_report(flt)
    return Response(
        content=report_to_csv(report),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=pending-orders-{report.generated_at.date().isoformat()}.csv"
        }
    )

def _money(value) -> str:
    return f"Rs. {value:,.2f}"

def build_pending_orders_pdf(report: PendingOrdersReport) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    styles = getSampleStyleSheet()
    elements = []

    # 1. Header
    elements.append(Paragraph("Pending Sales Orders", styles['Title']))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"<b>Seller:</b> {escape(settings.SELLER_NAME)}", styles['Normal']))
    elements.append(Paragraph(f"<b>Generated:</b> {report.generated_at.strftime('%Y-%m-%d %H:%M:%S')}", styles['Normal']))
    elements.append(Paragraph(f"<b>Report ID:</b> {report.report_id}", styles['Normal']))
    elements.append(Spacer(1, 18))

    # 2. Totals
    totals = report.totals
    summary_data = [
        ["Metric", "Value"],
        ["Orders", str(totals.order_count)],
        ["Open Orders", str(totals.open_order_count)],
        ["Ordered Qty", f"{totals.ordered_qty:.2f}"],
        ["Invoiced Qty", f"{totals.invoiced_qty:.2f}"],
        ["Pending Qty", f"{totals.pending_qty:.2f}"],
        ["Ordered Amount", _money(totals.ordered_amount)],
        ["Invoiced Amount", _money(totals.invoiced_amount)],
        ["Pending Amount", _money(totals.pending_amount)],
    ]
    summary_table = Table(summary_data, colWidths=[200, 150])
    summary_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(summary_table)
    elements.append(Spacer(1, 24))

    # 3. Order rows
    elements.append(Paragraph("Orders", styles['Heading2']))
    cell = ParagraphStyle(name='Cell', fontSize=8, leading=10)
    rows = [["SO No", "Customer", "Invoices", "SO Qty", "Invoiced", "Pending", "SO Amount", "Invoiced Amount", "Pending Amount"]]
    for row in report.rows:
        rows.append([
            Paragraph(escape(row.order_number), cell),
            Paragraph(escape(row.buyer_name), cell),
            Paragraph(escape(row.invoice_numbers_display or "-"), cell),
            f"{row.ordered_qty:.2f}",
            f"{row.invoiced_qty:.2f}",
            f"{row.pending_qty:.2f}",
            _money(row.ordered_amount),
            _money(row.invoiced_amount),
            _money(row.pending_amount),
        ])
    orders_table = Table(rows, repeatRows=1, colWidths=[75, 105, 115, 50, 50, 50, 78, 78, 78])
    orders_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ALIGN', (3, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(orders_table)

    # 4. Footer
    elements.append(Spacer(1, 36))
    footer_text = "Quantities are taken from recorded order-to-invoice allocations. Amounts are pro-rated by allocated quantity."
    elements.append(Paragraph(footer_text, ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)))

    doc.build(elements)
    return buffer.getvalue()

@router.get("/reports/pending-orders/pdf")
async def get_pending_orders_pdf(
    flt: PendingOrdersFilter = Depends(report_filter),
    x_actor: str = Header("system", alias="X-Actor"),
):
    logger.info("PDF Report Generation STARTED for pending orders")
    report = engine.pending_orders_report(flt)

    try:
        pdf_bytes = build_pending_orders_pdf(report)
    except Exception as e:
        logger.error(f"PDF Build Failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    pdf_hash = hashlib.sha256(pdf_bytes).hexdigest()

    # Audit Logging
    audit_repo.save(AuditLogEntry(
        endpoint="/reports/pending-orders/pdf",
        method="GET",
        action_type="PDF_DOWNLOAD",
        actor=x_actor,
        entity_id=report.report_id,
        output_hash=pdf_hash,
        status=AuditStatus.SUCCESS
    ))

    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=Pending_Orders_{report.report_id[:8]}.pdf",
            "Content-Length": str(len(pdf_bytes))
        }
    )
