import logging
from datetime import date
from typing import Optional
from salesrecon.core.audit import AuditRepository
from salesrecon.core.errors import (
    DuplicateInvoiceNumber, InvoiceNotFound, SeriesInactive, SeriesNotFound,
    StaleInvoiceReference, ValidationError,
)
from salesrecon.db.memory import MemoryStore
from salesrecon.schemas.audit import AuditLogEntry, AuditStatus
from salesrecon.schemas.invoice import Invoice
from salesrecon.schemas.series import NumberSeries

logger = logging.getLogger(__name__)

# Lock shared by every operation that assigns an invoice number
INVOICE_NUMBER_LOCK = "invoice-numbers"


def current_financial_year(today: Optional[date] = None) -> str:
    """Indian financial year (April to March), e.g. '2025-26'."""
    today = today or date.today()
    start = today.year if today.month >= 4 else today.year - 1
    return f"{start}-{str(start + 1)[-2:]}"


def short_financial_year(financial_year: str) -> str:
    # '2025-26' and '2025-2026' both become '25-26'
    start, _, end = financial_year.partition("-")
    return f"{start[-2:]}-{end[-2:]}" if end else financial_year


def format_number(series: NumberSeries, counter: int) -> str:
    number = f"{series.prefix}{str(counter).zfill(series.number_length)}"
    if series.include_financial_year and series.financial_year:
        number = f"{number}/{short_financial_year(series.financial_year)}"
    return number


class NumberingSequencer:
    """Issues document numbers per named series and handles number corrections."""

    def __init__(self, store: MemoryStore, audit: AuditRepository):
        self.store = store
        self.audit = audit

    def _series_lock(self, name: str):
        return self.store.locks(f"series:{name}")

    def register(self, series: NumberSeries) -> NumberSeries:
        if not series.name.strip():
            raise ValidationError("Series name is required", field="name")
        with self._series_lock(series.name):
            self.store.series[series.name] = series
        logger.info(f"Number series registered: {series.name} (prefix={series.prefix!r})")
        return series

    def deactivate(self, name: str) -> NumberSeries:
        with self._series_lock(name):
            series = self.store.series.get(name)
            if series is None:
                raise SeriesNotFound(f"Number series '{name}' does not exist", field="series_name")
            series.is_active = False
        logger.info(f"Number series deactivated: {name}")
        return series

    def next(self, series_name: str, today: Optional[date] = None) -> str:
        """
        Read, increment and format in one critical section.
        Numbers already held by an active invoice (e.g. after a rename) are
        skipped, so the sequence may have gaps but never repeats.
        """
        with self._series_lock(series_name):
            series = self.store.series.get(series_name)
            if series is None:
                logger.warning(f"Number requested from unknown series: {series_name}")
                raise SeriesNotFound(f"Number series '{series_name}' does not exist", field="series_name")
            if not series.is_active:
                logger.warning(f"Number requested from inactive series: {series_name}")
                raise SeriesInactive(f"Number series '{series_name}' is inactive", field="series_name")

            if series.include_financial_year:
                fy = current_financial_year(today)
                if series.financial_year != fy:
                    series.financial_year = fy
                    series.current_number = 0

            counter = series.current_number
            while True:
                counter += 1
                candidate = format_number(series, counter)
                if self.store.find_active_invoice_by_number(candidate) is None:
                    break
                logger.info(f"Skipping {candidate} in series {series_name}: already in use")
            series.current_number = counter

        logger.info(f"Issued number {candidate} from series {series_name}")
        return candidate

    def correct(self, invoice_id: str, old_number: str, new_number: str, actor: str = "system") -> Invoice:
        """
        Rename an issued invoice number. Does not touch any series counter.
        `old_number` must match what is stored (optimistic check).
        """
        new_number = (new_number or "").strip()
        if not new_number:
            raise ValidationError("New invoice number is required", field="new_number")

        with self.store.locks(INVOICE_NUMBER_LOCK):
            invoice = self.store.get_invoice(invoice_id)
            if invoice is None:
                raise InvoiceNotFound(f"Invoice '{invoice_id}' does not exist", field="invoice_id")
            if invoice.invoice_number != old_number:
                logger.warning(
                    f"Stale rename of invoice {invoice_id}: expected {old_number!r}, stored {invoice.invoice_number!r}"
                )
                raise StaleInvoiceReference(
                    f"Invoice number is '{invoice.invoice_number}', not '{old_number}'", field="old_number"
                )
            if new_number == old_number:
                return invoice

            holder = self.store.find_active_invoice_by_number(new_number)
            if holder is not None and holder.id != invoice.id:
                raise DuplicateInvoiceNumber(f"Invoice number '{new_number}' is already in use", field="new_number")

            invoice.invoice_number = new_number

        self.audit.save(AuditLogEntry(
            action_type="INVOICE_RENUMBER",
            actor=actor,
            status=AuditStatus.SUCCESS,
            entity_id=invoice_id,
            old_value=old_number,
            new_value=new_number,
        ))
        logger.info(f"Invoice {invoice_id} renumbered {old_number} -> {new_number} by {actor}")
        return invoice
