import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import store_errors
from errors import NotFound
from models import Invoice, Order
from normalize import build_patch, new_id, utcnow
from pipeline import OrderViewPipeline
from redis_client import RedisClient
from references import ReferenceValidator
from schemas import InvoiceCreate, InvoiceUpdate, InvoiceView

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_STATUS = "PENDING"
# Shown in place of a payment method that was never set
NO_PAYMENT_METHOD = "null"


class InvoiceService:
    def __init__(self, db: Session, cache: Optional[RedisClient] = None):
        self.db = db
        self.references = ReferenceValidator(db)
        self.pipeline = OrderViewPipeline(db, cache)

    def create_invoice(self, invoice: InvoiceCreate) -> Invoice:
        self.references.require(Order, "order_id", invoice.order_id, "Order")

        now = utcnow()
        db_invoice = Invoice(
            invoice_id=new_id(),
            order_id=invoice.order_id,
            payment_method=invoice.payment_method,
            payment_status=invoice.payment_status or DEFAULT_PAYMENT_STATUS,
            payment_due_date=now,
            created_at=now,
            updated_at=now,
        )
        self._save(db_invoice, "create invoice")
        logger.info("Created invoice %s for order %s", db_invoice.invoice_id, db_invoice.order_id)
        return db_invoice

    def get_invoice(self, invoice_id: str) -> Invoice:
        with store_errors(f"invoice lookup {invoice_id}"):
            invoice = self.db.query(Invoice).filter(Invoice.invoice_id == invoice_id).first()
        if invoice is None:
            raise NotFound("Invoice was not found", invoice_id=invoice_id)
        return invoice

    def update_invoice(self, invoice_id: str, update: InvoiceUpdate) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        for key, value in build_patch(update).items():
            setattr(invoice, key, value)
        self._save(invoice, f"update invoice {invoice_id}")
        return invoice

    def assemble_invoice_view(self, invoice_id: str) -> InvoiceView:
        invoice = self.get_invoice(invoice_id)
        # NotFound from the pipeline (order gone) propagates as is
        order_view = self.pipeline.reconstruct_order_view(invoice.order_id)

        return InvoiceView(
            invoice_id=invoice.invoice_id,
            payment_method=invoice.payment_method or NO_PAYMENT_METHOD,
            order_id=invoice.order_id,
            payment_status=invoice.payment_status,
            payment_due=order_view.payment_due,
            table_number=order_view.table_number,
            payment_due_date=invoice.payment_due_date,
            order_details=order_view.order_items,
        )

    def _save(self, invoice: Invoice, operation: str):
        try:
            with store_errors(operation):
                self.db.add(invoice)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
