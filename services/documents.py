# services/documents.py
"""
Document renderer - invoice and payment receipt PDFs built with ReportLab.

Renderers take snapshots (schemas.InvoiceResponse / schemas.PaymentResponse),
not ORM objects, and return the raw PDF bytes.
"""
import logging
from decimal import Decimal
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

import config
from exceptions import DependencyFailure
from schemas.invoice import InvoiceResponse
from schemas.payment import PaymentResponse

logger = logging.getLogger(__name__)

BRAND_NAME = "CondoEase"
HEADER_COLOR = colors.HexColor("#2C3E50")
ACCENT_COLOR = colors.HexColor("#F28D35")


def _money(value: Optional[Decimal]) -> str:
     return f"{Decimal(value or 0):,.2f}"


def _styles():
     styles = getSampleStyleSheet()
     title_style = ParagraphStyle(
          "BillingTitle",
          parent=styles["Heading1"],
          fontSize=22,
          textColor=HEADER_COLOR,
          spaceAfter=18,
          alignment=TA_CENTER,
     )
     return styles, title_style


def _build(elements: List) -> bytes:
     buffer = BytesIO()
     doc = SimpleDocTemplate(
          buffer,
          pagesize=A4,
          rightMargin=0.8 * inch,
          leftMargin=0.8 * inch,
          topMargin=0.8 * inch,
          bottomMargin=0.8 * inch,
     )
     doc.build(elements)
     return buffer.getvalue()


def _amount_table(rows: List[List[str]]) -> Table:
     table = Table(rows, colWidths=[4.2 * inch, 2 * inch])
     table.setStyle(TableStyle([
          ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
          ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
          ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
          ("ALIGN", (1, 0), (1, -1), "RIGHT"),
          ("GRID", (0, 0), (-1, -4), 0.5, colors.grey),
          ("FONTNAME", (0, -3), (-1, -1), "Helvetica-Bold"),
          ("LINEABOVE", (0, -3), (-1, -3), 1, HEADER_COLOR),
          ("LINEABOVE", (0, -1), (-1, -1), 2, ACCENT_COLOR),
          ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
     ]))
     return table


def render_invoice_pdf(invoice: InvoiceResponse) -> bytes:
     """Render an invoice snapshot as a PDF."""
     try:
          styles, title_style = _styles()
          elements = [
               Paragraph(BRAND_NAME, title_style),
               Paragraph(f"INVOICE {invoice.invoice_number}", styles["Heading2"]),
               Spacer(1, 0.15 * inch),
          ]

          header = Table([
               ["Bill To:", invoice.tenant_name or "", "Invoice Date:", invoice.invoice_date.isoformat()],
               ["Email:", invoice.tenant_email or "", "Due Date:", invoice.due_date.isoformat()],
               ["Property:", invoice.property_name or "", "Unit:", invoice.unit_number or ""],
               ["Status:", invoice.status.value, "", ""],
          ], colWidths=[0.9 * inch, 2.6 * inch, 1.1 * inch, 1.6 * inch])
          header.setStyle(TableStyle([
               ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
               ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
               ("FONTSIZE", (0, 0), (-1, -1), 9),
               ("VALIGN", (0, 0), (-1, -1), "TOP"),
          ]))
          elements += [header, Spacer(1, 0.3 * inch)]

          rows = [
               ["Description", "Amount"],
               ["Base rent", _money(invoice.base_rent)],
               ["Service charges", _money(invoice.service_charges)],
               ["Parking fees", _money(invoice.parking_fees)],
          ]
          rows += [[charge.description, _money(charge.amount)] for charge in invoice.additional_charges]
          if invoice.late_fee_applied:
               rows.append(["Late fee", _money(invoice.late_fee)])
          rows += [
               ["Total", _money(invoice.total_amount)],
               ["Paid", _money(invoice.paid_amount)],
               ["Balance due", _money(invoice.balance_amount)],
          ]
          elements.append(_amount_table(rows))

          if invoice.notes:
               elements += [Spacer(1, 0.3 * inch), Paragraph(f"<b>Notes:</b> {invoice.notes}", styles["Normal"])]
          elements += [
               Spacer(1, 0.3 * inch),
               Paragraph(
                    f"Please settle the balance by {invoice.due_date.isoformat()}. "
                    f"A late fee of {config.LATE_FEE_PERCENTAGE}% applies to overdue invoices.",
                    styles["Normal"],
               ),
          ]
          return _build(elements)
     except Exception as e:
          logger.exception("Invoice PDF rendering failed for %s", invoice.invoice_number)
          raise DependencyFailure(f"Could not render invoice {invoice.invoice_number}: {e}") from e


def render_receipt_pdf(payment: PaymentResponse, invoice: InvoiceResponse) -> bytes:
     """Render a payment receipt as a PDF."""
     try:
          styles, title_style = _styles()
          elements = [
               Paragraph(BRAND_NAME, title_style),
               Paragraph(f"PAYMENT RECEIPT {payment.payment_number}", styles["Heading2"]),
               Spacer(1, 0.15 * inch),
          ]

          details = Table([
               ["Received From:", payment.tenant_name or ""],
               ["Invoice:", invoice.invoice_number],
               ["Payment Date:", payment.payment_date.isoformat()],
               ["Method:", payment.payment_method.value.replace("_", " ").title()],
               ["Reference:", payment.transaction_reference or "-"],
          ], colWidths=[1.5 * inch, 4.7 * inch])
          details.setStyle(TableStyle([
               ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
               ("FONTSIZE", (0, 0), (-1, -1), 9),
          ]))
          elements += [details, Spacer(1, 0.3 * inch)]

          elements.append(_amount_table([
               ["Description", "Amount"],
               [f"Payment towards {invoice.invoice_number}", _money(payment.amount)],
               ["Invoice total", _money(invoice.total_amount)],
               ["Total paid to date", _money(invoice.paid_amount)],
               ["Remaining balance", _money(invoice.balance_amount)],
          ]))
          return _build(elements)
     except Exception as e:
          logger.exception("Receipt PDF rendering failed for %s", payment.payment_number)
          raise DependencyFailure(f"Could not render receipt {payment.payment_number}: {e}") from e
