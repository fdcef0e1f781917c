"""
Commercial documents for a sales record.

One sales record can be viewed as a quotation, invoice, delivery order or
receipt depending on how far it has progressed. DOCUMENT_LAYOUTS holds the
field visibility per document type; resolve_document_view() applies it to a
record and render_document_pdf() prints the resolved view.
"""
import enum
import logging
from datetime import timedelta
from io import BytesIO
from typing import Dict, Any, List

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER, TA_LEFT

from shroomtrack.exceptions import DocumentUnavailableError, ValidationError
from shroomtrack.models import SalesStatus
from shroomtrack.services.sales_lifecycle_service import legal_actions
from shroomtrack.utils.formatters import money, qty, date_short
from shroomtrack.utils.number_format import to_money
from shroomtrack.utils.records import to_date

logger = logging.getLogger(__name__)


class DocumentType(enum.Enum):
    """Document type enum."""
    QUOTATION = "QUOTATION"
    INVOICE = "INVOICE"
    DO = "DO"
    RECEIPT = "RECEIPT"


_ALL_STATUSES = frozenset(SalesStatus)

DOCUMENT_LAYOUTS = {
    DocumentType.QUOTATION: {
        'title': 'QUOTATION',
        'subtitle': '(Estimate)',
        'party_label': 'Bill To',
        'show_prices': True,
        'show_valid_until': True,
        'paid_in_full': False,
        'signature_block': False,
        'viewable_in': _ALL_STATUSES,
        'hosted_actions': ('CONFIRM_INVOICE',),
        'color': '#7E22CE',
    },
    DocumentType.INVOICE: {
        'title': 'INVOICE',
        'subtitle': None,
        'party_label': 'Bill To',
        'show_prices': True,
        'show_valid_until': False,
        'paid_in_full': False,
        'signature_block': False,
        'viewable_in': frozenset({
            SalesStatus.INVOICED, SalesStatus.SHIPPED, SalesStatus.PAID, SalesStatus.DELIVERED
        }),
        'hosted_actions': ('GENERATE_DO', 'MARK_PAID'),
        'color': '#1E293B',
    },
    DocumentType.DO: {
        'title': 'DELIVERY ORDER',
        'subtitle': None,
        'party_label': 'Ship To',
        'show_prices': False,
        'show_valid_until': False,
        'paid_in_full': False,
        'signature_block': True,
        'viewable_in': frozenset({SalesStatus.SHIPPED, SalesStatus.PAID, SalesStatus.DELIVERED}),
        'hosted_actions': ('MARK_PAID',),
        'color': '#1D4ED8',
    },
    DocumentType.RECEIPT: {
        'title': 'RECEIPT',
        'subtitle': None,
        'party_label': 'Bill To',
        'show_prices': True,
        'show_valid_until': False,
        'paid_in_full': True,
        'signature_block': False,
        'viewable_in': frozenset({SalesStatus.PAID}),
        'hosted_actions': (),
        'color': '#15803D',
    },
}


def parse_document_type(value) -> DocumentType:
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value or '').strip().upper())
    except ValueError:
        raise ValidationError(
            f"Unknown document type: {value}. Must be one of {', '.join(DocumentType.__members__)}"
        )


def is_document_available(status: SalesStatus, doc_type) -> bool:
    return status in DOCUMENT_LAYOUTS[parse_document_type(doc_type)]['viewable_in']


def available_documents(status: SalesStatus) -> List[str]:
    """Document types viewable for a record in `status`, in workflow order."""
    return [doc_type.value for doc_type in DocumentType if is_document_available(status, doc_type)]


def resolve_document_view(record, doc_type, valid_days: int = 14,
                          business_name: str = 'ShroomTrack ERP') -> Dict[str, Any]:
    """
    Resolve what a document shows for a sales record.

    Args:
        record: SalesRecord
        doc_type: DocumentType or its name
        valid_days: quotation validity counted from the creation date
        business_name: signer shown on the delivery-order signature block

    Returns:
        dict describing the document: header, party block, line items (prices
        only where the layout shows them), footer markers and the workflow
        actions offered alongside it.

    Raises:
        ValidationError: unknown document type
        DocumentUnavailableError: the record has not reached this document yet
    """
    doc_type = parse_document_type(doc_type)
    layout = DOCUMENT_LAYOUTS[doc_type]
    status = record.status

    if status not in layout['viewable_in']:
        raise DocumentUnavailableError(doc_type.value, status.value)

    show_prices = layout['show_prices']
    items = []
    for item in record.items:
        line = {
            'product_id': item.product_id,
            'product_label': item.product_label,
            'quantity': item.quantity,
        }
        if show_prices:
            line['unit_price'] = to_money(item.unit_price)
            line['line_total'] = to_money(item.line_total)
        items.append(line)

    created = to_date(record.date_created)
    valid_until = None
    if layout['show_valid_until'] and created is not None:
        valid_until = created + timedelta(days=valid_days)

    signature_block = None
    if layout['signature_block']:
        signature_block = {
            'authorized_signature': business_name,
            'received_by': record.customer_name,
        }

    actions = [
        action for action in legal_actions(status)
        if action['action'] in layout['hosted_actions']
    ]

    return {
        'document_type': doc_type.value,
        'title': layout['title'],
        'subtitle': layout['subtitle'],
        'record_id': record.id,
        'invoice_id': record.invoice_id,
        'status': status.value,
        'party_label': layout['party_label'],
        'customer': {
            'name': record.customer_name,
            'email': record.customer_email,
            'phone': record.customer_phone,
        },
        'payment_method': record.payment_method,
        'date': created,
        'valid_until': valid_until,
        'show_prices': show_prices,
        'items': items,
        'total_amount': to_money(record.total_amount) if show_prices else None,
        'paid_in_full': layout['paid_in_full'],
        'signature_block': signature_block,
        'actions': actions,
    }


def render_document_pdf(view: Dict[str, Any], business_info: Dict[str, Any]) -> BytesIO:
    """
    Print a resolved document view to PDF.

    Args:
        view: output of resolve_document_view
        business_info: name, address, phone, email and currency symbol
    """
    layout = DOCUMENT_LAYOUTS[DocumentType(view['document_type'])]
    symbol = business_info.get('currency_symbol', 'RM')

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'DocTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor(layout['color']),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'DocHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph(view['title'], title_style))

    number = f"#{view['invoice_id']}"
    if view.get('subtitle'):
        number = f"{number} {view['subtitle']}"
    elements.append(Paragraph(number, header_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{business_info['name']}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(business_info['address'], header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {business_info['phone']}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {business_info['email']}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Party and dates
    customer = view['customer']
    info_data = [[f"{view['party_label']}:", customer['name']]]
    if customer.get('email'):
        info_data.append(['Email:', customer['email']])
    if customer.get('phone'):
        info_data.append(['Phone:', customer['phone']])
    info_data.append(['Date:', date_short(view['date'])])
    if view.get('valid_until'):
        info_data.append(['Valid Until:', date_short(view['valid_until'])])

    info_table = Table(info_data, colWidths=[2*inch, 3*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Line items
    if view['show_prices']:
        table_data = [['Item', 'Qty', 'Price', 'Total']]
        for item in view['items']:
            table_data.append([
                item['product_label'],
                qty(item['quantity']),
                money(item['unit_price'], symbol),
                money(item['line_total'], symbol),
            ])
        col_widths = [3.7*inch, 0.8*inch, 1.1*inch, 1.1*inch]
    else:
        table_data = [['Item', 'Qty']]
        for item in view['items']:
            table_data.append([item['product_label'], qty(item['quantity'])])
        col_widths = [5.9*inch, 0.8*inch]

    items_table = Table(table_data, colWidths=col_widths)
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(layout['color'])),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Total or signatures
    if view['total_amount'] is not None:
        total_table = Table([['TOTAL:', money(view['total_amount'], symbol)]], colWidths=[5.4*inch, 1.3*inch])
        total_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 14),
            ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#27AE60')),
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#E8F8F5')),
            ('BOX', (0, 0), (-1, -1), 2, colors.HexColor('#27AE60')),
        ]))
        elements.append(total_table)

    if view['paid_in_full']:
        stamp_style = ParagraphStyle(
            'PaidStamp',
            parent=styles['Heading2'],
            textColor=colors.HexColor('#16A34A'),
            alignment=TA_CENTER
        )
        elements.append(Spacer(1, 0.3*inch))
        elements.append(Paragraph('PAID IN FULL', stamp_style))

    if view['signature_block']:
        signature = view['signature_block']
        sign_style = ParagraphStyle('Signature', parent=styles['Normal'], fontSize=9, alignment=TA_LEFT)
        sign_table = Table([
            [Paragraph('<b>AUTHORIZED SIGNATURE</b>', sign_style), Paragraph('<b>RECEIVED BY</b>', sign_style)],
            [signature['authorized_signature'], signature['received_by']],
        ], colWidths=[3.35*inch, 3.35*inch])
        sign_table.setStyle(TableStyle([
            ('LINEABOVE', (0, 0), (0, 0), 1, colors.HexColor('#CBD5E1')),
            ('LINEABOVE', (1, 0), (1, 0), 1, colors.HexColor('#CBD5E1')),
            ('TOPPADDING', (0, 0), (-1, 0), 6),
            ('FONTSIZE', (0, 1), (-1, 1), 10),
        ]))
        elements.append(Spacer(1, 0.8*inch))
        elements.append(sign_table)

    doc.build(elements)
    buffer.seek(0)
    logger.debug(f"[DOCS] Rendered {view['document_type']} for {view['invoice_id']}")
    return buffer
