"""Sales blueprint - sales records, status workflow and documents (JSON)."""
from flask import Blueprint, request, jsonify, send_file, current_app

from shroomtrack.database import get_session
from shroomtrack.blueprints.metrics import record_document, record_transition
from shroomtrack.exceptions import InsufficientStockError, TransitionError, ValidationError
from shroomtrack.models import SalesStatus
from shroomtrack.services import ledger_store
from shroomtrack.services import sales_lifecycle_service as lifecycle
from shroomtrack.services.cart_service import Cart, get_available_goods
from shroomtrack.services.document_service import (
    available_documents, render_document_pdf, resolve_document_view
)
from shroomtrack.services.rollup_service import get_customer_stats
from shroomtrack.utils.formatters import jsonable
from shroomtrack.utils.records import require_mapping

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')


def _business_info() -> dict:
    return {
        'name': current_app.config.get('BUSINESS_NAME', 'ShroomTrack ERP'),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
        'currency_symbol': current_app.config.get('CURRENCY_SYMBOL', 'RM'),
    }


def _record_payload(record) -> dict:
    data = record.to_dict()
    data['actions'] = lifecycle.legal_actions(record.status)
    data['documents'] = available_documents(record.status)
    return data


def _resolve(record, doc_type) -> dict:
    return resolve_document_view(
        record,
        doc_type,
        valid_days=current_app.config.get('QUOTE_VALID_DAYS', 14),
        business_name=current_app.config.get('BUSINESS_NAME', 'ShroomTrack ERP'),
    )


@sales_bp.route('/', methods=['GET'])
def list_sales():
    """List all sales records, newest first."""
    db_session = get_session()
    records = ledger_store.list_sales(db_session)
    return jsonify({'sales': [record.to_dict(include_items=False) for record in records]})


@sales_bp.route('/', methods=['POST'])
def create_sale():
    """
    Create a sales record from a cart.

    Body:
        {"customer_id": 1, "payment_method": "CASH", "status": "QUOTATION",
         "items": [{"product_id", "product_label", "quantity", "unit_price"}]}
    """
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))

    cart = Cart.from_payload(payload)
    initial_status = payload.get('status') or SalesStatus.INVOICED.value

    try:
        record = lifecycle.create_sales_record(
            db_session,
            cart,
            payload.get('customer_id'),
            payment_method=payload.get('payment_method'),
            initial_status=initial_status,
        )
    except InsufficientStockError:
        record_transition(None, str(initial_status).upper(), 'rejected')
        raise

    record_transition(None, record.status.value, 'applied')
    current_app.logger.info(f"Sales record created: {record.invoice_id} ({record.status.value})")
    return jsonify(_record_payload(record)), 201


@sales_bp.route('/<int:record_id>', methods=['GET'])
def sale_detail(record_id):
    db_session = get_session()
    record = ledger_store.get_sales_record(db_session, record_id)
    return jsonify(_record_payload(record))


@sales_bp.route('/<int:record_id>/status', methods=['POST'])
def advance_status(record_id):
    """
    Move a sales record along the workflow.

    Body: {"status": "INVOICED" | "SHIPPED" | "PAID", "confirmed": bool}
    """
    db_session = get_session()
    payload = require_mapping(request.get_json(silent=True))

    target = payload.get('status')
    if not target:
        raise ValidationError('status is required')
    target = lifecycle.parse_status(target)

    confirmed = payload.get('confirmed') is True
    previous = ledger_store.get_sales_record(db_session, record_id).status

    try:
        record = lifecycle.advance_status(db_session, record_id, target, confirmed=confirmed)
    except (TransitionError, InsufficientStockError) as e:
        record_transition(previous.value, target.value, 'rejected')
        current_app.logger.warning(f"Status change rejected for sales record {record_id}: {e.message}")
        raise

    outcome = 'noop' if record.status == previous else 'applied'
    record_transition(previous.value, target.value, outcome)
    return jsonify(_record_payload(record))


@sales_bp.route('/<int:record_id>/documents/<doc_type>', methods=['GET'])
def document_view(record_id, doc_type):
    """Resolved document (quotation, invoice, DO, receipt) for the record."""
    db_session = get_session()
    record = ledger_store.get_sales_record(db_session, record_id)
    view = _resolve(record, doc_type)
    record_document(view['document_type'], 'json')
    return jsonify(jsonable(view))


@sales_bp.route('/<int:record_id>/documents/<doc_type>/pdf', methods=['GET'])
def document_pdf(record_id, doc_type):
    """Download the document as PDF."""
    db_session = get_session()
    record = ledger_store.get_sales_record(db_session, record_id)
    view = _resolve(record, doc_type)

    pdf_buffer = render_document_pdf(view, _business_info())
    record_document(view['document_type'], 'pdf')
    filename = f"{view['document_type'].lower()}_{record.invoice_id}.pdf"

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


@sales_bp.route('/goods', methods=['GET'])
def available_goods():
    """Sellable finished goods for the cart picker."""
    db_session = get_session()
    goods = get_available_goods(ledger_store.list_finished_goods(db_session))
    return jsonify({'goods': jsonable(goods)})


@sales_bp.route('/customers/<int:customer_id>/stats', methods=['GET'])
def customer_stats(customer_id):
    db_session = get_session()
    customer = ledger_store.get_customer(db_session, customer_id)
    stats = get_customer_stats(ledger_store.list_sales(db_session), customer.id)
    stats['sales_history'] = [record.to_dict(include_items=False) for record in stats['sales_history']]
    return jsonify({'customer': customer.to_dict(), 'stats': jsonable(stats)})
