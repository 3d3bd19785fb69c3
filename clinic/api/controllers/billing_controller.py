import secrets
from flask import request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.appointment_models import Appointment
from clinic.models.billing_models import Invoice, Payment, PAYMENT_METHODS, ZERO
from clinic.models.status import AppointmentStatus, InvoiceStatus, check_transition, values
from clinic.utils.audit_util import record_audit, snapshot
from clinic.utils.time_util import utcnow
from clinic.utils.validation import (
    ValidationError, get_json_body, require_fields, parse_int, parse_decimal, parse_choice, CENTS
)

def generate_number(prefix, model, column):
    """Returns an unused identifier like 'INV-20260118-3FA2C1'."""
    while True:
        candidate = f"{prefix}-{utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"
        if not model.query.filter(column == candidate).first():
            return candidate

def get_invoices():
    query = Invoice.query
    patient_id = request.args.get('patientId')
    if patient_id:
        query = query.filter(Invoice.patient_id == patient_id)
    status = request.args.get('status')
    if status:
        query = query.filter(Invoice.status == parse_choice(status, 'status', values(InvoiceStatus)))
    invoices = query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()
    return jsonify([invoice.to_dict() for invoice in invoices]), 200

def get_invoice(invoice_id):
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({'error': 'Invoice not found'}), 404
    return jsonify(invoice.to_dict(include_payments=True)), 200

def create_invoice():
    """Bills an appointment for the treatments recorded against it."""
    data = get_json_body()
    require_fields(data, ['appointmentId'])
    appointment_id = parse_int(data['appointmentId'], 'appointmentId')
    insurance_covered = parse_decimal(data.get('insuranceCovered') or 0, 'insuranceCovered', minimum=ZERO)

    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Invalid appointment'}), 400
    if appointment.status == AppointmentStatus.CANCELLED.value:
        return jsonify({'error': 'Cannot invoice a cancelled appointment'}), 409
    if Invoice.query.filter_by(appointment_id=appointment.id).first():
        return jsonify({'error': 'Appointment has already been invoiced'}), 409

    records = appointment.treatment_records.all()
    if not records:
        raise ValidationError('Appointment has no treatment records to invoice', {'appointmentId': 'no_treatments'})

    total = parse_decimal(sum((r.total_price for r in records), ZERO), 'totalAmount')
    if insurance_covered > total:
        raise ValidationError('insuranceCovered cannot exceed the invoice total', {'insuranceCovered': 'out_of_range'})

    invoice = Invoice(
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
        invoice_number=generate_number('INV', Invoice, Invoice.invoice_number),
        total_amount=total,
        insurance_covered=insurance_covered,
        paid_amount=ZERO,
        status=InvoiceStatus.PENDING.value
    )
    invoice.recalculate_balances()
    settled = invoice.settled_status()
    if settled:
        invoice.status = settled.value

    try:
        db.session.add(invoice)
        db.session.flush()
        record_audit('CREATE', invoice)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating invoice for appointment {appointment_id}: {e}')
        return jsonify({'error': 'Failed to create invoice'}), 500

    return jsonify(invoice.to_dict()), 201

def record_payment(invoice_id):
    """Applies a payment and moves the invoice to partially_paid or paid."""
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({'error': 'Invoice not found'}), 404

    data = get_json_body()
    require_fields(data, ['amount', 'paymentMethod'])
    amount = parse_decimal(data['amount'], 'amount', minimum=CENTS)
    payment_method = parse_choice(data['paymentMethod'], 'paymentMethod', PAYMENT_METHODS)

    if invoice.status == InvoiceStatus.PAID.value:
        return jsonify({'error': 'Invoice is already paid'}), 409
    if amount > invoice.outstanding_balance:
        raise ValidationError('Payment exceeds the outstanding balance', {'amount': 'exceeds_outstanding'})

    old_values = snapshot(invoice)
    payment = Payment(
        invoice_id=invoice.id,
        amount=amount,
        payment_method=payment_method,
        transaction_reference=data.get('transactionReference'),
        processed_by=get_jwt_identity(),
        notes=data.get('notes')
    )
    invoice.paid_amount = (invoice.paid_amount or ZERO) + amount
    invoice.recalculate_balances()
    settled = invoice.settled_status()
    if settled and settled.value != invoice.status:
        invoice.status = check_transition(InvoiceStatus, invoice.status, settled.value).value

    try:
        db.session.add(payment)
        db.session.flush()
        record_audit('PAYMENT', payment)
        record_audit('UPDATE', invoice, old_values)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error recording payment for invoice {invoice_id}: {e}')
        return jsonify({'error': 'Failed to record payment'}), 500

    return jsonify({'payment': payment.to_dict(), 'invoice': invoice.to_dict()}), 201

def update_invoice_status(invoice_id):
    """Manual status change, typically marking an invoice overdue."""
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({'error': 'Invoice not found'}), 404

    data = get_json_body()
    require_fields(data, ['status'])
    target = parse_choice(data['status'], 'status', values(InvoiceStatus))
    check_transition(InvoiceStatus, invoice.status, target)

    if target == InvoiceStatus.PAID.value and invoice.outstanding_balance > ZERO:
        raise ValidationError('Invoice still has an outstanding balance', {'status': 'balance_outstanding'})
    if target == InvoiceStatus.PARTIALLY_PAID.value and (invoice.paid_amount or ZERO) == ZERO:
        raise ValidationError('No payments have been recorded on this invoice', {'status': 'no_payments'})

    old_values = snapshot(invoice)
    invoice.status = target

    try:
        db.session.flush()
        record_audit('STATUS_CHANGE', invoice, old_values)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error updating invoice {invoice_id}: {e}')
        return jsonify({'error': 'Failed to update invoice'}), 500

    return jsonify(invoice.to_dict()), 200
