from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.api.controllers.billing_controller import generate_number
from clinic.models.billing_models import Invoice, InsuranceClaim, ZERO
from clinic.models.patient_models import PatientInsurance
from clinic.models.status import ClaimStatus, InvoiceStatus, check_transition, can_transition, values
from clinic.utils.audit_util import record_audit, snapshot
from clinic.utils.time_util import utcnow
from clinic.utils.validation import (
    ValidationError, get_json_body, require_fields, parse_int, parse_decimal, parse_choice, query_int, CENTS
)

def get_claims():
    query = InsuranceClaim.query
    status = request.args.get('status')
    if status:
        query = query.filter(InsuranceClaim.status == parse_choice(status, 'status', values(ClaimStatus)))
    invoice_id = query_int('invoiceId')
    if invoice_id is not None:
        query = query.filter(InsuranceClaim.invoice_id == invoice_id)
    claims = query.order_by(InsuranceClaim.submission_date.desc(), InsuranceClaim.id.desc()).all()
    return jsonify([claim.to_dict() for claim in claims]), 200

def get_claim(claim_id):
    claim = db.session.get(InsuranceClaim, claim_id)
    if not claim:
        return jsonify({'error': 'Claim not found'}), 404
    return jsonify(claim.to_dict()), 200

def submit_claim():
    data = get_json_body()
    require_fields(data, ['invoiceId', 'patientInsuranceId', 'claimAmount'])
    invoice_id = parse_int(data['invoiceId'], 'invoiceId')
    policy_id = parse_int(data['patientInsuranceId'], 'patientInsuranceId')
    claim_amount = parse_decimal(data['claimAmount'], 'claimAmount', minimum=CENTS)

    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({'error': 'Invalid invoice'}), 400
    policy = db.session.get(PatientInsurance, policy_id)
    if not policy:
        return jsonify({'error': 'Invalid insurance policy'}), 400

    if policy.patient_id != invoice.patient_id:
        raise ValidationError(
            'Insurance policy does not belong to the invoiced patient',
            {'patientInsuranceId': 'patient_mismatch'}
        )
    if not policy.is_active or (policy.expiration_date and policy.expiration_date < utcnow().date()):
        raise ValidationError('Insurance policy is not active', {'patientInsuranceId': 'inactive'})
    if claim_amount > invoice.total_amount:
        raise ValidationError('claimAmount cannot exceed the invoice total', {'claimAmount': 'out_of_range'})

    claim_number = data.get('claimNumber') or generate_number('CLM', InsuranceClaim, InsuranceClaim.claim_number)
    if InsuranceClaim.query.filter_by(claim_number=claim_number).first():
        return jsonify({'error': 'Claim number already exists'}), 409

    claim = InsuranceClaim(
        invoice_id=invoice.id,
        patient_insurance_id=policy.id,
        claim_number=claim_number,
        claim_amount=claim_amount,
        status=ClaimStatus.SUBMITTED.value
    )

    try:
        db.session.add(claim)
        db.session.flush()
        record_audit('CREATE', claim)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error submitting claim for invoice {invoice_id}: {e}')
        return jsonify({'error': 'Failed to submit claim'}), 500

    return jsonify(claim.to_dict()), 201

def _apply_approval(claim, approved_amount):
    """Adds the approved amount to the invoice's insurance coverage.

    Coverage from earlier approvals is kept, and an approval may only cover
    what is still outstanding, so amounts the patient already paid stay theirs.
    """
    invoice = claim.invoice
    if approved_amount > invoice.outstanding_balance:
        raise ValidationError(
            'approvedAmount exceeds the outstanding invoice balance',
            {'approvedAmount': 'exceeds_outstanding'}
        )
    old_values = snapshot(invoice)
    invoice.insurance_covered = (invoice.insurance_covered or ZERO) + approved_amount
    invoice.recalculate_balances()
    settled = invoice.settled_status()
    if settled and can_transition(InvoiceStatus, invoice.status, settled.value):
        invoice.status = settled.value
    return invoice, old_values

def update_claim_status(claim_id):
    """Records the insurer's response: approved, rejected, or paid out."""
    claim = db.session.get(InsuranceClaim, claim_id)
    if not claim:
        return jsonify({'error': 'Claim not found'}), 404

    data = get_json_body()
    require_fields(data, ['status'])
    target = parse_choice(data['status'], 'status', values(ClaimStatus))
    check_transition(ClaimStatus, claim.status, target)

    old_values = snapshot(claim)
    invoice_change = None

    if target == ClaimStatus.APPROVED.value:
        require_fields(data, ['approvedAmount'])
        approved_amount = parse_decimal(data['approvedAmount'], 'approvedAmount', minimum=ZERO)
        if approved_amount > claim.claim_amount:
            raise ValidationError('approvedAmount cannot exceed claimAmount', {'approvedAmount': 'out_of_range'})
        invoice_change = _apply_approval(claim, approved_amount)
        claim.approved_amount = approved_amount
        claim.response_date = utcnow()
    elif target == ClaimStatus.REJECTED.value:
        require_fields(data, ['rejectionReason'])
        claim.rejection_reason = data['rejectionReason']
        claim.response_date = utcnow()

    claim.status = target

    try:
        db.session.flush()
        record_audit('STATUS_CHANGE', claim, old_values)
        if invoice_change:
            invoice, invoice_old_values = invoice_change
            record_audit('UPDATE', invoice, invoice_old_values)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error updating claim {claim_id}: {e}')
        return jsonify({'error': 'Failed to update claim'}), 500

    return jsonify(claim.to_dict()), 200
