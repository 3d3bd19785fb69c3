from decimal import Decimal
from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.appointment_models import Appointment, APPOINTMENT_TYPES
from clinic.models.billing_models import Invoice
from clinic.models.branch_models import Branch, MedicalStaff
from clinic.models.patient_models import Patient
from clinic.models.status import AppointmentStatus, check_transition, values
from clinic.models.treatment_models import Treatment, TreatmentRecord
from clinic.utils.audit_util import record_audit, snapshot
from clinic.utils.validation import (
    get_json_body, require_fields, parse_int, parse_date, parse_time, parse_choice,
    parse_decimal, optional, query_int, query_date, CENTS
)

def get_appointments():
    """Lists appointments, filtered by any of patient, doctor, branch, date and status."""
    query = Appointment.query

    patient_id = request.args.get('patientId')
    if patient_id:
        query = query.filter(Appointment.patient_id == patient_id)
    doctor_id = query_int('doctorId')
    if doctor_id is not None:
        query = query.filter(Appointment.doctor_id == doctor_id)
    branch_id = query_int('branchId')
    if branch_id is not None:
        query = query.filter(Appointment.branch_id == branch_id)
    appointment_date = query_date('date')
    if appointment_date is not None:
        query = query.filter(Appointment.appointment_date == appointment_date)
    status = request.args.get('status')
    if status:
        query = query.filter(Appointment.status == parse_choice(status, 'status', values(AppointmentStatus)))

    appointments = query.order_by(Appointment.appointment_date, Appointment.appointment_time, Appointment.id).all()
    return jsonify([appt.to_dict() for appt in appointments]), 200

def get_appointment(appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404
    result = appointment.to_dict()
    result['treatments'] = [record.to_dict() for record in appointment.treatment_records]
    return jsonify(result), 200

def create_appointment():
    data = get_json_body()
    require_fields(data, ['patientId', 'doctorId', 'branchId', 'appointmentDate', 'appointmentTime'])

    doctor_id = parse_int(data['doctorId'], 'doctorId')
    branch_id = parse_int(data['branchId'], 'branchId')
    appointment_date = parse_date(data['appointmentDate'], 'appointmentDate')
    appointment_time = parse_time(data['appointmentTime'], 'appointmentTime')
    appointment_type = parse_choice(data.get('appointmentType') or 'regular', 'appointmentType', APPOINTMENT_TYPES)

    if not db.session.get(Patient, data['patientId']):
        return jsonify({'error': 'Invalid patient'}), 400
    doctor = db.session.get(MedicalStaff, doctor_id)
    if not doctor or not doctor.is_active:
        return jsonify({'error': 'Invalid doctor'}), 400
    if not db.session.get(Branch, branch_id):
        return jsonify({'error': 'Invalid branch'}), 400

    appointment = Appointment(
        patient_id=data['patientId'],
        doctor_id=doctor_id,
        branch_id=branch_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status=AppointmentStatus.SCHEDULED.value,
        appointment_type=appointment_type,
        notes=data.get('notes')
    )

    try:
        db.session.add(appointment)
        db.session.flush()
        record_audit('CREATE', appointment)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating appointment: {e}')
        return jsonify({'error': 'Failed to create appointment'}), 500

    return jsonify(appointment.to_dict()), 201

def update_appointment_status(appointment_id):
    """Moves an appointment to completed or cancelled."""
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404

    data = get_json_body()
    require_fields(data, ['status'])
    target = parse_choice(data['status'], 'status', values(AppointmentStatus))
    check_transition(AppointmentStatus, appointment.status, target)

    old_values = snapshot(appointment)
    appointment.status = target
    if target == AppointmentStatus.CANCELLED.value:
        appointment.cancellation_reason = data.get('cancellationReason')

    try:
        db.session.flush()
        record_audit('STATUS_CHANGE', appointment, old_values)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error updating appointment {appointment_id}: {e}')
        return jsonify({'error': 'Failed to update appointment'}), 500

    return jsonify(appointment.to_dict()), 200

def get_treatment_records(appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404
    return jsonify([record.to_dict() for record in appointment.treatment_records]), 200

def add_treatment_record(appointment_id):
    """Records a treatment delivered during the appointment, priced from the catalog by default."""
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404
    if appointment.status == AppointmentStatus.CANCELLED.value:
        return jsonify({'error': 'Cannot record treatments on a cancelled appointment'}), 409
    if Invoice.query.filter_by(appointment_id=appointment.id).first():
        return jsonify({'error': 'Appointment has already been invoiced'}), 409

    data = get_json_body()
    require_fields(data, ['treatmentId', 'recordedBy'])
    treatment_id = parse_int(data['treatmentId'], 'treatmentId')
    recorded_by = parse_int(data['recordedBy'], 'recordedBy')
    quantity = optional(data, 'quantity', parse_int, minimum=1) or 1
    unit_price = optional(data, 'unitPrice', parse_decimal, minimum=Decimal('0'))

    treatment = db.session.get(Treatment, treatment_id)
    if not treatment:
        return jsonify({'error': 'Invalid treatment'}), 400
    if not db.session.get(MedicalStaff, recorded_by):
        return jsonify({'error': 'Invalid staff member'}), 400

    if unit_price is None:
        unit_price = treatment.price
    total_price = parse_decimal((unit_price * quantity).quantize(CENTS), 'totalPrice')

    record = TreatmentRecord(
        appointment_id=appointment.id,
        treatment_id=treatment.id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        consultation_notes=data.get('consultationNotes'),
        recorded_by=recorded_by
    )

    try:
        db.session.add(record)
        db.session.flush()
        record_audit('CREATE', record)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error recording treatment for appointment {appointment_id}: {e}')
        return jsonify({'error': 'Failed to record treatment'}), 500

    return jsonify(record.to_dict()), 201
