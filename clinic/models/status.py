# /clinic/models/status.py
"""Lifecycle states for appointments, invoices and insurance claims.

Each status column only ever holds a value of one of these enums, and a
change of value must appear in the matching transition table.
"""
import enum


class StatusTransitionError(Exception):
    """Raised when a status change is not allowed from the current state."""
    status_code = 409

    def __init__(self, entity, current, target):
        self.message = f"Cannot change {entity} status from '{current}' to '{target}'"
        super().__init__(self.message)
        self.entity = entity
        self.current = current
        self.target = target

    def to_dict(self):
        return {'error': self.message}


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class InvoiceStatus(str, enum.Enum):
    PENDING = 'pending'
    PARTIALLY_PAID = 'partially_paid'
    PAID = 'paid'
    OVERDUE = 'overdue'


class ClaimStatus(str, enum.Enum):
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    PAID = 'paid'


APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

INVOICE_TRANSITIONS = {
    InvoiceStatus.PENDING: {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.OVERDUE},
    InvoiceStatus.PARTIALLY_PAID: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID},
    InvoiceStatus.PAID: set(),
}

CLAIM_TRANSITIONS = {
    ClaimStatus.SUBMITTED: {ClaimStatus.APPROVED, ClaimStatus.REJECTED},
    ClaimStatus.APPROVED: {ClaimStatus.PAID},
    ClaimStatus.REJECTED: set(),
    ClaimStatus.PAID: set(),
}

_TABLES = {
    AppointmentStatus: ('appointment', APPOINTMENT_TRANSITIONS),
    InvoiceStatus: ('invoice', INVOICE_TRANSITIONS),
    ClaimStatus: ('claim', CLAIM_TRANSITIONS),
}


def values(status_enum):
    return [member.value for member in status_enum]


def can_transition(status_enum, current, target) -> bool:
    _, table = _TABLES[status_enum]
    return status_enum(target) in table[status_enum(current)]


def check_transition(status_enum, current, target):
    """Returns the target member, raising StatusTransitionError if disallowed."""
    entity, table = _TABLES[status_enum]
    target_member = status_enum(target)
    if target_member not in table[status_enum(current)]:
        raise StatusTransitionError(entity, current, target_member.value)
    return target_member
