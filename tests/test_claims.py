import pytest

from clinic.extensions import db
from clinic.models.patient_models import PatientInsurance


@pytest.fixture
def provider(client, admin_headers):
    response = client.post('/api/insurance/providers', json={'name': 'Springfield Mutual'}, headers=admin_headers)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def add_policy(client, admin_headers, provider):
    def _add(patient_id, **overrides):
        payload = {'providerId': provider['id'], 'policyNumber': 'POL-12345678', 'expirationDate': '2099-12-31'}
        payload.update(overrides)
        return client.post(f'/api/patients/{patient_id}/insurance', json=payload, headers=admin_headers)
    return _add


@pytest.fixture
def invoice(client, admin_headers, visit, make_treatment):
    treatment = make_treatment(price='300.00')
    client.post(f"/api/appointments/{visit['appointment']['id']}/treatments", json={
        'treatmentId': treatment['id'], 'recordedBy': visit['doctor']['id']
    }, headers=admin_headers)
    response = client.post('/api/invoices', json={'appointmentId': visit['appointment']['id']},
                           headers=admin_headers)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def policy(add_policy, visit):
    response = add_policy(visit['patient']['id'])
    assert response.status_code == 201
    return response.get_json()


def submit(client, headers, invoice, policy, amount='300.00', **extra):
    payload = {'invoiceId': invoice['id'], 'patientInsuranceId': policy['id'], 'claimAmount': amount}
    payload.update(extra)
    return client.post('/api/claims', json=payload, headers=headers)


def set_status(client, headers, claim, **payload):
    return client.patch(f"/api/claims/{claim['id']}/status", json=payload, headers=headers)


def test_policy_number_is_encrypted_at_rest(app, client, admin_headers, policy, visit):
    assert policy['policyNumber'] == 'POL-12345678'
    assert policy['providerName'] == 'Springfield Mutual'

    stored = db.session.get(PatientInsurance, policy['id'])
    assert 'POL-12345678' not in stored.policy_number

    listed = client.get(f"/api/patients/{visit['patient']['id']}/insurance", headers=admin_headers).get_json()
    assert [p['policyNumber'] for p in listed] == ['POL-12345678']


def test_policy_requires_known_patient_and_provider(client, admin_headers, add_policy, visit):
    assert add_policy('SPR999').status_code == 404

    response = add_policy(visit['patient']['id'], providerId=999)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid insurance provider'


def test_submit_claim(client, admin_headers, invoice, policy):
    response = submit(client, admin_headers, invoice, policy)

    assert response.status_code == 201
    claim = response.get_json()
    assert claim['claimNumber'].startswith('CLM-')
    assert claim['status'] == 'submitted'
    assert claim['claimAmount'] == '300.00'
    assert claim['approvedAmount'] is None


def test_claim_number_must_be_unique(client, admin_headers, invoice, policy):
    assert submit(client, admin_headers, invoice, policy, '100.00', claimNumber='CLAIM-1').status_code == 201

    response = submit(client, admin_headers, invoice, policy, '100.00', claimNumber='CLAIM-1')

    assert response.status_code == 409


def test_claim_cannot_exceed_invoice_total(client, admin_headers, invoice, policy):
    response = submit(client, admin_headers, invoice, policy, '300.01')

    assert response.status_code == 400
    assert response.get_json()['fields'] == {'claimAmount': 'out_of_range'}


def test_claim_policy_must_belong_to_invoiced_patient(client, admin_headers, invoice, add_policy, visit,
                                                      make_patient):
    stranger = make_patient(visit['branch']['id'], firstName='Moe', lastName='Szyslak')
    other_policy = add_policy(stranger['id']).get_json()

    response = submit(client, admin_headers, invoice, other_policy)

    assert response.status_code == 400
    assert response.get_json()['fields'] == {'patientInsuranceId': 'patient_mismatch'}


@pytest.mark.parametrize('overrides', [{'isActive': False}, {'expirationDate': '2000-01-01'}])
def test_claim_policy_must_be_active(client, admin_headers, invoice, add_policy, visit, overrides):
    lapsed = add_policy(visit['patient']['id'], **overrides).get_json()

    response = submit(client, admin_headers, invoice, lapsed)

    assert response.status_code == 400
    assert response.get_json()['fields'] == {'patientInsuranceId': 'inactive'}


def test_claim_references_must_exist(client, admin_headers, invoice, policy):
    assert submit(client, admin_headers, {'id': 999}, policy).get_json()['error'] == 'Invalid invoice'
    assert submit(client, admin_headers, invoice, {'id': 999}).get_json()['error'] == 'Invalid insurance policy'


def test_approval_moves_coverage_onto_invoice(client, admin_headers, invoice, policy):
    claim = submit(client, admin_headers, invoice, policy, '300.00').get_json()

    response = set_status(client, admin_headers, claim, status='approved', approvedAmount='250.00')

    assert response.status_code == 200
    assert response.get_json()['approvedAmount'] == '250.00'
    assert response.get_json()['responseDate'] is not None

    updated = client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).get_json()
    assert updated['insuranceCovered'] == '250.00'
    assert updated['patientResponsible'] == '50.00'
    assert updated['outstandingBalance'] == '50.00'
    assert updated['status'] == 'pending'


def test_full_approval_settles_invoice(client, admin_headers, invoice, policy):
    claim = submit(client, admin_headers, invoice, policy, '300.00').get_json()

    set_status(client, admin_headers, claim, status='approved', approvedAmount='300.00')

    updated = client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).get_json()
    assert updated['outstandingBalance'] == '0.00'
    assert updated['status'] == 'paid'


def test_approval_requires_amount_within_claim(client, admin_headers, invoice, policy):
    claim = submit(client, admin_headers, invoice, policy, '100.00').get_json()

    assert set_status(client, admin_headers, claim, status='approved').status_code == 400
    response = set_status(client, admin_headers, claim, status='approved', approvedAmount='100.01')
    assert response.status_code == 400
    assert client.get(f"/api/claims/{claim['id']}", headers=admin_headers).get_json()['status'] == 'submitted'


def test_rejection_requires_reason(client, admin_headers, invoice, policy):
    claim = submit(client, admin_headers, invoice, policy).get_json()

    assert set_status(client, admin_headers, claim, status='rejected').status_code == 400

    response = set_status(client, admin_headers, claim, status='rejected', rejectionReason='Not covered')
    assert response.status_code == 200
    assert response.get_json()['rejectionReason'] == 'Not covered'


def test_claim_transitions(client, admin_headers, invoice, policy):
    claim = submit(client, admin_headers, invoice, policy).get_json()

    assert set_status(client, admin_headers, claim, status='paid').status_code == 409
    assert set_status(client, admin_headers, claim, status='approved', approvedAmount='10.00').status_code == 200
    assert set_status(client, admin_headers, claim, status='rejected', rejectionReason='x').status_code == 409
    assert set_status(client, admin_headers, claim, status='paid').status_code == 200
    assert set_status(client, admin_headers, claim, status='approved', approvedAmount='10.00').status_code == 409


def test_list_claims_filters(client, admin_headers, invoice, policy):
    first = submit(client, admin_headers, invoice, policy, '100.00').get_json()
    second = submit(client, admin_headers, invoice, policy, '50.00').get_json()
    set_status(client, admin_headers, second, status='rejected', rejectionReason='Duplicate')

    def ids(**params):
        response = client.get('/api/claims', query_string=params, headers=admin_headers)
        assert response.status_code == 200
        return sorted(c['id'] for c in response.get_json())

    assert ids() == sorted([first['id'], second['id']])
    assert ids(status='submitted') == [first['id']]
    assert ids(invoiceId=invoice['id'], status='rejected') == [second['id']]
    assert ids(invoiceId=invoice['id'] + 1) == []


def test_approvals_on_one_invoice_accumulate(client, admin_headers, invoice, policy):
    first = submit(client, admin_headers, invoice, policy, '100.00').get_json()
    second = submit(client, admin_headers, invoice, policy, '100.00').get_json()

    set_status(client, admin_headers, first, status='approved', approvedAmount='100.00')
    set_status(client, admin_headers, second, status='approved', approvedAmount='100.00')

    updated = client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).get_json()
    assert updated['insuranceCovered'] == '200.00'
    assert updated['patientResponsible'] == '100.00'
    assert updated['outstandingBalance'] == '100.00'


def test_approval_cannot_cover_amount_already_paid(client, admin_headers, invoice, policy):
    client.post(f"/api/invoices/{invoice['id']}/payments", json={'amount': '250.00', 'paymentMethod': 'card'},
                headers=admin_headers)
    claim = submit(client, admin_headers, invoice, policy, '300.00').get_json()

    response = set_status(client, admin_headers, claim, status='approved', approvedAmount='300.00')

    assert response.status_code == 400
    assert response.get_json()['fields'] == {'approvedAmount': 'exceeds_outstanding'}
    unchanged = client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).get_json()
    assert unchanged['insuranceCovered'] == '0.00'
    assert unchanged['outstandingBalance'] == '50.00'
    assert client.get(f"/api/claims/{claim['id']}", headers=admin_headers).get_json()['status'] == 'submitted'

    response = set_status(client, admin_headers, claim, status='approved', approvedAmount='50.00')
    assert response.status_code == 200
    settled = client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).get_json()
    assert settled['paidAmount'] == '250.00'
    assert settled['insuranceCovered'] == '50.00'
    assert settled['outstandingBalance'] == '0.00'
    assert settled['status'] == 'paid'
