"""Shared pytest fixtures."""

import itertools

import pytest

from clinic import create_app
from clinic.extensions import db
from clinic.models.user_models import User

PASSWORD = 'Str0ng!Passw0rd'


@pytest.fixture
def app():
    """A fresh application bound to an in-memory SQLite database."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(username, role, password=PASSWORD):
    user = User(username=username, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, username, password=PASSWORD):
    response = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(app, client):
    create_user('admin', 'admin')
    return auth_headers(login(client, 'admin')['access_token'])


@pytest.fixture
def staff_headers(app, client):
    create_user('frontdesk', 'staff')
    return auth_headers(login(client, 'frontdesk')['access_token'])


@pytest.fixture
def doctor_headers(app, client):
    create_user('dr_house', 'doctor')
    return auth_headers(login(client, 'dr_house')['access_token'])


@pytest.fixture
def patient_headers(app, client):
    create_user('portal_user', 'patient')
    return auth_headers(login(client, 'portal_user')['access_token'])


@pytest.fixture
def make_branch(client, admin_headers):
    def _make(**overrides):
        payload = {'name': 'ABC Clinic', 'location': 'Springfield', 'address': '742 Evergreen Terrace'}
        payload.update(overrides)
        response = client.post('/api/branches', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_patient(client, admin_headers):
    def _make(branch_id, **overrides):
        payload = {
            'firstName': 'Homer',
            'lastName': 'Simpson',
            'dateOfBirth': '1956-05-12',
            'gender': 'male',
            'address': '742 Evergreen Terrace',
            'phone': '555-0113',
            'registeredBranch': branch_id,
        }
        payload.update(overrides)
        response = client.post('/api/patients', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_treatment(client, admin_headers):
    codes = itertools.count(1)

    def _make(**overrides):
        payload = {
            'serviceCode': f'SVC{next(codes):03d}',
            'name': 'Scale and polish',
            'price': '80.00',
            'category': 'Cleaning',
        }
        payload.update(overrides)
        response = client.post('/api/treatments', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_staff(client, admin_headers):
    names = itertools.count(1)

    def _make(branch_id, role='doctor', **overrides):
        user = create_user(f'clinician{next(names)}', role)
        payload = {
            'userId': user.id,
            'firstName': 'Julius',
            'lastName': 'Hibbert',
            'specialty': 'General practice',
            'branchId': branch_id,
        }
        payload.update(overrides)
        response = client.post('/api/staff', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_appointment(client, admin_headers):
    def _make(patient_id, doctor_id, branch_id, **overrides):
        payload = {
            'patientId': patient_id,
            'doctorId': doctor_id,
            'branchId': branch_id,
            'appointmentDate': '2026-11-02',
            'appointmentTime': '09:30',
        }
        payload.update(overrides)
        response = client.post('/api/appointments', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def visit(make_branch, make_patient, make_staff, make_appointment):
    """A branch, patient, doctor and scheduled appointment wired together."""
    branch = make_branch()
    patient = make_patient(branch['id'])
    doctor = make_staff(branch['id'])
    appointment = make_appointment(patient['id'], doctor['id'], branch['id'])
    return {'branch': branch, 'patient': patient, 'doctor': doctor, 'appointment': appointment}
