from concurrent.futures import ThreadPoolExecutor

import pytest

from clinic import create_app
from clinic.extensions import db
from config import TestingConfig
from tests.conftest import create_user, login, auth_headers

REGISTRATIONS = 12


@pytest.fixture
def file_app(tmp_path, monkeypatch):
    """An app on a file-backed SQLite database, so requests on separate threads use separate connections."""
    monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_DATABASE_URI', f"sqlite:///{tmp_path / 'clinic.db'}")
    monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_ENGINE_OPTIONS', {'connect_args': {'timeout': 30}})
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        create_user('admin', 'admin')
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_concurrent_registrations_get_distinct_ids(file_app):
    client = file_app.test_client()
    headers = auth_headers(login(client, 'admin')['access_token'])
    branch = client.post('/api/branches', json={
        'name': 'ABC Clinic', 'location': 'Springfield', 'address': '742 Evergreen Terrace'
    }, headers=headers).get_json()

    def register(n):
        response = file_app.test_client().post('/api/patients', json={
            'firstName': f'Patient{n}',
            'lastName': 'Simpson',
            'dateOfBirth': '1980-01-01',
            'gender': 'other',
            'address': '742 Evergreen Terrace',
            'phone': f'555-{n:04d}',
            'registeredBranch': branch['id'],
        }, headers=headers)
        return response.status_code, (response.get_json() or {}).get('id')

    with ThreadPoolExecutor(max_workers=REGISTRATIONS) as pool:
        results = list(pool.map(register, range(REGISTRATIONS)))

    assert [status for status, _ in results] == [201] * REGISTRATIONS
    assert sorted(patient_id for _, patient_id in results) == [
        f'SPR{n:03d}' for n in range(1, REGISTRATIONS + 1)
    ]
