from datetime import timedelta

import pytest

from clinic.extensions import db
from clinic.models.user_models import User, Session
from clinic.utils.time_util import utcnow
from tests.conftest import PASSWORD, create_user, login, auth_headers


def test_login_returns_tokens_and_opens_sessions(app, client):
    user = create_user('admin', 'admin')

    body = login(client, 'admin')

    assert body['access_token'] and body['refresh_token']
    assert body['user']['username'] == 'admin'
    assert body['user']['role'] == 'admin'
    assert Session.query.filter_by(user_id=user.id).count() == 2


def test_login_rejects_bad_credentials(app, client):
    create_user('admin', 'admin')

    response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'wrong'})
    assert response.status_code == 401

    response = client.post('/api/auth/login', json={'username': 'nobody', 'password': PASSWORD})
    assert response.status_code == 401

    response = client.post('/api/auth/login', json={'username': 'admin'})
    assert response.status_code == 400


def test_inactive_user_cannot_log_in(app, client):
    user = create_user('retired', 'staff')
    user.is_active = False
    db.session.commit()

    response = client.post('/api/auth/login', json={'username': 'retired', 'password': PASSWORD})

    assert response.status_code == 403


def test_endpoints_require_a_token(client):
    response = client.get('/api/patients')

    assert response.status_code == 401
    assert 'error' in response.get_json()


def test_malformed_token_is_rejected(client):
    response = client.get('/api/branches', headers=auth_headers('not-a-jwt'))

    assert response.status_code == 401


def test_logout_revokes_the_access_and_refresh_tokens(app, client):
    create_user('admin', 'admin')
    body = login(client, 'admin')
    headers = auth_headers(body['access_token'])

    response = client.post('/api/auth/logout', json={'refreshToken': body['refresh_token']}, headers=headers)
    assert response.status_code == 200

    response = client.get('/api/users/me', headers=headers)
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Token has been revoked'

    response = client.post('/api/auth/refresh', headers=auth_headers(body['refresh_token']))
    assert response.status_code == 401


def test_expired_session_row_revokes_token(app, client):
    user = create_user('admin', 'admin')
    headers = auth_headers(login(client, 'admin')['access_token'])

    for session in Session.query.filter_by(user_id=user.id):
        session.expires_at = utcnow() - timedelta(seconds=1)
    db.session.commit()

    assert client.get('/api/users/me', headers=headers).status_code == 401


def test_refresh_issues_a_working_access_token(app, client):
    create_user('admin', 'admin')
    body = login(client, 'admin')

    response = client.post('/api/auth/refresh', headers=auth_headers(body['refresh_token']))
    assert response.status_code == 200

    me = client.get('/api/users/me', headers=auth_headers(response.get_json()['access_token']))
    assert me.status_code == 200
    assert me.get_json()['username'] == 'admin'


def test_access_token_cannot_be_used_to_refresh(app, client):
    create_user('admin', 'admin')
    body = login(client, 'admin')

    response = client.post('/api/auth/refresh', headers=auth_headers(body['access_token']))

    assert response.status_code == 401


def test_admin_registers_user(client, admin_headers):
    response = client.post('/api/auth/register', json={
        'username': 'nurse', 'password': 'An0ther!Passw0rd', 'role': 'staff'
    }, headers=admin_headers)

    assert response.status_code == 201
    assert response.get_json()['role'] == 'staff'
    assert User.query.filter_by(username='nurse').one().check_password('An0ther!Passw0rd')


@pytest.mark.parametrize('payload, status', [
    ({'username': 'admin', 'password': 'An0ther!Passw0rd', 'role': 'staff'}, 409),
    ({'username': 'nurse', 'password': 'short', 'role': 'staff'}, 400),
    ({'username': 'nurse', 'password': 'An0ther!Passw0rd', 'role': 'superuser'}, 400),
    ({'username': 'nurse', 'role': 'staff'}, 400),
])
def test_register_rejects_bad_input(client, admin_headers, payload, status):
    response = client.post('/api/auth/register', json=payload, headers=admin_headers)

    assert response.status_code == status


def test_only_admins_register_users(client, staff_headers):
    response = client.post('/api/auth/register', json={
        'username': 'nurse', 'password': 'An0ther!Passw0rd', 'role': 'staff'
    }, headers=staff_headers)

    assert response.status_code == 403
    assert response.get_json()['error'] == 'Permission denied'


def test_patient_role_cannot_reach_clinic_data(client, patient_headers):
    assert client.get('/api/patients', headers=patient_headers).status_code == 403
    assert client.get('/api/branches', headers=patient_headers).status_code == 403


def test_deactivated_user_loses_access(app, client):
    user = create_user('frontdesk', 'staff')
    headers = auth_headers(login(client, 'frontdesk')['access_token'])
    user.is_active = False
    db.session.commit()

    response = client.get('/api/branches', headers=headers)

    assert response.status_code == 403
    assert response.get_json()['error'] == 'User not found or inactive'


def test_weak_passwords_are_rejected():
    user = User(username='x', role='staff')
    for weak in ('Short1!', 'alllowercase1!xx', 'ALLUPPERCASE1!XX', 'NoDigitsHere!!xx', 'NoSpecials1234xx'):
        with pytest.raises(ValueError):
            user.set_password(weak)
