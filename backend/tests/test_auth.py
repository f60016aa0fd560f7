"""Test authentication endpoints."""
import json

import pytest

from checkin.models.user import User, UserRole


@pytest.fixture
def sample_user(app):
    """Create sample user for testing."""
    user = User(
        email='test@example.com',
        name='Test User',
        role=UserRole.STUDENT
    )
    user.set_password('password123')
    return user.save()


def test_login_success(client, sample_user):
    """Test successful login."""
    response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'password123'
        })

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] == False
    assert 'access_token' in data['data']
    assert 'refresh_token' in data['data']
    assert 'password_hash' not in data['data']['user']


def test_login_is_case_insensitive_on_email(client, sample_user):
    response = client.post('/api/auth/login',
        json={'email': '  TEST@example.com ', 'password': 'password123'})
    assert response.status_code == 200


def test_login_invalid_credentials(client, sample_user):
    """Test login with invalid credentials."""
    response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'wrongpassword'
        })

    assert response.status_code == 401


def test_login_validation(client):
    # Missing body
    response = client.post('/api/auth/login', data='not json', content_type='text/plain')
    assert response.status_code == 400

    # Missing fields
    response = client.post('/api/auth/login', json={'email': 'test@example.com'})
    assert response.status_code == 400
    assert json.loads(response.data)['message'] == 'Email and password are required'


def test_inactive_account(client, sample_user):
    sample_user.update(is_active=False)
    response = client.post('/api/auth/login',
        json={'email': 'test@example.com', 'password': 'password123'})
    assert response.status_code == 401
    assert json.loads(response.data)['message'] == 'Account is deactivated'


def test_get_current_user(client, sample_user):
    """Test get current user profile."""
    # First login to get token
    login_response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'password123'
        })

    token = json.loads(login_response.data)['data']['access_token']

    response = client.get('/api/auth/me',
        headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] == False
    assert data['data']['email'] == 'test@example.com'
    assert data['data']['role'] == 'student'


def test_me_reports_teacher_profile(client, teacher, auth_headers):
    response = client.get('/api/auth/me', headers=auth_headers(teacher.user))
    assert json.loads(response.data)['data']['teacher_id'] == teacher.id


def test_refresh_token(client, sample_user):
    login_response = client.post('/api/auth/login',
        json={'email': 'test@example.com', 'password': 'password123'})
    refresh = json.loads(login_response.data)['data']['refresh_token']

    response = client.post('/api/auth/refresh', headers={'Authorization': f'Bearer {refresh}'})

    assert response.status_code == 200
    assert 'access_token' in json.loads(response.data)['data']


def test_invalid_token_rejected(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert response.status_code == 401
