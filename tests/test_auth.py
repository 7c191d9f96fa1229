from transfer_tracker.extensions import db
from transfer_tracker.models import User


def test_login_and_me(client):
    response = client.post('/auth/login', json={
        'username': 'streator',
        'password': 'streator-pw'
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['user']['location'] == 'Streator'
    assert body['user']['isAdmin'] is False

    me = client.get('/auth/me').get_json()['user']
    assert me['username'] == 'streator'


def test_login_accepts_form_data(client):
    response = client.post('/auth/login', data={
        'username': 'bradley',
        'password': 'bradley-pw'
    })
    assert response.status_code == 200


def test_login_rejects_bad_credentials(client):
    for username, password in [('streator', 'nope'), ('ghost', 'streator-pw')]:
        response = client.post('/auth/login', json={
            'username': username,
            'password': password
        })
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid credentials'


def test_login_validation(client):
    response = client.post('/auth/login', json={'username': 'streator'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Username and password are required'

    response = client.post('/auth/login', json={
        'username': 'x' * 101,
        'password': 'secret'
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid username format'


def test_logout(login):
    client = login('streator')
    assert client.post('/auth/logout').get_json() == {'success': True}
    assert client.get('/auth/me').status_code == 401


def test_admin_status_comes_from_database(app, login, users):
    client = login('streator')
    with app.app_context():
        user = db.session.get(User, users['streator'])
        user.is_admin = True
        db.session.commit()

    assert client.get('/auth/me').get_json()['user']['isAdmin'] is True


def test_csrf_token(client):
    response = client.get('/auth/csrf-token')
    assert response.status_code == 200
    assert response.get_json()['csrfToken']


def test_csrf_enforced_when_enabled(app, login):
    client = login('streator')
    app.config['WTF_CSRF_ENABLED'] = True
    try:
        response = client.patch('/api/transfers/1', json={'notes': 'x'})
        assert response.status_code == 400
        assert 'CSRF' in response.get_json()['error']

        token = client.get('/auth/csrf-token').get_json()['csrfToken']
        response = client.patch(
            '/api/transfers/1',
            json={'notes': 'x'},
            headers={'X-CSRFToken': token}
        )
        assert response.status_code == 404
    finally:
        app.config['WTF_CSRF_ENABLED'] = False
