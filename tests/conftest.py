import os
import tempfile
import pytest
from transfer_tracker import create_app
from transfer_tracker.extensions import db
from transfer_tracker.models import User, Transfer
from transfer_tracker.utils import utcnow

PDF_BYTES = b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n'

# username -> (location, password, is_admin)
TEST_USERS = {
    'admin': ('Admin', 'admin', True),
    'streator': ('Streator', 'streator-pw', False),
    'bradley': ('Bradley', 'bradley-pw', False),
    'bloomington': ('Bloomington', 'bloomington-pw', False),
}


@pytest.fixture
def app(tmp_path):
    """Create and configure a new app instance for each test."""
    # Create a temporary file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'ADMIN_PASSWORD': None,
        'AWS_ACCESS_KEY_ID': None,
        'AWS_SECRET_ACCESS_KEY': None,
        'AWS_S3_BUCKET_NAME': None,
    })

    # Create the database and load test data
    with app.app_context():
        db.create_all()
        init_test_data()

    yield app

    with app.app_context():
        db.engine.dispose()

    # Close and remove the temporary database
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def users(app):
    """Map of username to user id."""
    with app.app_context():
        return {user.username: user.id for user in User.query.all()}


@pytest.fixture
def login(app):
    """Return a factory of test clients logged in as a given user."""
    def _login(username):
        client = app.test_client()
        password = TEST_USERS[username][1]
        response = client.post('/auth/login', json={
            'username': username,
            'password': password
        })
        assert response.status_code == 200
        return client
    return _login


@pytest.fixture
def make_transfer(app, users):
    """Insert a transfer row directly and return its id."""
    def _make(from_user, to_user, transfer_type='send', **fields):
        now = utcnow()
        with app.app_context():
            transfer = Transfer(
                from_user_id=users[from_user],
                to_user_id=users[to_user],
                transfer_type=transfer_type,
                pdf_file_name='manifest.pdf',
                pdf_path=app.extensions['blob_storage'].put(
                    PDF_BYTES, f'test_{from_user}_{to_user}_{now.timestamp()}.pdf'
                ),
                status='pending',
                status_updated_at=now,
                created_at=now,
                updated_at=now
            )
            transfer.apply(fields)
            db.session.add(transfer)
            db.session.commit()
            return transfer.id
    return _make


def init_test_data():
    """Initialize test data."""
    for username, (location, password, is_admin) in TEST_USERS.items():
        user = User(username=username, location=location, is_admin=is_admin)
        user.set_password(password)
        db.session.add(user)
    db.session.commit()
