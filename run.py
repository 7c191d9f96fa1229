#!/usr/bin/env python
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file, fallback to .env.development
env_path = Path('.env')
if not env_path.exists():
    env_path = Path('.env.development')
load_dotenv(env_path)

from transfer_tracker import create_app  # noqa: E402
from transfer_tracker.cli import DEFAULT_LOCATIONS  # noqa: E402
from transfer_tracker.extensions import db  # noqa: E402
from transfer_tracker.models import User  # noqa: E402

app = create_app()


def init_database():
    """Seed development locations when the database has no users"""
    with app.app_context():
        for username, location, password in DEFAULT_LOCATIONS:
            user = User(username=username, location=location, is_admin=False)
            user.set_password(password)
            db.session.add(user)
            print(f'Location {location} created ({username})')

        try:
            db.session.commit()
            print('Database initialized successfully')
        except Exception as e:
            db.session.rollback()
            print(f'Error initializing database: {str(e)}')
            raise


if __name__ == '__main__':
    if os.environ.get('FLASK_ENV') == 'development':
        with app.app_context():
            if User.query.filter_by(is_admin=False).count() == 0:
                print("Database has no locations, seeding...")
                init_database()
            else:
                print('Using existing database with users.')

        app.run(debug=True)
    else:
        # Production mode - let gunicorn handle the serving
        app.run(debug=app.config['DEBUG'])
