import click
from flask.cli import with_appcontext
from transfer_tracker.engine import rederive
from transfer_tracker.extensions import db
from transfer_tracker.models import User, Transfer
from transfer_tracker.utils import utcnow

# (username, location, password) seeded by `flask seed-locations`
DEFAULT_LOCATIONS = [
    ('location1', 'Streator', 'password1'),
    ('location2', 'Bradley', 'password2'),
    ('location3', 'Bloomington', 'password3'),
    ('location4', 'Colorado Springs', 'password4'),
    ('location5', 'Matthews', 'password5'),
]


def init_cli(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_locations_command)
    app.cli.add_command(create_admin_command)
    app.cli.add_command(create_location_command)
    app.cli.add_command(rederive_archive_command)


def _upsert_user(username, location, password, is_admin=False):
    user = User.query.filter_by(username=username).first()
    created = user is None
    if created:
        user = User(username=username)
        db.session.add(user)
    user.location = location
    user.is_admin = is_admin
    user.set_password(password)
    return user, created


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Initialize database tables"""
    db.drop_all()
    db.create_all()
    click.echo("Database tables created fresh.")


@click.command("seed-locations")
@click.option('--admin-password', default='admin123', help='Admin password')
@with_appcontext
def seed_locations_command(admin_password):
    """Seed default locations and an admin account"""
    for username, location, password in DEFAULT_LOCATIONS:
        _, created = _upsert_user(username, location, password)
        verb = 'Created' if created else 'Updated'
        click.echo(f"{verb} location: {username} ({location})")

    _upsert_user('admin', 'Admin', admin_password, is_admin=True)

    try:
        db.session.commit()
        click.echo("Locations have been seeded successfully!")
        click.echo("Change the admin password after first login.")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error seeding locations: {str(e)}", err=True)


@click.command("create-admin")
@click.option('--username', default='admin', help='Admin username')
@click.option('--password', prompt=True, hide_input=True, help='Admin password')
@with_appcontext
def create_admin_command(username, password):
    """Create an admin user"""
    if User.query.filter_by(username=username).first():
        click.echo(f"Admin '{username}' already exists")
        return

    admin = User(username=username, location='Admin', is_admin=True)
    admin.set_password(password)
    db.session.add(admin)
    try:
        db.session.commit()
        click.echo(f"Admin '{username}' has been created")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating admin: {str(e)}", err=True)


@click.command("create-location")
@click.option('--username', required=True, help='Login name')
@click.option('--location', required=True, help='Display name of the location')
@click.option('--password', prompt=True, hide_input=True, help='Login password')
@with_appcontext
def create_location_command(username, location, password):
    """Create a location account"""
    if User.query.filter_by(username=username).first():
        click.echo(f"User '{username}' already exists")
        return

    user = User(username=username, location=location, is_admin=False)
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
        click.echo(f"Location '{location}' ({username}) has been created")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating location: {str(e)}", err=True)


@click.command("rederive-archive")
@with_appcontext
def rederive_archive_command():
    """Recompute the archive flag of every transfer"""
    now = utcnow()
    changed = 0
    for transfer in Transfer.query.all():
        updates = rederive(transfer, now)
        if updates:
            transfer.apply(updates)
            changed += 1

    try:
        db.session.commit()
        click.echo(f"Archive state updated for {changed} transfer(s)")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error updating archive state: {str(e)}", err=True)
