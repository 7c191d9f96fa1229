from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from transfer_tracker.extensions import db
from transfer_tracker.utils import utcnow


class User(UserMixin, db.Model):
    """A location account: both a login principal and a transfer endpoint.

    Inherits from:
        UserMixin: Provides default implementations for Flask-Login interface
        db.Model: SQLAlchemy model base class
    """
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    location = db.Column(db.String(120), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow
    )

    def set_password(self, password):
        """Set user's password hash from plain text password.

        Args:
            password: Plain text password to hash
        """
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if plain text password matches hash.

        Args:
            password: Plain text password to verify

        Returns:
            bool: True if password matches, False otherwise
        """
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @classmethod
    def locations(cls, exclude_id=None):
        """Locations a transfer can be addressed to.

        Admin accounts are not locations and are always left out.

        Args:
            exclude_id: Usually the caller's own id

        Returns:
            list: Users ordered by location name
        """
        query = cls.query.filter(cls.is_admin.is_(False))
        if exclude_id is not None:
            query = query.filter(cls.id != exclude_id)
        return query.order_by(cls.location, cls.id).all()

    def to_summary(self):
        return {
            'id': self.id,
            'username': self.username,
            'location': self.location,
        }

    def to_dict(self):
        data = self.to_summary()
        data['isAdmin'] = bool(self.is_admin)
        return data

    def __repr__(self):
        return f'<User {self.username}>'
