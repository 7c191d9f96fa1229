# transfer_tracker/models/transfer.py

from sqlalchemy.orm import validates
from transfer_tracker.extensions import db
from transfer_tracker.engine.rules import (
    STATUSES, STATUS_PENDING, TRANSFER_TYPES, TYPE_SEND,
    ARCHIVE_ACTIVE, ARCHIVE_ARCHIVED, ARCHIVE_ALL
)
from transfer_tracker.utils import utcnow, isoformat


class Transfer(db.Model):
    """One document movement (send) or request between two locations.

    ``from_user`` is always the party that controls the status before
    fulfillment, ``to_user`` the party that tracks receipt afterwards.
    """
    __tablename__ = 'transfer'

    id = db.Column(db.Integer, primary_key=True)
    from_user_id = db.Column(
        db.Integer, db.ForeignKey('user.id'), nullable=False, index=True
    )
    to_user_id = db.Column(
        db.Integer, db.ForeignKey('user.id'), nullable=False, index=True
    )
    transfer_type = db.Column(db.String(20), nullable=False, default=TYPE_SEND)

    pdf_file_name = db.Column(db.String(255), nullable=False)
    pdf_path = db.Column(db.String(512), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    status_updated_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    received_at_destination = db.Column(db.Boolean, nullable=False, default=False)
    received_at_destination_at = db.Column(db.DateTime)
    entered_into_system = db.Column(db.Boolean, nullable=False, default=False)
    entered_into_system_at = db.Column(db.DateTime)

    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)
    archived_at = db.Column(db.DateTime)

    viewed_by_recipient = db.Column(db.Boolean, nullable=False, default=False)
    viewed_by_recipient_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    from_user = db.relationship('User', foreign_keys=[from_user_id], lazy='joined')
    to_user = db.relationship('User', foreign_keys=[to_user_id], lazy='joined')

    @validates('status')
    def validate_status(self, key, value):
        if value not in STATUSES:
            raise ValueError("Invalid status")
        return value

    @validates('transfer_type')
    def validate_transfer_type(self, key, value):
        if value not in TRANSFER_TYPES:
            raise ValueError("Invalid transfer type")
        return value

    @classmethod
    def visible_to(cls, principal, archive_filter=ARCHIVE_ACTIVE):
        """Transfers the principal may list, newest first.

        Args:
            principal: Caller; admins see every transfer
            archive_filter: 'active', 'archived' or 'all'

        Returns:
            Query: Ordered transfer query
        """
        query = cls.query
        if not principal.is_admin:
            query = query.filter(db.or_(
                cls.from_user_id == principal.id,
                cls.to_user_id == principal.id
            ))

        if archive_filter == ARCHIVE_ACTIVE:
            query = query.filter(cls.archived.is_(False))
        elif archive_filter == ARCHIVE_ARCHIVED:
            query = query.filter(cls.archived.is_(True))
        elif archive_filter != ARCHIVE_ALL:
            raise ValueError(f"Unknown archive filter: {archive_filter}")

        return query.order_by(cls.created_at.desc(), cls.id.desc())

    def apply(self, updates):
        """Assign a mapping of column updates produced by the engine."""
        for name, value in updates.items():
            setattr(self, name, value)

    def to_dict(self):
        return {
            'id': self.id,
            'fromUserId': self.from_user_id,
            'toUserId': self.to_user_id,
            'transferType': self.transfer_type,
            'pdfFileName': self.pdf_file_name,
            'pdfPath': self.pdf_path,
            'status': self.status,
            'statusUpdatedAt': isoformat(self.status_updated_at),
            'notes': self.notes,
            'receivedAtDestination': bool(self.received_at_destination),
            'receivedAtDestinationAt': isoformat(self.received_at_destination_at),
            'enteredIntoSystem': bool(self.entered_into_system),
            'enteredIntoSystemAt': isoformat(self.entered_into_system_at),
            'archived': bool(self.archived),
            'archivedAt': isoformat(self.archived_at),
            'viewedByRecipient': bool(self.viewed_by_recipient),
            'viewedByRecipientAt': isoformat(self.viewed_by_recipient_at),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
            'fromUser': self.from_user.to_summary() if self.from_user else None,
            'toUser': self.to_user.to_summary() if self.to_user else None,
        }

    def __repr__(self):
        return f'<Transfer {self.id} {self.transfer_type} {self.status}>'
