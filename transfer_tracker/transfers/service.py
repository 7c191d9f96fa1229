# transfer_tracker/transfers/service.py

"""Transfer operations behind the HTTP API.

Each function loads what it needs, asks the engine for a decision, applies
the derived updates and commits once. Expected outcomes (missing transfer,
denied access, bad input) are raised as ``TransferError`` subclasses and
turned into JSON responses by the app's error handler.
"""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError, OperationalError, DisconnectionError

from transfer_tracker.engine import (
    requested_groups, evaluate_update, can_read, can_delete,
    should_mark_viewed, parse_changes, compute_update
)
from transfer_tracker.engine.rules import (
    TRANSFER_TYPES, TYPE_SEND, STATUS_PENDING, ARCHIVE_ACTIVE, ARCHIVE_FILTERS
)
from transfer_tracker.engine.state import MAX_NOTES_LENGTH
from transfer_tracker.errors import (
    AccessDenied, NotFound, ValidationError, TransientError
)
from transfer_tracker.extensions import db, blob_storage
from transfer_tracker.models import Transfer, User
from transfer_tracker.storage import StorageError, BlobNotFound
from transfer_tracker.utils import utcnow, is_pdf, generate_blob_name, sanitize_filename


def _commit():
    """Commit the session, mapping lost connections to a retryable error."""
    try:
        db.session.commit()
    except (OperationalError, DisconnectionError) as e:
        db.session.rollback()
        current_app.logger.error(f'Database unavailable during commit: {e}')
        raise TransientError() from e
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _load(transfer_id, for_update=False):
    query = Transfer.query.filter(Transfer.id == transfer_id)
    if for_update:
        query = query.with_for_update(of=Transfer)
    transfer = query.first()
    if transfer is None:
        raise NotFound()
    return transfer


def _require_read(principal, transfer):
    decision = can_read(principal, transfer)
    if not decision:
        current_app.logger.warning(
            f'User {principal.id} denied access to transfer {transfer.id}'
        )
        raise AccessDenied(decision.reason)


def _discard_blob(key):
    try:
        blob_storage.delete(key)
    except (StorageError, OSError) as e:
        current_app.logger.warning(f'Could not delete file {key}: {e}')


def create_transfer(principal, transfer_type, location_id, data, filename):
    """Store an uploaded PDF and open a pending transfer for it.

    Args:
        principal: Uploading location
        transfer_type: 'send' (principal -> location) or 'request'
            (location -> principal); defaults to 'send'
        location_id: The other location
        data: PDF bytes
        filename: Name the file was uploaded under

    Returns:
        dict: Serialized transfer
    """
    transfer_type = transfer_type or TYPE_SEND
    if transfer_type not in TRANSFER_TYPES:
        raise ValidationError('Invalid transfer type')
    if not location_id:
        raise ValidationError('Location is required')

    other = db.session.get(User, location_id)
    if other is None or other.is_admin:
        raise ValidationError('Invalid location')
    if other.id == principal.id:
        raise ValidationError('Cannot create a transfer with your own location')

    if not is_pdf(data):
        raise ValidationError('Invalid PDF file. File must be a valid PDF document.')

    if transfer_type == TYPE_SEND:
        from_user_id, to_user_id = principal.id, other.id
    else:
        from_user_id, to_user_id = other.id, principal.id

    try:
        key = blob_storage.put(data, generate_blob_name())
    except (StorageError, OSError) as e:
        current_app.logger.error(f'Failed to store uploaded file: {e}')
        raise TransientError('Failed to store file. Please try again later.') from e

    now = utcnow()
    transfer = Transfer(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        transfer_type=transfer_type,
        pdf_file_name=sanitize_filename(filename),
        pdf_path=key,
        status=STATUS_PENDING,
        status_updated_at=now,
        created_at=now,
        updated_at=now
    )
    db.session.add(transfer)
    try:
        _commit()
    except (TransientError, SQLAlchemyError):
        _discard_blob(key)
        raise

    current_app.logger.info(
        f'Transfer {transfer.id} created: {transfer_type} '
        f'{from_user_id} -> {to_user_id} ({key})'
    )
    return transfer.to_dict()


def get_transfer(principal, transfer_id):
    """Read one transfer, clearing its unread badge when the reader owns it.

    If the viewed flag cannot be saved the unmarked record is returned and
    the read still succeeds.
    """
    transfer = _load(transfer_id)
    _require_read(principal, transfer)

    snapshot = transfer.to_dict()
    if not should_mark_viewed(principal, transfer):
        return snapshot

    transfer.apply({
        'viewed_by_recipient': True,
        'viewed_by_recipient_at': utcnow()
    })
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning(
            f'Could not mark transfer {transfer_id} as viewed: {e}'
        )
        return snapshot

    current_app.logger.info(
        f'Transfer {transfer_id} marked as viewed by user {principal.id}'
    )
    return transfer.to_dict()


def update_transfer(principal, transfer_id, payload):
    """Apply a partial update after checking every field group it touches.

    The whole request is rejected if any group is not permitted.
    """
    changes = parse_changes(
        payload,
        current_app.config.get('MAX_NOTES_LENGTH', MAX_NOTES_LENGTH)
    )

    transfer = _load(transfer_id, for_update=True)
    try:
        _require_read(principal, transfer)
        decision = evaluate_update(
            principal, transfer, requested_groups(transfer, changes)
        )
        if not decision:
            current_app.logger.warning(
                f'User {principal.id} denied update of transfer '
                f'{transfer_id}: {decision.reason}'
            )
            raise AccessDenied(decision.reason)
    except AccessDenied:
        db.session.rollback()
        raise

    updates = compute_update(transfer, changes, utcnow())
    if not updates:
        db.session.rollback()
        return transfer.to_dict()

    transfer.apply(updates)
    _commit()
    current_app.logger.info(
        f'Transfer {transfer_id} updated by user {principal.id}: '
        f'{", ".join(sorted(updates))}'
    )
    return transfer.to_dict()


def delete_transfer(principal, transfer_id):
    """Delete a transfer record, then its stored file (best effort)."""
    decision = can_delete(principal)
    if not decision:
        current_app.logger.warning(
            f'User {principal.id} denied deletion of transfer {transfer_id}'
        )
        raise AccessDenied(decision.reason)

    transfer = _load(transfer_id)
    key = transfer.pdf_path
    db.session.delete(transfer)
    _commit()
    current_app.logger.info(f'Transfer {transfer_id} deleted by user {principal.id}')

    _discard_blob(key)


def list_transfers(principal, archive_filter=None):
    archive_filter = archive_filter or ARCHIVE_ACTIVE
    if archive_filter not in ARCHIVE_FILTERS:
        raise ValidationError('Invalid archive filter')
    transfers = Transfer.visible_to(principal, archive_filter).all()
    return [transfer.to_dict() for transfer in transfers]


def list_locations(exclude_id=None):
    return [user.to_summary() for user in User.locations(exclude_id)]


def get_transfer_file(principal, transfer_id):
    """Fetch the stored PDF of a transfer the principal may read.

    Returns:
        tuple: (bytes, display file name)
    """
    transfer = _load(transfer_id)
    _require_read(principal, transfer)

    try:
        data = blob_storage.get(transfer.pdf_path)
    except BlobNotFound as e:
        raise NotFound('File not found') from e
    except (StorageError, OSError) as e:
        current_app.logger.error(
            f'Failed to read file for transfer {transfer_id}: {e}'
        )
        raise TransientError('Failed to serve file') from e

    if not is_pdf(data):
        raise ValidationError('Invalid file type')
    return data, transfer.pdf_file_name
