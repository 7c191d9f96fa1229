# transfer_tracker/engine/state.py

"""Status, tracking and archive state of a transfer.

An update is computed in two steps: the requested changes are merged into
the current values, then the archive flag is derived from the merged result.
Both steps return plain dicts of column updates and never mutate the
transfer they are given.
"""

from transfer_tracker.engine.rules import STATUSES, STATUS_FULFILLED, TRACKING_FIELDS
from transfer_tracker.errors import ValidationError

MAX_NOTES_LENGTH = 5000

# Wire name -> column name
UPDATABLE_FIELDS = {
    'status': 'status',
    'notes': 'notes',
    'receivedAtDestination': 'received_at_destination',
    'enteredIntoSystem': 'entered_into_system',
}

TRACKING_TIMESTAMPS = {
    'received_at_destination': 'received_at_destination_at',
    'entered_into_system': 'entered_into_system_at',
}


def _parse_flag(name, value):
    # Form posts send booleans as strings
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value in ('true', '1')
    raise ValidationError(f'Invalid {name} format')


def parse_changes(payload, max_notes_length=MAX_NOTES_LENGTH):
    """Validate an update payload and map it to column names.

    Args:
        payload: Decoded JSON body
        max_notes_length: Upper bound on notes

    Returns:
        dict: Requested changes keyed by column name

    Raises:
        ValidationError: Unknown keys or malformed values
    """
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')

    unknown = sorted(set(payload) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(
            f"Field(s) cannot be updated: {', '.join(unknown)}"
        )

    changes = {}
    # An empty or null status means "leave it as is"
    status = payload.get('status')
    if status:
        if not isinstance(status, str):
            raise ValidationError('Invalid status format')
        if status not in STATUSES:
            raise ValidationError('Invalid status')
        changes['status'] = status

    if 'notes' in payload:
        notes = payload['notes']
        if not isinstance(notes, str):
            raise ValidationError('Invalid notes format')
        if len(notes) > max_notes_length:
            raise ValidationError(
                f'Notes too long (max {max_notes_length} characters)'
            )
        changes['notes'] = notes

    for wire_name in ('receivedAtDestination', 'enteredIntoSystem'):
        if wire_name in payload:
            changes[UPDATABLE_FIELDS[wire_name]] = _parse_flag(
                wire_name, payload[wire_name]
            )

    return changes


def is_complete(status, received_at_destination, entered_into_system):
    return (
        status == STATUS_FULFILLED and
        received_at_destination is True and
        entered_into_system is True
    )


def derive_archive(values, archived, now):
    """Archive flag updates implied by a transfer's resulting values.

    Args:
        values: Mapping with status and both tracking flags, post-merge
        archived: Archive flag currently stored
        now: Timestamp for a new archive

    Returns:
        dict: Empty when the stored flag is already right
    """
    complete = is_complete(
        values['status'],
        bool(values['received_at_destination']),
        bool(values['entered_into_system'])
    )
    if complete and not archived:
        return {'archived': True, 'archived_at': now}
    if archived and not complete:
        return {'archived': False, 'archived_at': None}
    return {}


def merge_changes(transfer, changes, now):
    """Column updates for the requested changes, before archive derivation."""
    updates = {}

    if 'notes' in changes:
        updates['notes'] = changes['notes']

    status = changes.get('status')
    if status is not None and status != transfer.status:
        updates['status'] = status
        updates['status_updated_at'] = now

    for flag in TRACKING_FIELDS:
        if flag not in changes:
            continue
        value = changes[flag]
        updates[flag] = value
        if value and not getattr(transfer, flag):
            updates[TRACKING_TIMESTAMPS[flag]] = now
        elif not value:
            updates[TRACKING_TIMESTAMPS[flag]] = None

    return updates


def resulting_values(transfer, updates):
    return {
        name: updates.get(name, getattr(transfer, name))
        for name in ('status',) + TRACKING_FIELDS
    }


def compute_update(transfer, changes, now):
    """Full set of column updates for an already-authorized update.

    Args:
        transfer: Current transfer values
        changes: Output of :func:`parse_changes`
        now: Timestamp applied to every stamp this update sets

    Returns:
        dict: Column updates, possibly empty
    """
    updates = merge_changes(transfer, changes, now)
    updates.update(derive_archive(
        resulting_values(transfer, updates), transfer.archived, now
    ))
    return updates


def rederive(transfer, now):
    """Archive updates for a stored transfer with no new changes."""
    return derive_archive(
        resulting_values(transfer, {}), transfer.archived, now
    )
