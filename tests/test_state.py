from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from transfer_tracker.engine.state import (
    parse_changes, compute_update, derive_archive, merge_changes, rederive
)
from transfer_tracker.errors import ValidationError

EARLIER = datetime(2024, 3, 1, 9, 30)
NOW = datetime(2024, 3, 2, 14, 0)


def make_transfer(**fields):
    values = {
        'status': 'pending',
        'status_updated_at': EARLIER,
        'notes': None,
        'received_at_destination': False,
        'received_at_destination_at': None,
        'entered_into_system': False,
        'entered_into_system_at': None,
        'archived': False,
        'archived_at': None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


def apply(transfer, updates):
    for name, value in updates.items():
        setattr(transfer, name, value)
    return transfer


def test_parse_changes_maps_wire_names():
    changes = parse_changes({
        'status': 'acknowledged',
        'notes': 'Box 3 of 4',
        'receivedAtDestination': True,
        'enteredIntoSystem': 'false',
    })
    assert changes == {
        'status': 'acknowledged',
        'notes': 'Box 3 of 4',
        'received_at_destination': True,
        'entered_into_system': False,
    }


@pytest.mark.parametrize('raw,expected', [
    (True, True), (False, False), ('true', True), ('1', True),
    ('false', False), ('0', False), ('yes', False),
])
def test_parse_changes_flag_coercion(raw, expected):
    assert parse_changes({'receivedAtDestination': raw}) == {
        'received_at_destination': expected
    }


@pytest.mark.parametrize('payload,message', [
    ({'status': 'shipped'}, 'Invalid status'),
    ({'status': 3}, 'Invalid status format'),
    ({'notes': 42}, 'Invalid notes format'),
    ({'notes': None}, 'Invalid notes format'),
    ({'status': True}, 'Invalid status format'),
    ({'notes': 'x' * 5001}, 'Notes too long (max 5000 characters)'),
    ({'enteredIntoSystem': 1}, 'Invalid enteredIntoSystem format'),
    ({'archived': False}, 'Field(s) cannot be updated: archived'),
    (['status'], 'Request body must be a JSON object'),
])
def test_parse_changes_rejects(payload, message):
    with pytest.raises(ValidationError) as exc:
        parse_changes(payload)
    assert exc.value.message == message


def test_parse_changes_respects_configured_notes_limit():
    with pytest.raises(ValidationError):
        parse_changes({'notes': 'abcdef'}, max_notes_length=5)
    assert parse_changes({'notes': 'x' * 5000}) == {'notes': 'x' * 5000}


def test_status_change_stamps_time():
    updates = merge_changes(make_transfer(), {'status': 'fulfilled'}, NOW)
    assert updates == {'status': 'fulfilled', 'status_updated_at': NOW}


def test_unchanged_status_leaves_timestamp():
    assert merge_changes(make_transfer(), {'status': 'pending'}, NOW) == {}


def test_tracking_flag_timestamps():
    transfer = make_transfer()

    # false -> true stamps
    apply(transfer, merge_changes(transfer, {'received_at_destination': True}, EARLIER))
    assert transfer.received_at_destination_at == EARLIER

    # true -> true keeps the first stamp
    apply(transfer, merge_changes(transfer, {'received_at_destination': True}, NOW))
    assert transfer.received_at_destination_at == EARLIER

    # true -> false clears
    apply(transfer, merge_changes(transfer, {'received_at_destination': False}, NOW))
    assert transfer.received_at_destination is False
    assert transfer.received_at_destination_at is None


def test_archive_requires_all_three_conditions():
    base = {'status': 'fulfilled', 'received_at_destination': True, 'entered_into_system': True}
    assert derive_archive(base, False, NOW) == {'archived': True, 'archived_at': NOW}
    for name, value in [('status', 'in_progress'),
                        ('received_at_destination', False),
                        ('entered_into_system', False)]:
        values = dict(base, **{name: value})
        assert derive_archive(values, False, NOW) == {}


def test_archive_derivation_is_idempotent():
    archived = make_transfer(
        status='fulfilled', received_at_destination=True,
        entered_into_system=True, archived=True, archived_at=EARLIER
    )
    assert rederive(archived, NOW) == {}
    assert rederive(make_transfer(), NOW) == {}


def test_compute_update_uses_post_merge_values():
    transfer = make_transfer(status='fulfilled', received_at_destination=True,
                             received_at_destination_at=EARLIER)
    updates = compute_update(transfer, {'entered_into_system': True}, NOW)
    assert updates == {
        'entered_into_system': True,
        'entered_into_system_at': NOW,
        'archived': True,
        'archived_at': NOW,
    }


def test_compute_update_unarchives_when_condition_breaks():
    transfer = make_transfer(
        status='fulfilled', received_at_destination=True,
        received_at_destination_at=EARLIER, entered_into_system=True,
        entered_into_system_at=EARLIER, archived=True, archived_at=EARLIER
    )
    updates = compute_update(transfer, {'status': 'in_progress'}, NOW)
    assert updates['archived'] is False
    assert updates['archived_at'] is None
    assert updates['status_updated_at'] == NOW


def test_status_can_move_backwards():
    transfer = make_transfer(status='fulfilled')
    later = NOW + timedelta(hours=1)
    assert compute_update(transfer, {'status': 'pending'}, later) == {
        'status': 'pending', 'status_updated_at': later
    }


def test_empty_status_is_ignored():
    assert parse_changes({'status': ''}) == {}
    assert parse_changes({'status': None, 'notes': 'n'}) == {'notes': 'n'}


def test_notes_are_cleared_with_empty_string():
    changes = parse_changes({'notes': ''})
    transfer = make_transfer(notes='call before delivery')
    assert compute_update(transfer, changes, NOW) == {'notes': ''}
