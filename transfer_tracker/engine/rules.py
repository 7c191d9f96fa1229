# transfer_tracker/engine/rules.py

"""Who may read, update and delete a transfer.

Everything here is a pure function of the principal and the transfer's
current values; nothing touches the database or the request.

In both transfer types ``from_user_id`` is the controlling party (it owns
status and notes before fulfillment) and ``to_user_id`` is the tracking party
(it owns the receipt checkboxes after fulfillment).
"""

from collections import namedtuple

STATUS_PENDING = 'pending'
STATUS_ACKNOWLEDGED = 'acknowledged'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_FULFILLED = 'fulfilled'
STATUSES = (
    STATUS_PENDING,
    STATUS_ACKNOWLEDGED,
    STATUS_IN_PROGRESS,
    STATUS_FULFILLED,
)

TYPE_SEND = 'send'
TYPE_REQUEST = 'request'
TRANSFER_TYPES = (TYPE_SEND, TYPE_REQUEST)

ARCHIVE_ACTIVE = 'active'
ARCHIVE_ARCHIVED = 'archived'
ARCHIVE_ALL = 'all'
ARCHIVE_FILTERS = (ARCHIVE_ACTIVE, ARCHIVE_ARCHIVED, ARCHIVE_ALL)

# Field groups, authorized independently of each other
STATUS_GROUP = 'status'
TRACKING_GROUP = 'tracking'
STATUS_FIELDS = ('status', 'notes')
TRACKING_FIELDS = ('received_at_destination', 'entered_into_system')


Principal = namedtuple('Principal', ['id', 'location', 'is_admin'])


class Decision(namedtuple('Decision', ['allowed', 'reason'])):
    """Outcome of a permission check; ``reason`` is set when denied."""
    __slots__ = ()

    def __bool__(self):
        return self.allowed


ALLOWED = Decision(True, None)


def denied(reason):
    return Decision(False, reason)


class UpdateDecision:
    """Per-group decisions for one update request.

    The request as a whole is allowed only if every requested group is.
    """

    def __init__(self, groups):
        self.groups = groups

    @property
    def allowed(self):
        return all(decision.allowed for decision in self.groups.values())

    @property
    def reason(self):
        for group in (STATUS_GROUP, TRACKING_GROUP):
            decision = self.groups.get(group)
            if decision is not None and not decision.allowed:
                return decision.reason
        return None

    def __bool__(self):
        return self.allowed

    def __repr__(self):
        return f'<UpdateDecision {self.groups!r}>'


def principal_from_user(user):
    return Principal(user.id, user.location, bool(user.is_admin))


def is_participant(principal, transfer):
    return principal.id in (transfer.from_user_id, transfer.to_user_id)


def requested_groups(transfer, changes):
    """Field groups an update actually writes.

    Re-sending the current status is not a status write; any supplied notes
    value is. Before fulfillment :func:`evaluate_update` gates the request as a
    whole regardless of what this returns.

    Args:
        transfer: Current transfer values
        changes: Parsed update fields keyed by column name

    Returns:
        set: Subset of {STATUS_GROUP, TRACKING_GROUP}
    """
    groups = set()
    if 'notes' in changes:
        groups.add(STATUS_GROUP)
    if 'status' in changes and changes['status'] != transfer.status:
        groups.add(STATUS_GROUP)
    if any(field in changes for field in TRACKING_FIELDS):
        groups.add(TRACKING_GROUP)
    return groups


def _controlling_party_message(transfer_type, fulfilled):
    if transfer_type == TYPE_REQUEST:
        who = 'Only the location being requested from'
    else:
        who = 'Only the sender'
    if fulfilled:
        return f'{who} can update status and notes'
    return f'{who} can update this transfer'


def _check_group(principal, transfer, group):
    is_controlling = transfer.from_user_id == principal.id
    is_tracking = transfer.to_user_id == principal.id

    if transfer.status != STATUS_FULFILLED:
        # No separate recipient path exists before fulfillment
        if transfer.transfer_type not in TRANSFER_TYPES:
            return denied('Invalid transfer type')
        if is_controlling:
            return ALLOWED
        return denied(_controlling_party_message(transfer.transfer_type, False))

    if group == TRACKING_GROUP:
        if is_tracking:
            return ALLOWED
        return denied(
            'Only the receiving location can update fulfillment tracking '
            'after the transfer is fulfilled'
        )

    if is_controlling:
        return ALLOWED
    return denied(_controlling_party_message(transfer.transfer_type, True))


def evaluate_update(principal, transfer, groups):
    """Decide whether ``principal`` may write the given field groups.

    Before fulfillment the status group is always checked, so a
    non-controlling party is denied even when the request writes nothing.

    Args:
        principal: Caller
        transfer: Transfer as it is before the update
        groups: Iterable of STATUS_GROUP / TRACKING_GROUP

    Returns:
        UpdateDecision: One decision per requested group
    """
    if principal.is_admin:
        return UpdateDecision({group: ALLOWED for group in groups})

    groups = set(groups)
    if transfer.status != STATUS_FULFILLED:
        # The controlling party owns every update until fulfillment, even one
        # that writes nothing
        groups.add(STATUS_GROUP)
    return UpdateDecision({
        group: _check_group(principal, transfer, group) for group in groups
    })


def can_read(principal, transfer):
    if principal.is_admin or is_participant(principal, transfer):
        return ALLOWED
    return denied('Access denied')


def can_delete(principal, transfer=None):
    if principal.is_admin:
        return ALLOWED
    return denied('Only administrators can delete transfers')


def should_mark_viewed(principal, transfer):
    """Whether this read clears the transfer's unread badge.

    The badge belongs to whoever has to act next: the recipient of a send,
    or the location a request was made of.
    """
    if principal.is_admin or transfer.viewed_by_recipient:
        return False
    if transfer.transfer_type == TYPE_SEND:
        return transfer.to_user_id == principal.id
    if transfer.transfer_type == TYPE_REQUEST:
        return transfer.from_user_id == principal.id
    return False
