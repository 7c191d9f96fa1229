from transfer_tracker.engine.rules import (
    Principal, Decision, UpdateDecision, principal_from_user,
    requested_groups, evaluate_update, can_read, can_delete,
    should_mark_viewed
)
from transfer_tracker.engine.state import (
    parse_changes, compute_update, derive_archive, rederive
)

__all__ = [
    'Principal', 'Decision', 'UpdateDecision', 'principal_from_user',
    'requested_groups', 'evaluate_update', 'can_read', 'can_delete',
    'should_mark_viewed', 'parse_changes', 'compute_update',
    'derive_archive', 'rederive',
]
