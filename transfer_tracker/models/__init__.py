from transfer_tracker.models.user import User
from transfer_tracker.models.transfer import Transfer

__all__ = ['User', 'Transfer']
