from flask import Blueprint

bp = Blueprint('transfers', __name__)

from transfer_tracker.transfers import routes  # noqa: E402,F401
