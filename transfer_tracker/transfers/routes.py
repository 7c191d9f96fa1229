# transfer_tracker/transfers/routes.py

import io

from flask import jsonify, request, send_file
from flask_login import login_required, current_user

from transfer_tracker.engine import principal_from_user
from transfer_tracker.errors import ValidationError
from transfer_tracker.extensions import limiter
from transfer_tracker.transfers import bp, service
from transfer_tracker.transfers.forms import UploadForm
from transfer_tracker.utils import form_error


@bp.route('/transfers', methods=['GET'])
@login_required
@limiter.limit("100 per minute")
def list_transfers():
    """List transfers visible to the caller, newest first.

    Query args:
        archive: 'active' (default), 'archived' or 'all'
    """
    transfers = service.list_transfers(
        principal_from_user(current_user),
        request.args.get('archive')
    )
    return jsonify({'transfers': transfers})


@bp.route('/transfers/upload', methods=['POST'])
@login_required
@limiter.limit("20 per hour")
def upload_transfer():
    """Upload a PDF and open a transfer with another location."""
    form = UploadForm()
    if not form.validate_on_submit():
        raise ValidationError(form_error(form))

    upload = form.pdf.data
    transfer = service.create_transfer(
        principal_from_user(current_user),
        form.transfer_type.data,
        form.location_id.data,
        upload.read(),
        upload.filename
    )
    return jsonify({'success': True, 'transfer': transfer})


@bp.route('/transfers/<int:transfer_id>', methods=['GET'])
@login_required
@limiter.limit("100 per minute")
def get_transfer(transfer_id):
    transfer = service.get_transfer(principal_from_user(current_user), transfer_id)
    return jsonify({'transfer': transfer})


@bp.route('/transfers/<int:transfer_id>', methods=['PATCH'])
@login_required
@limiter.limit("100 per minute")
def update_transfer(transfer_id):
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError('Request body must be a JSON object')
    transfer = service.update_transfer(
        principal_from_user(current_user),
        transfer_id,
        payload
    )
    return jsonify({'success': True, 'transfer': transfer})


@bp.route('/transfers/<int:transfer_id>', methods=['DELETE'])
@login_required
def delete_transfer(transfer_id):
    service.delete_transfer(principal_from_user(current_user), transfer_id)
    return jsonify({'success': True, 'message': 'Transfer deleted successfully'})


@bp.route('/transfers/<int:transfer_id>/pdf', methods=['GET'])
@login_required
@limiter.limit("100 per minute")
def transfer_pdf(transfer_id):
    """Serve a transfer's PDF inline for the browser viewer."""
    data, filename = service.get_transfer_file(
        principal_from_user(current_user),
        transfer_id
    )
    response = send_file(
        io.BytesIO(data),
        mimetype='application/pdf',
        as_attachment=False,
        download_name=filename
    )
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Cache-Control'] = 'private, max-age=3600'
    return response


@bp.route('/users', methods=['GET'])
@login_required
def list_locations():
    """Locations the caller can send to or request from."""
    return jsonify({'users': service.list_locations(current_user.id)})
