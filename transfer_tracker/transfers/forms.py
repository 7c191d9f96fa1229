from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import IntegerField, SelectField
from wtforms.validators import DataRequired, ValidationError

from transfer_tracker.engine.rules import TYPE_SEND, TYPE_REQUEST


class UploadForm(FlaskForm):
    """Multipart upload of a PDF that opens a new transfer.

    Fields:
        pdf: The document
        transfer_type: 'send' to the location, or 'request' from it
        location_id: The other location
    """
    pdf = FileField('PDF', validators=[
        FileRequired(message='No file uploaded'),
        FileAllowed(['pdf'], 'Only PDF files are allowed')
    ])
    transfer_type = SelectField(
        'Transfer Type',
        choices=[(TYPE_SEND, 'Send'), (TYPE_REQUEST, 'Request')],
        default=TYPE_SEND
    )
    location_id = IntegerField(
        'Location',
        validators=[DataRequired(message='Location is required')]
    )

    def validate_pdf(self, field):
        mimetype = field.data.mimetype if field.data else None
        if mimetype and mimetype != 'application/pdf':
            raise ValidationError('Only PDF files are allowed')
