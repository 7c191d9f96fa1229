# transfer_tracker/utils.py

import os
import re
import secrets
import time
from datetime import datetime, timezone

PDF_SIGNATURE = b'%PDF'


def utcnow():
    """Current UTC time as a naive datetime, the way it is stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() + 'Z' if value else None


def is_pdf(data):
    """Check the leading bytes for the PDF file signature.

    Args:
        data: File contents

    Returns:
        bool: True if the data starts with ``%PDF``
    """
    return data[:4] == PDF_SIGNATURE


def sanitize_filename(filename):
    """Reduce an uploaded file name to a safe display name."""
    name = os.path.basename((filename or '').replace('\\', '/')).strip()
    return name or 'transfer.pdf'


def generate_blob_name():
    """Generate a unique storage name for an uploaded PDF.

    Returns:
        str: Name like ``transfer_1700000000000_k3j9x2.pdf``
    """
    timestamp = int(time.time() * 1000)
    suffix = re.sub(r'[^a-z0-9]', '', secrets.token_urlsafe(8).lower())[:6]
    return f"transfer_{timestamp}_{suffix or 'x'}.pdf"


def form_error(form):
    """First validation message of a form, for JSON error bodies."""
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return 'Invalid request'
