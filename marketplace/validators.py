"""
Custom validators for marketplace models.
"""

import re
from django.core.exceptions import ValidationError


IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'webp']
IMAGE_CONTENT_TYPES = ['image/jpeg', 'image/png', 'image/webp']
MAX_UPLOAD_SIZE = 5 * 1024 * 1024


def validate_phone_number(value):
    """
    Validate phone number format.

    Accepts local (08xx) and international (+62) formats with spaces,
    dashes and parentheses. Requires between 10 and 15 digits.

    Valid formats:
    - +62 812-3456-7890
    - 0812 3456 7890
    - (021) 555-1234

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Empty string is allowed (optional field)
        return

    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)

    if len(digits) < 10:
        raise ValidationError(
            'Phone number must contain at least 10 digits.',
            code='phone_too_short'
        )

    if len(digits) > 15:
        raise ValidationError(
            'Phone number cannot contain more than 15 digits.',
            code='phone_too_long'
        )

    # Reject placeholders like 0000000000
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )


def _validate_upload(upload, extensions, content_types, label):
    if not upload:
        return

    # Already in storage: checked when it was uploaded
    if getattr(upload, '_committed', False):
        return

    if upload.size > MAX_UPLOAD_SIZE:
        raise ValidationError(
            f'{label} file size cannot exceed 5MB. Current size: {upload.size / (1024 * 1024):.2f}MB',
            code='file_too_large'
        )

    file_name = upload.name.lower()
    if not any(file_name.endswith(f'.{ext}') for ext in extensions):
        raise ValidationError(
            f'Invalid {label.lower()} format. Allowed formats: {", ".join(extensions)}',
            code='invalid_file_format'
        )

    content_type = getattr(upload, 'content_type', None)
    if content_type and content_type not in content_types:
        raise ValidationError(
            f'Invalid {label.lower()} content type: {content_type}',
            code='invalid_content_type'
        )


def validate_image(image):
    """
    Validate an uploaded image (avatar or product photo).

    Checks:
    - File size (max 5MB)
    - File format (jpg, jpeg, png, webp)
    - MIME type when the upload carries one
    """
    _validate_upload(image, IMAGE_EXTENSIONS, IMAGE_CONTENT_TYPES, 'Image')


def validate_payment_proof(proof):
    """
    Validate a payment proof upload.

    Transfer receipts arrive as screenshots or as PDF exports from
    banking apps, so PDF is accepted alongside images.
    """
    _validate_upload(
        proof,
        IMAGE_EXTENSIONS + ['pdf'],
        IMAGE_CONTENT_TYPES + ['application/pdf'],
        'Payment proof'
    )
