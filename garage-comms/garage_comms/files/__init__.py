"""
Upload File Validation
======================
Magic number detection, MIME/extension cross-checks and SVG sanitization
for uploaded images.

Usage:
    from garage_comms.files import validate_uploaded_file, validate_file_size

    size = validate_file_size(path, settings.upload_max_bytes)
    result = validate_uploaded_file(path, upload.filename, upload.content_type)
    if not result.is_valid:
        logger.warning("upload_rejected", security_issue=result.security_issue)
"""

from .signatures import MagicNumber, MAGIC_NUMBERS, DANGEROUS_EXTENSIONS, MIME_ALIASES
from .validator import (
    SecurityIssue,
    FileValidationResult,
    FileValidator,
    StyleValueSanitizer,
    validate_uploaded_file,
    validate_file_size,
)
from . import svg_policy

__all__ = [
    # Signatures
    "MagicNumber",
    "MAGIC_NUMBERS",
    "DANGEROUS_EXTENSIONS",
    "MIME_ALIASES",
    # Validation
    "SecurityIssue",
    "FileValidationResult",
    "FileValidator",
    "StyleValueSanitizer",
    "validate_uploaded_file",
    "validate_file_size",
    # Policy
    "svg_policy",
]
