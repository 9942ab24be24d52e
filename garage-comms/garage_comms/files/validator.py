"""
Upload File Validator
=====================
Content based checks for uploaded images: dangerous extensions, magic
number detection, MIME and extension cross-checks, SVG sanitization.
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union

import bleach
import structlog
from bleach.css_sanitizer import CSSSanitizer

from garage_comms import metrics
from . import svg_policy
from .signatures import (
    DANGEROUS_EXTENSIONS,
    HEADER_LENGTH,
    MAGIC_NUMBERS,
    MIME_ALIASES,
    extensions_for,
)

logger = structlog.get_logger(__name__)

PathLike = Union[str, os.PathLike]


class SecurityIssue(str, Enum):
    """Tag attached to every rejected (or rewritten) upload."""
    DOUBLE_EXTENSION_DETECTED = "DOUBLE_EXTENSION_DETECTED"
    DANGEROUS_EXTENSION = "DANGEROUS_EXTENSION"
    UNKNOWN_FILE_SIGNATURE = "UNKNOWN_FILE_SIGNATURE"
    MIME_TYPE_SPOOFING = "MIME_TYPE_SPOOFING"
    EXTENSION_MISMATCH = "EXTENSION_MISMATCH"
    INVALID_SVG_CONTENT = "INVALID_SVG_CONTENT"
    SVG_SANITIZED = "SVG_SANITIZED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EMPTY_FILE = "EMPTY_FILE"
    FILE_READ_ERROR = "FILE_READ_ERROR"


@dataclass
class FileValidationResult:
    """Outcome of a validation step. ``error`` is safe to show to users."""
    is_valid: bool
    error: Optional[str] = None
    detected_type: Optional[str] = None
    security_issue: Optional[SecurityIssue] = None

    @classmethod
    def reject(cls, error: str, issue: SecurityIssue) -> "FileValidationResult":
        return cls(is_valid=False, error=error, security_issue=issue)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"isValid": self.is_valid}
        if self.error is not None:
            data["error"] = self.error
        if self.detected_type is not None:
            data["detectedType"] = self.detected_type
        if self.security_issue is not None:
            data["securityIssue"] = self.security_issue.value
        return data


class StyleValueSanitizer(CSSSanitizer):
    """CSS sanitizer that also checks each value against a regex table."""

    def __init__(self, allowed_styles=svg_policy.ALLOWED_STYLES):
        super().__init__(
            allowed_css_properties=frozenset(allowed_styles),
            allowed_svg_properties=frozenset(),
        )
        self.allowed_styles = allowed_styles

    def sanitize_css(self, style: str) -> str:
        kept = []
        for declaration in super().sanitize_css(style).split(";"):
            name, sep, value = declaration.partition(":")
            name, value = name.strip().lower(), value.strip()
            patterns = self.allowed_styles.get(name, ())
            if sep and any(p.match(value) for p in patterns):
                kept.append(f"{name}: {value}")
        return "; ".join(kept)


def _both_spellings(names):
    return frozenset(names) | {svg_policy.SVG_CASE_RESTORE.get(n, n) for n in names}


def _bleach_attributes():
    attributes = {}
    for tag, names in svg_policy.ALLOWED_ATTRIBUTES.items():
        for spelling in _both_spellings([tag]):
            attributes[spelling] = sorted(_both_spellings(names))
    return attributes


# The parser may hand back SVG names lowercased or camel-cased
_BLEACH_TAGS = _both_spellings(svg_policy.ALLOWED_TAGS)
_BLEACH_ATTRIBUTES = _bleach_attributes()

_DISCARD_NAMES = "|".join(svg_policy.DISCARD_CONTENT_TAGS)
_SELF_CLOSED_DISCARD = re.compile(rf"<\s*({_DISCARD_NAMES})\b[^>]*/\s*>", re.I)
_DISCARD_BLOCKS = re.compile(
    rf"<\s*({_DISCARD_NAMES})\b.*?(?:<\s*/\s*\1\s*>|\Z)", re.I | re.S
)
_TAG = re.compile(r"<[^>]+>")
_LOWERCASED_NAME = re.compile(
    r"\b(" + "|".join(sorted(svg_policy.SVG_CASE_RESTORE, key=len, reverse=True)) + r")\b"
)


def _restore_case(markup: str) -> str:
    def fix_tag(match):
        return _LOWERCASED_NAME.sub(
            lambda m: svg_policy.SVG_CASE_RESTORE[m.group(1)], match.group(0)
        )
    return _TAG.sub(fix_tag, markup)


class FileValidator:
    """
    Validates uploaded files against their claimed name and MIME type.

    Checks run in a fixed order and stop at the first violation:
    extension denylist, SVG sanitization (SVG only), magic number
    detection, claimed MIME type, then extension against content.
    """

    def __init__(self, css_sanitizer: Optional[CSSSanitizer] = None):
        self.magic_numbers = MAGIC_NUMBERS
        self.css_sanitizer = css_sanitizer or StyleValueSanitizer()

    @staticmethod
    def read_magic_number(file_path: PathLike, length: int = HEADER_LENGTH) -> bytes:
        """Read the first ``length`` bytes of a file."""
        with open(file_path, "rb") as f:
            return f.read(length)

    def detect_file_type(self, file_path: PathLike) -> FileValidationResult:
        """Identify the file format from its leading bytes."""
        try:
            header = self.read_magic_number(file_path)
        except OSError as e:
            logger.error("file_read_failed", path=str(file_path), error=str(e))
            return FileValidationResult.reject(
                "Failed to read file content", SecurityIssue.FILE_READ_ERROR
            )

        for magic in self.magic_numbers.values():
            if magic.matches(header):
                return FileValidationResult(is_valid=True, detected_type=magic.mime_type)

        logger.warning("unknown_file_signature", header=header[:8].hex())
        return FileValidationResult.reject(
            "Unable to verify file type from content",
            SecurityIssue.UNKNOWN_FILE_SIGNATURE,
        )

    @staticmethod
    def validate_double_extension(filename: str) -> FileValidationResult:
        """Reject executable or script extensions anywhere in the name."""
        parts = os.path.basename(filename).lower().split(".")
        extensions = ["." + part for part in parts[1:]]

        if len(extensions) > 1 and any(ext in DANGEROUS_EXTENSIONS for ext in extensions):
            logger.warning("double_extension_detected", filename=filename)
            return FileValidationResult.reject(
                "Invalid file name: multiple extensions detected",
                SecurityIssue.DOUBLE_EXTENSION_DETECTED,
            )

        if extensions and extensions[-1] in DANGEROUS_EXTENSIONS:
            logger.warning("dangerous_extension_detected", filename=filename)
            return FileValidationResult.reject(
                "Invalid file type: executable or script files are not allowed",
                SecurityIssue.DANGEROUS_EXTENSION,
            )

        return FileValidationResult(is_valid=True)

    @staticmethod
    def validate_mime_type_match(claimed_mime_type: str, detected_mime_type: str) -> FileValidationResult:
        claimed = (claimed_mime_type or "").strip().lower()
        detected = detected_mime_type.lower()

        if MIME_ALIASES.get(claimed, claimed) == detected:
            return FileValidationResult(is_valid=True, detected_type=detected)

        logger.warning("mime_type_mismatch", claimed=claimed, detected=detected)
        return FileValidationResult.reject(
            "File type does not match uploaded content",
            SecurityIssue.MIME_TYPE_SPOOFING,
        )

    @staticmethod
    def validate_extension_match(filename: str, detected_mime_type: str) -> FileValidationResult:
        ext = os.path.splitext(filename)[1].lower()

        if ext in extensions_for(detected_mime_type):
            return FileValidationResult(is_valid=True, detected_type=detected_mime_type)

        logger.warning("extension_mismatch", extension=ext, detected=detected_mime_type)
        return FileValidationResult.reject(
            "File extension does not match file content",
            SecurityIssue.EXTENSION_MISMATCH,
        )

    def clean_svg(self, content: str) -> str:
        """Return ``content`` reduced to the allow-listed SVG subset."""
        content = _SELF_CLOSED_DISCARD.sub("", content)
        content = _DISCARD_BLOCKS.sub("", content)
        cleaned = bleach.clean(
            content,
            tags=_BLEACH_TAGS,
            attributes=_BLEACH_ATTRIBUTES,
            protocols=svg_policy.ALLOWED_PROTOCOLS,
            css_sanitizer=self.css_sanitizer,
            strip=True,
            strip_comments=True,
        )
        return _restore_case(cleaned)

    def sanitize_svg(self, file_path: PathLike) -> FileValidationResult:
        """
        Sanitize an SVG and rewrite it in place.

        Returns:
            Valid result, tagged SVG_SANITIZED when dangerous content was
            removed; INVALID_SVG_CONTENT when no <svg> element survives
        """
        path = Path(file_path)
        try:
            original = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("svg_read_failed", path=str(path), error=str(e))
            return FileValidationResult.reject(
                "Failed to validate SVG content", SecurityIssue.FILE_READ_ERROR
            )

        sanitized = self.clean_svg(original)

        if "<svg" not in sanitized:
            logger.warning("svg_content_removed", policy_version=svg_policy.SVG_POLICY_VERSION)
            return FileValidationResult.reject(
                "Invalid SVG file: no valid SVG content found",
                SecurityIssue.INVALID_SVG_CONTENT,
            )

        try:
            path.write_text(sanitized, encoding="utf-8")
        except OSError as e:
            logger.error("svg_write_failed", path=str(path), error=str(e))
            return FileValidationResult.reject(
                "Failed to validate SVG content", SecurityIssue.FILE_READ_ERROR
            )

        if svg_policy.DANGEROUS_CONTENT.search(original):
            logger.warning(
                "svg_sanitized",
                path=str(path),
                policy_version=svg_policy.SVG_POLICY_VERSION,
            )
            return FileValidationResult(
                is_valid=True,
                detected_type="image/svg+xml",
                security_issue=SecurityIssue.SVG_SANITIZED,
            )

        return FileValidationResult(is_valid=True, detected_type="image/svg+xml")

    def _validate(self, file_path: PathLike, original_filename: str, mime_type: str) -> FileValidationResult:
        result = self.validate_double_extension(original_filename)
        if not result.is_valid:
            return result

        if os.path.splitext(original_filename)[1].lower() == ".svg":
            return self.sanitize_svg(file_path)

        result = self.detect_file_type(file_path)
        if not result.is_valid:
            return result
        detected_type = result.detected_type

        result = self.validate_mime_type_match(mime_type, detected_type)
        if not result.is_valid:
            return result

        result = self.validate_extension_match(original_filename, detected_type)
        if not result.is_valid:
            return result

        return FileValidationResult(is_valid=True, detected_type=detected_type)

    def validate_uploaded_file(
        self,
        file_path: PathLike,
        original_filename: str,
        mime_type: str,
    ) -> FileValidationResult:
        """
        Run every content check for one upload.

        Args:
            file_path: Where the upload was stored
            original_filename: Name the client sent
            mime_type: MIME type the client claimed
        """
        result = self._validate(file_path, original_filename, mime_type)
        metrics.record_file_validation(result.is_valid, result.security_issue)
        return result

    def validate_file_size(self, file_path: PathLike, max_size: int) -> FileValidationResult:
        """Reject empty files and files larger than ``max_size`` bytes."""
        try:
            size = os.stat(file_path).st_size
        except OSError as e:
            logger.error("file_stat_failed", path=str(file_path), error=str(e))
            result = FileValidationResult.reject(
                "Failed to check file size", SecurityIssue.FILE_READ_ERROR
            )
        else:
            if size > max_size:
                logger.warning("file_too_large", size=size, max_size=max_size)
                result = FileValidationResult.reject(
                    f"File size exceeds maximum allowed size of {round(max_size / 1024 / 1024)}MB",
                    SecurityIssue.FILE_TOO_LARGE,
                )
            elif size == 0:
                logger.warning("empty_file_detected", path=str(file_path))
                result = FileValidationResult.reject("File is empty", SecurityIssue.EMPTY_FILE)
            else:
                result = FileValidationResult(is_valid=True)

        metrics.record_file_validation(result.is_valid, result.security_issue)
        return result


_default_validator = FileValidator()


def validate_uploaded_file(
    file_path: PathLike,
    original_filename: str,
    mime_type: str,
) -> FileValidationResult:
    return _default_validator.validate_uploaded_file(file_path, original_filename, mime_type)


def validate_file_size(file_path: PathLike, max_size: int) -> FileValidationResult:
    return _default_validator.validate_file_size(file_path, max_size)
