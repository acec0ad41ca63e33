"""
Input validation utilities for uploads and account fields.
"""
import os
import re
from pathlib import Path
from typing import Tuple, Optional

from email_validator import validate_email, EmailNotValidError


# Extension -> stored file_type
FILE_TYPE_BY_EXTENSION = {
    ".pdf": "pdf",
    ".doc": "doc",
    ".docx": "docx",
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".png": "png",
}

# Stored file_type -> response Content-Type
CONTENT_TYPE_BY_FILE_TYPE = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
}

_ARCHIVE_UNSAFE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for use
    """
    if not filename:
        raise ValueError("Filename cannot be empty")

    # Drop directory components, including Windows-style ones
    filename = os.path.basename(filename.replace("\\", "/"))

    safe_chars = []
    for char in filename:
        if char.isalnum() or char in "._-":
            safe_chars.append(char)
        else:
            safe_chars.append("_")

    sanitized = "".join(safe_chars)

    if len(sanitized) > 255:
        sanitized = sanitized[:255]

    if not sanitized.strip("."):
        raise ValueError("Filename became empty after sanitization")

    return sanitized


def archive_safe_name(value: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    return _ARCHIVE_UNSAFE.sub("_", value or "")


def file_type_for(filename: str) -> str:
    """Map an uploaded filename to the stored file_type ("other" when unknown)."""
    ext = Path(filename or "").suffix.lower()
    return FILE_TYPE_BY_EXTENSION.get(ext, "other")


def content_type_for(file_type: Optional[str]) -> str:
    """Response Content-Type for a stored file_type."""
    return CONTENT_TYPE_BY_FILE_TYPE.get((file_type or "").lower(), "application/octet-stream")


def validate_mime_type(content_type: Optional[str], allowed: set) -> bool:
    """Check an upload's declared MIME type against the allow-list."""
    if not content_type:
        return False
    return content_type.split(";")[0].strip().lower() in allowed


def validate_file_size(file_size: int, max_size_bytes: int) -> Tuple[bool, Optional[str]]:
    """
    Validate file size.

    Args:
        file_size: File size in bytes
        max_size_bytes: Maximum allowed size in bytes

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file_size > max_size_bytes:
        max_size_mb = max_size_bytes // (1024 * 1024)
        return False, f"File size exceeds the {max_size_mb}MB limit"

    return True, None


def validate_email_address(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email syntax (no DNS lookup).

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        return False, f"Invalid email format: {e}"
    return True, None


def validate_password(password: str, min_length: int = 8) -> Tuple[bool, Optional[str]]:
    """
    Validate password length against the minimum and bcrypt's 72 byte limit.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"
    if len(password) < min_length:
        return False, f"Password must be at least {min_length} characters long"
    if len(password.encode("utf-8")) > 72:
        return False, "Password cannot be longer than 72 bytes"
    return True, None
