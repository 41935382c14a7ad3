from __future__ import annotations

import re


def sanitize_error_message(error: str) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        error: Original error message

    Returns:
        Sanitized error message
    """
    # Linear personal API keys and bearer tokens
    error = re.sub(r'lin_(api|oauth)_[a-zA-Z0-9]{16,}', '[API_KEY_HIDDEN]', error)
    error = re.sub(r'(?i)bearer\s+[a-zA-Z0-9._\-]{16,}', 'Bearer [TOKEN_HIDDEN]', error)

    # Remove potential file paths that might contain sensitive info
    error = re.sub(r'/home/[^/\s]+/[^/\s]+', '[PATH_HIDDEN]', error)
    error = re.sub(r'/Users/[^/\s]+/[^/\s]+', '[PATH_HIDDEN]', error)

    return error
