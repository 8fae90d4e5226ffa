"""Shared user-facing guidance strings."""

MISSING_CREDENTIALS_MESSAGE = (
    "Google Cloud Text-to-Speech credentials are missing. "
    "Set GOOGLE_API_KEY (or GOOGLE_ACCESS_TOKEN) in the environment "
    "or add an 'engine' section to the file passed with --config."
)
