"""
errors.py
─────────
Exceptions raised while taking a backup.

Everything that goes wrong while talking to Discord is a RemoteFetchError;
callers decide whether a failed fetch aborts the whole backup.
"""

from __future__ import annotations


class BackupError(Exception):
    """Base class for every error raised by the backup tool."""


class ConfigError(BackupError):
    """config.json holds a value we cannot use."""


class RemoteFetchError(BackupError):
    """A scheduled call to the remote API failed."""


class DiscordAPIError(RemoteFetchError):
    def __init__(self, status: int, endpoint: str, body: str = ""):
        self.status = status
        self.endpoint = endpoint
        self.body = body
        super().__init__(f"Discord {status} on {endpoint}: {body[:200]}")


class InvalidTokenError(DiscordAPIError):
    retryable = False

    def __init__(self, endpoint: str):
        super().__init__(401, endpoint, "Invalid Discord bot token.")


class ImageFetchError(RemoteFetchError):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Could not fetch image {url}: {reason}")
