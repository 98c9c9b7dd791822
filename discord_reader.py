"""
discord_reader.py
─────────────────
Reads a Discord guild through the Discord REST API.

DiscordGuild is the guild handle the extractors work against.  Each
fetch_* coroutine returns the raw JSON objects Discord sends; the HTTP
call itself runs on a worker thread so the event loop stays free.

fetch_roles() and fetch_channels() also fill `role_cache` and
`channel_cache`, which extractors read to resolve ids to names without
another request.

Requires a Discord bot token with at minimum:
  • View Channels
  • Ban Members               (bans)
  • Manage Server             (auto-moderation rules)
  • Server Members intent     (member list)
  • Read Message History      (only if maxMessagesPerChannel > 0)
"""

from __future__ import annotations
import asyncio
import logging
import time
import requests

from errors import DiscordAPIError, ImageFetchError, InvalidTokenError

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
DISCORD_CDN = "https://cdn.discordapp.com"

_MAX_TRIES = 6
_PAGE_SIZE = 1000
_MESSAGE_PAGE_SIZE = 100


def _json(r, endpoint: str):
    try:
        return r.json()
    except ValueError as exc:
        raise DiscordAPIError(r.status_code, endpoint, f"non-JSON body: {r.text[:200]}") from exc


def _get(endpoint: str, token: str, params: dict | None = None):
    """GET from Discord API with rate-limit retry."""
    headers = {"Authorization": f"Bot {token}"}
    url = f"{DISCORD_API}{endpoint}"
    for _ in range(_MAX_TRIES):
        try:
            r = requests.get(url, headers=headers, params=params, timeout=10)
        except requests.RequestException as exc:
            raise DiscordAPIError(0, endpoint, str(exc)) from exc
        if r.status_code == 429:
            wait = _json(r, endpoint).get("retry_after", 1.0)
            logger.warning("Discord rate-limit on %s – waiting %.1fs", endpoint, float(wait))
            time.sleep(float(wait) + 0.1)
            continue
        if r.status_code == 401:
            raise InvalidTokenError(endpoint)
        if not r.ok:
            raise DiscordAPIError(r.status_code, endpoint, r.text)
        return _json(r, endpoint)
    raise DiscordAPIError(429, endpoint, f"Too many retries ({_MAX_TRIES})")


def _get_paginated(endpoint: str, token: str, key: str = "id") -> list[dict]:
    """Walk an `after`-paginated collection until a short page comes back."""
    items: list[dict] = []
    after = "0"
    while True:
        page = _get(endpoint, token, params={"limit": _PAGE_SIZE, "after": after})
        items.extend(page)
        if len(page) < _PAGE_SIZE:
            return items
        last = page[-1]
        after = last["user"]["id"] if key == "user" else last["id"]


def fetch_image(url: str) -> bytes:
    """Download an image (emoji, icon …) and return its raw bytes."""
    try:
        r = requests.get(url, timeout=10)
    except requests.RequestException as exc:
        raise ImageFetchError(url, str(exc)) from exc
    if not r.ok:
        raise ImageFetchError(url, f"HTTP {r.status_code}")
    return r.content


# ── CDN urls ──────────────────────────────────────────────────────────────────


def _ext(image_hash: str) -> str:
    return "gif" if image_hash.startswith("a_") else "png"


def avatar_url(user: dict) -> str | None:
    avatar = user.get("avatar")
    if not avatar:
        return None
    return f"{DISCORD_CDN}/avatars/{user['id']}/{avatar}.{_ext(avatar)}"


def role_icon_url(role: dict) -> str | None:
    icon = role.get("icon")
    if not icon:
        return None
    return f"{DISCORD_CDN}/role-icons/{role['id']}/{icon}.png"


def emoji_url(emoji: dict) -> str:
    ext = "gif" if emoji.get("animated") else "png"
    return f"{DISCORD_CDN}/emojis/{emoji['id']}.{ext}"


def guild_icon_url(guild: dict) -> str | None:
    icon = guild.get("icon")
    if not icon:
        return None
    return f"{DISCORD_CDN}/icons/{guild['id']}/{icon}.{_ext(icon)}"


# ── guild handle ──────────────────────────────────────────────────────────────


class DiscordGuild:
    def __init__(self, bot_token: str, guild_id: str):
        self.token = bot_token
        self.id = str(guild_id)
        self.channel_cache: dict[str, dict] = {}
        self.role_cache: dict[str, dict] = {}

    async def _call(self, endpoint: str, params: dict | None = None):
        return await asyncio.to_thread(_get, endpoint, self.token, params)

    async def fetch_guild(self) -> dict:
        return await self._call(f"/guilds/{self.id}")

    async def fetch_bans(self) -> list[dict]:
        return await asyncio.to_thread(
            _get_paginated, f"/guilds/{self.id}/bans", self.token, "user"
        )

    async def fetch_members(self) -> list[dict]:
        return await asyncio.to_thread(
            _get_paginated, f"/guilds/{self.id}/members", self.token, "user"
        )

    async def fetch_roles(self) -> list[dict]:
        roles = await self._call(f"/guilds/{self.id}/roles")
        self.role_cache = {r["id"]: r for r in roles}
        return roles

    async def fetch_emojis(self) -> list[dict]:
        return await self._call(f"/guilds/{self.id}/emojis")

    async def fetch_channels(self) -> list[dict]:
        channels = await self._call(f"/guilds/{self.id}/channels")
        self.channel_cache = {c["id"]: c for c in channels}
        return channels

    async def fetch_auto_moderation_rules(self) -> list[dict]:
        return await self._call(f"/guilds/{self.id}/auto-moderation/rules")

    async def fetch_messages(self, channel_id: str, limit: int) -> list[dict]:
        """Newest `limit` messages of a channel, newest first."""
        messages: list[dict] = []
        before = None
        while len(messages) < limit:
            params = {"limit": min(_MESSAGE_PAGE_SIZE, limit - len(messages))}
            if before:
                params["before"] = before
            page = await self._call(f"/channels/{channel_id}/messages", params)
            messages.extend(page)
            if len(page) < params["limit"]:
                break
            before = page[-1]["id"]
        return messages
