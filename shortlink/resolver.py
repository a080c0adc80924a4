"""Decode resolver: turn a full short URL back into the original URL.

Only inputs shaped like ``http(s)://host[:port]/slug`` are unwrapped. Anything
else, including an original long URL, resolves to None without touching Redis
or the database; reverse lookup of arbitrary URLs is not offered.
"""

import re
from typing import Optional

from shortlink.link_directory import LinkDirectory

__all__ = ["SHORT_URL_PATTERN", "DecodeResolver", "extract_slug"]

SHORT_URL_PATTERN = re.compile(r"https?://[^/]+/([a-zA-Z0-9]+)")


def extract_slug(value: str) -> Optional[str]:
    match = SHORT_URL_PATTERN.fullmatch(value)
    return match.group(1) if match else None


class DecodeResolver:
    def __init__(self, directory: LinkDirectory):
        self._directory = directory

    async def find_by_url(self, value: str) -> Optional[str]:
        slug = extract_slug(value)
        if slug is None:
            return None
        return await self._directory.find_by_slug(slug)
