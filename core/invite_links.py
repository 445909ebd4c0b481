# --- File: core/invite_links.py ---
import secrets
from typing import Optional

import config

INVITE_TOKEN_BYTES = 16 # 128 bits; the link is the only credential needed to join a chain


def generate_invite_token() -> str:
    return secrets.token_hex(INVITE_TOKEN_BYTES)


def build_invite_link(
    token: str,
    base_url: str = config.FRONTEND_URL,
    template: str = config.INVITE_LINK_TEMPLATE
) -> str:
    """Substitutes the token (and base URL) into the configured link template."""
    return template.format(base_url=base_url.rstrip("/"), token=token)


def invite_token_from_link(link: str, template: str = config.INVITE_LINK_TEMPLATE) -> Optional[str]:
    """
    Pulls the token back out of an invite link built from `template`.

    The token is read after the template's literal text preceding `{token}` (e.g. "/join-deal/"
    or "/join?code="), so links from another host still parse. Trailing template text, query
    strings and fragments are dropped.
    """
    if not link:
        return None
    head, _, tail = template.partition("{token}")
    marker = head.rsplit("{base_url}", 1)[-1]
    if marker and marker in link:
        candidate = link[link.rfind(marker) + len(marker):]
    else:
        candidate = link.rstrip("/").rsplit("/", 1)[-1]
    tail = tail.split("?", 1)[0].split("#", 1)[0]
    if tail and tail in candidate:
        candidate = candidate[:candidate.find(tail)]
    for separator in ("?", "#", "&", "/"):
        candidate = candidate.split(separator, 1)[0]
    return candidate or None
