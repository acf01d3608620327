"""Rewrite ``[code]...[/code]`` blocks into each platform's code syntax."""

from __future__ import annotations

import re

DISCORD = "discord"
TELEGRAM = "telegram"

_CODE_BLOCK_RE = re.compile(r"\[code\](.*?)\[/code\]", re.DOTALL)


def _discord_block(match: re.Match[str]) -> str:
    return f"```\n{match.group(1).strip()}\n```"


def _telegram_block(match: re.Match[str]) -> str:
    # Telegram HTML mode only needs the angle brackets escaped inside <code>
    content = match.group(1).strip().replace("<", "&lt;").replace(">", "&gt;")
    return f"<pre><code>{content}</code></pre>"


_FORMATTERS = {
    DISCORD: _discord_block,
    TELEGRAM: _telegram_block,
}


def format_message(text: str, platform: str) -> str:
    """Replace every ``[code]`` block in *text* with *platform*'s code block.

    Text outside the markers is left as-is. Unknown platforms get the
    input back unchanged.
    """
    formatter = _FORMATTERS.get(platform)
    if formatter is None:
        return text
    return _CODE_BLOCK_RE.sub(formatter, text)
