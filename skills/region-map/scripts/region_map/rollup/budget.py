from __future__ import annotations

import re
from typing import List, Optional

import tiktoken

_TOKENIZER = None
_USE_PRECISE_TOKENS = False
_TOKEN_SPLIT_RE = re.compile(r"[A-Za-z0-9_]+|[^\s]")


def configure_tokenizer(precise: bool, warnings: Optional[List[str]] = None) -> bool:
    """Switch token estimates to tiktoken's cl100k_base; returns whether precise mode is active."""
    global _TOKENIZER, _USE_PRECISE_TOKENS
    _USE_PRECISE_TOKENS = False
    if not precise:
        return False
    if _TOKENIZER is None:
        try:
            _TOKENIZER = tiktoken.get_encoding("cl100k_base")
        except Exception as exc:
            # The encoding is downloaded on first use and may be unavailable offline.
            if warnings is not None:
                warnings.append(f"tiktoken unavailable, using word-split estimates: {exc}")
            return False
    _USE_PRECISE_TOKENS = True
    return True


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    if _USE_PRECISE_TOKENS and _TOKENIZER is not None:
        return max(1, len(_TOKENIZER.encode(text)))
    tokens = _TOKEN_SPLIT_RE.findall(text)
    return max(1, len(tokens))
