from __future__ import annotations

import shutil

from captionbatch.exceptions import DependencyMissingError

INSTALL_HINTS = {
    "ffmpeg": "ffmpeg renders the captions",
    "ffprobe": "ffprobe detects video dimensions",
}


def require_binary(binary: str) -> str:
    path = shutil.which(binary)
    if path is None:
        hint = INSTALL_HINTS.get(binary)
        detail = f" ({hint})" if hint else ""
        raise DependencyMissingError(
            f"Missing required dependency '{binary}'{detail}. Install it and try again."
        )
    return path
