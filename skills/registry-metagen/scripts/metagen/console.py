"""Run progress for the scan and diff commands.

Progress lines go to stderr; stdout is reserved for the command summary.
"""
from __future__ import annotations

import sys

PENDING = "[....]"
DONE = "[done]"


def progress(message: str, done: bool = False) -> None:
    marker = DONE if done else PENDING
    print(f"  {marker} {message}", file=sys.stderr)
