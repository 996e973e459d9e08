"""Entry point for `python -m dirmon`.

Usage:
    python -m dirmon
    uv run python -m dirmon
"""

from __future__ import annotations

import asyncio

from dirmon.app import main

asyncio.run(main())
