"""Entry point for `python -m glbc`.

Usage:
    python -m glbc
    GLBC_COLLABORATORS_FACTORY=mypkg.wiring:collaborators python -m glbc
"""

from __future__ import annotations

import asyncio

from glbc.app import main

asyncio.run(main())
