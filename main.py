"""
Nightlight — Entry Point.

Single entry point: `python main.py` starts the dashboard refresh loop.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from nightlight.host.dashboard import main

if __name__ == "__main__":
    main()
