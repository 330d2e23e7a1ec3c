#!/usr/bin/env python3
"""Flask API server for specials scheduling.

Binds to 127.0.0.1:5002 for the admin front end's nginx proxy.
"""

import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from specials_radio.api import create_app
from specials_radio.config import config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = create_app(config)


if __name__ == "__main__":
    logger.info("Starting specials API on 127.0.0.1:5002")
    app.run(host="127.0.0.1", port=5002)
