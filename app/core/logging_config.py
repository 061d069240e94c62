"""
Configures logging across the application.

Logs INFO level messages with timestamp, level and logger name.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

# Keep library chatter out of the request logs
logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("sentence_transformers").setLevel(logging.WARNING)

logger = logging.getLogger("app")
