import logging
from logging.handlers import RotatingFileHandler

from marketplace.core.settings import get_settings

# Create logger
auth_logger = logging.getLogger("auth")
auth_logger.setLevel(logging.INFO)

# Prevent duplicate handlers
if not auth_logger.handlers:
    # Rotating file handler: max 5 MB per file, keep 3 backups
    file_handler = RotatingFileHandler(
        get_settings().auth_log_file, maxBytes=5 * 1024 * 1024, backupCount=3, delay=True
    )
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)
    auth_logger.addHandler(file_handler)
