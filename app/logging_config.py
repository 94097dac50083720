# app/logging_config.py

import logging
from datetime import datetime
import os

from app.config import get_settings

settings = get_settings()

os.makedirs(settings.LOG_DIR, exist_ok=True)

log_file = os.path.join(settings.LOG_DIR, f"buyers_{datetime.now().strftime('%Y-%m-%d')}.log")

logger = logging.getLogger("buyers-logger")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

# Avoid duplicate logs if re-run
if not logger.handlers:
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)


logger.propagate = False  # prevent Uvicorn from hijacking
