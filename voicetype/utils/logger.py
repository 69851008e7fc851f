# Save this file as: voicetype/utils/logger.py
import os
import sys
from loguru import logger

LOG_DIR = os.getenv('LOG_DIR', 'logs')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Remove default handler
logger.remove()

# Create logs directory if not exists
os.makedirs(LOG_DIR, exist_ok=True)

# Add file handler
logger.add(
    os.path.join(LOG_DIR, 'voicetype_{time:YYYY-MM-DD}.log'),
    format='{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}',
    level=LOG_LEVEL,
    enqueue=True
)

# Add console handler
logger.add(
    sys.stderr,
    format='{time:HH:mm:ss} | {level: <8} | {message}',
    level=LOG_LEVEL
)
