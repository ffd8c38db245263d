import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler

def setup_logging(log_dir=None):
    log_dir = log_dir or os.getenv("CARTSMART_LOG_DIR", "logs")
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    log_file = os.path.join(log_dir, f"cartsmart_{datetime.now().strftime('%Y%m%d')}.log")

    # Rotate at midnight, keep the last 7 days
    file_handler = TimedRotatingFileHandler(log_file, when="midnight", interval=1, backupCount=7, encoding='utf-8')

    logging.basicConfig(
        level=os.getenv("CARTSMART_LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            file_handler,
            logging.StreamHandler()
        ]
    )
    return logging.getLogger("CartSmart")

logger = setup_logging()
