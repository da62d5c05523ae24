import logging

import config
from utils.config_validator import validate_or_exit
from utils.logging_config import setup_logging

# Initialize centralized logging configuration
setup_logging()

# Refuse to start with a weak JWT secret or broken pagination limits
validate_or_exit(config)

from app import app, main

logging.info("🔧 [run.py] Routers registered: "
             f"{sorted({route.path for route in app.routes if route.path.startswith('/api')})}")

if __name__ == '__main__':
    logging.info("🔧 [run.py] Starting shop API in __main__ mode")
    main()
