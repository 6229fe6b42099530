import logging

# Shared logger for the application; handlers are installed by setup_logging()
logger = logging.getLogger("journal_bridge")
