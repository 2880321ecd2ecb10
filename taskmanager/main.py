"""Packaged entry point. taskmanager is a library, so running it directly is an error."""

import logging

from taskmanager.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.get_log_level(),
)
logger = logging.getLogger(__name__)

USAGE_MESSAGE = (
    "Incorrect usage - taskmanager is a library, not a standalone program. "
    "Import TaskManager from taskmanager.scheduler and register tasks on it."
)


def main() -> None:
    """Refuse to run as a program."""
    logger.error("taskmanager was invoked directly")
    raise RuntimeError(USAGE_MESSAGE)


if __name__ == "__main__":
    main()
