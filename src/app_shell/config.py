import logging
import os
import sys
from enum import Enum

from src.rules.models import Rules

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Environment(Enum):
    LOCAL = "local"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: str) -> "Environment":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"{value} is not a supported environment. Use either `local` or `production`."
            ) from None


def configure_logging(level: str | int = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)


def validate_ops_rules(rules: Rules, environment: Environment) -> None:
    """
    Validate operational requirements before startup.
    Exits the process when a required environment variable is missing.
    """
    required = rules.ops.required_env.get(environment.value, [])
    missing = [env_var for env_var in required if env_var not in os.environ]

    if missing:
        logger.critical(
            "Missing required environment variables for %s: %s",
            environment.value,
            ", ".join(missing),
        )
        sys.exit(1)

    logger.info("Configuration validated for %s environment.", environment.value)
