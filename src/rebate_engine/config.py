"""Configuration management for the Rebate Engine."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Scope marker stored in rebate rows in place of a real pharmacy or drug id
WILDCARD = "any"
# Identifier scheme for 11-digit National Drug Codes
DEFAULT_DRUG_ID_SCHEME = "ndc11"
# Adjusted prices are always stored with this many decimal places
PRICE_DECIMAL_PLACES = 4

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        log_level: Logging verbosity level.
        wildcard: Scope value meaning "any pharmacy" or "any drug".
        drug_id_scheme: Identifier scheme rebate rules are matched against.
        rules_file: Optional rebate table (CSV or Excel) to load rules from.
        lookup_timeout_seconds: Upper bound for a single rule lookup.
    """

    log_level: str = "INFO"
    wildcard: str = WILDCARD
    drug_id_scheme: str = DEFAULT_DRUG_ID_SCHEME
    rules_file: Path | None = None
    lookup_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with loaded configuration.
        """
        load_dotenv()

        log_level = os.getenv("LOG_LEVEL", "INFO")
        wildcard = os.getenv("REBATE_WILDCARD", WILDCARD)
        drug_id_scheme = os.getenv("DRUG_ID_SCHEME", DEFAULT_DRUG_ID_SCHEME)
        rules_file_env = os.getenv("RULES_FILE")
        rules_file = Path(rules_file_env) if rules_file_env else None
        lookup_timeout_seconds = float(os.getenv("LOOKUP_TIMEOUT_SECONDS", "10"))

        logger.debug(
            f"Loaded settings: log_level={log_level}, wildcard={wildcard}, "
            f"drug_id_scheme={drug_id_scheme}, rules_file={rules_file}"
        )

        return cls(
            log_level=log_level,
            wildcard=wildcard,
            drug_id_scheme=drug_id_scheme,
            rules_file=rules_file,
            lookup_timeout_seconds=lookup_timeout_seconds,
        )

    def configure_logging(self) -> None:
        """Configure root logging at the configured level."""
        logging.basicConfig(level=self.log_level.upper(), format=LOG_FORMAT)
        logger.debug(f"Logging configured at {self.log_level.upper()}")
