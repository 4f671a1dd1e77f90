import logging
import os
from typing import Optional

from dateutil import tz
from dotenv import load_dotenv

load_dotenv()

COMPLIANCE_JURISDICTION = os.getenv("COMPLIANCE_JURISDICTION", "ES")
COMPLIANCE_TIMEZONE = os.getenv("COMPLIANCE_TIMEZONE", "Europe/Madrid")
COMPLIANCE_NIGHT_HOURS_METHOD = os.getenv("COMPLIANCE_NIGHT_HOURS_METHOD", "stepped")
COMPLIANCE_LOG_LEVEL = os.getenv("COMPLIANCE_LOG_LEVEL", "INFO")

NIGHT_HOURS_METHODS = ("stepped", "exact")


def validate_compliance_config() -> None:
    invalid = []
    if tz.gettz(COMPLIANCE_TIMEZONE) is None:
        invalid.append(f"COMPLIANCE_TIMEZONE={COMPLIANCE_TIMEZONE!r}")
    if COMPLIANCE_NIGHT_HOURS_METHOD not in NIGHT_HOURS_METHODS:
        invalid.append(f"COMPLIANCE_NIGHT_HOURS_METHOD={COMPLIANCE_NIGHT_HOURS_METHOD!r}")
    if not isinstance(logging.getLevelName(COMPLIANCE_LOG_LEVEL.upper()), int):
        invalid.append(f"COMPLIANCE_LOG_LEVEL={COMPLIANCE_LOG_LEVEL!r}")

    if invalid:
        raise RuntimeError(
            f"Invalid compliance environment variables: {', '.join(invalid)}. "
            "Please fix these in your .env file."
        )


LOG_FORMAT = '%(name)-12s: %(levelname)-8s %(message)s'

_logging_configured = False


def setup_logging(level: Optional[str] = None):
    """Attach a console handler to the root logger once per process.

    The level defaults to COMPLIANCE_LOG_LEVEL. A root logger that already
    has handlers (pytest, an ASGI server) is left as it is.
    """
    global _logging_configured
    if _logging_configured:
        return

    root = logging.getLogger()
    if not root.handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console)
        root.setLevel((level or COMPLIANCE_LOG_LEVEL).upper())

    _logging_configured = True
