# logging_config.py
"""Process-wide logging setup shared by the API and the batch job runner."""
import logging
import sys

import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
     """Configure root logging once; later calls are no-ops."""
     root = logging.getLogger()
     if root.handlers:
          return

     root.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
     handler = logging.StreamHandler(sys.stdout)
     handler.setFormatter(logging.Formatter(LOG_FORMAT))
     root.addHandler(handler)

     # SQL echo is controlled by SQL_ECHO, not by the root level.
     if not config.SQL_ECHO:
          logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
     logging.getLogger("azure").setLevel(logging.WARNING)
     logging.getLogger("urllib3").setLevel(logging.WARNING)
