"""
Estimation and testing of IRT models for collaborating pairs.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Console handler shared by every module logger (logging.getLogger(__name__))
_handler = logging.StreamHandler(sys.stdout)
_handler.setLevel(logging.DEBUG)
_handler.setFormatter(logging.Formatter(LOG_FORMAT))

# Phase boundaries log at INFO; per-iteration traces need DEBUG
_root = logging.getLogger()
_root.setLevel(logging.INFO)
_root.addHandler(_handler)

# JIT compilation and worker-pool chatter
for _name in ("numba", "joblib"):
    logging.getLogger(_name).setLevel(logging.WARNING)
