# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
Global configuration variables for Kaggle MCP Server.
"""

import os

###############################################################################
# Upstream Configuration
###############################################################################

DEFAULT_ORIGIN: str = os.getenv("KAGGLE_ORIGIN", "https://www.kaggle.com")
ALLOWED_DOMAINS: tuple[str, ...] = ("kaggle.com", "www.kaggle.com", "localhost")
REQUEST_TIMEOUT: float = float(os.getenv("KAGGLE_REQUEST_TIMEOUT", "30"))
VERBOSE_ERRORS: bool = os.getenv("KAGGLE_VERBOSE_ERRORS", "false").lower() == "true"
