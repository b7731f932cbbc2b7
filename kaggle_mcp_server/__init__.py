# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""Kaggle MCP Server."""

__version__ = "1.0.0"
