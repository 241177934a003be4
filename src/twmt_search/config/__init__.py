"""Configuration management."""
from twmt_search.config.settings import Config
from twmt_search.config.constants import *

__all__ = [
    "Config",
]
