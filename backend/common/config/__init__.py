"""Configuration module - re-exports all config values."""
from .paths import *
from .detector import *
