"""Pytest configuration for test logging."""
from safe_calculator.common.logger import configure_logging

configure_logging("DEBUG")
