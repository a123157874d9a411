"""fitbridge: stream an Apple Health export into Google Fit."""

__version__ = "0.1.0"
