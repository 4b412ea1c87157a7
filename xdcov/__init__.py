"""xdcov: Xdebug code coverage drivers."""

__version__ = "0.1.0"
