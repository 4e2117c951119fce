"""LAN client for Cooper&Hunter / Gree air conditioners.

Discovery, encrypted binding, status polling and command dispatch over the
vendor's UDP protocol.
"""

__version__ = "0.1.0"
