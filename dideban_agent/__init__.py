"""
Dideban Agent - host telemetry agent.

Samples CPU, memory and disk metrics at a fixed interval and delivers
them to a remote collection endpoint.
"""

from .const import APP_VERSION

__version__ = APP_VERSION
