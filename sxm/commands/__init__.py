"""
CLI command implementations for the SXM telemetry client
"""

from sxm.commands.run import run_command

__all__ = ["run_command"]
