"""
Entry point for ``python -m sxm``
"""

from sxm.cli import cli

if __name__ == '__main__':
    cli(obj={})
