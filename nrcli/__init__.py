"""
nrcli — operator CLI for installing monitoring agents and integrations.

The heart of the package is the recipe engine: discover what runs on the
host, match installation recipes against it, resolve their inputs and
hand the install steps to a task engine.
"""

__version__ = "0.1.0"
