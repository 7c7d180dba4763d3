"""
AeroDesk: airport ground operations core.

Flight scheduling, passenger booking and check-in, baggage tracking and gate
assignment, kept consistent under concurrent multi-terminal use.
"""

__version__ = "0.1.0"
