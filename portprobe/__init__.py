"""
portprobe - a concurrent TCP connect scanner.
"""

__version__ = "1.0.0"
