"""
slaclock - SLA tracking measured in business time.
"""

__version__ = "0.1.0"
