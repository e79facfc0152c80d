"""
Tapeout - post-layout timing closure and tapeout readiness for OpenROAD flows.
"""

__version__ = "0.1.0"
