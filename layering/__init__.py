"""
Adaptive GrabCut layering: splits a photograph into foreground and background layers.
"""

__version__ = "0.1.0"
