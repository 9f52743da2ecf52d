"""
Epoch Checkpoint Lifecycle Store

Persistent, epoch-indexed registry of raw checkpoints and their finality status.
"""

__version__ = "0.1.0"
