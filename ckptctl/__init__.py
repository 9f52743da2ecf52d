"""
ckptctl - Epoch checkpoint store CLI

Commands:
- ckptctl checkpoint create/get/set-status - Record and advance checkpoints
- ckptctl checkpoint list/latest - Status-filtered queries
- ckptctl checkpoint audit - Confirmation monotonicity audit
"""

__version__ = "0.1.0"
