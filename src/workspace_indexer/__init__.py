"""
workspace-indexer - keeps a PHP symbol engine's index in step with the workspace.
"""

__version__ = "0.3.0"
