"""
idea_packager - packaging of IntelliJ platform plugins.

Builds plugin artifacts from multi-project builds and keeps an index of the
plugins installed in a platform distribution.
"""

__version__ = "0.1.0"
