"""safefs - Transactional file operations for command-line tools.

Atomic writes, exclusion-aware directory traversal, directory/archive
comparison and exception-safe resource cleanup.
"""

__version__ = "0.1.0"
