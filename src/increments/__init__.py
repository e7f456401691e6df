"""increments — chain validation for incremental update files.

Scans a directory of incremental files, reads only the two header lines of
each (``-- Increment timestamp:`` / ``-- Previous timestamp:``), and returns
the files that link into a consistent chain starting from a known baseline
token.

Files are processed one at a time in filename order; each file handle is
released as soon as its header has been read.
"""

__version__ = "0.1.0"
