"""
DeDeezer - Ad-blocking patcher for the Deezer desktop client.

This package unpacks the client's Electron archive, swaps its entry script
for an injection wrapper, reinstalls dependencies, repacks the archive and
installs it in place while keeping a pristine backup.
"""

__version__ = "0.1.0"
__author__ = "DeDeezer"
