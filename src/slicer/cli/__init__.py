"""
Slicer command-line interface (``slicer``).
"""
