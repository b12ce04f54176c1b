"""Graphical user interface for Qisas.

This subpackage contains the PyQt6 main window and the thread-pool
runner used to keep network lookups off the GUI thread.  Nothing else in
the project imports it, so the core and audio packages stay usable (and
testable) without a display.
"""
