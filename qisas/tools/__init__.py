"""Command line utilities that ship with Qisas."""
