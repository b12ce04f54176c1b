"""Small helpers shared across Qisas subpackages."""
