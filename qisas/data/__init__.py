"""Static data shipped with Qisas (edition catalogue, sample stories)."""
