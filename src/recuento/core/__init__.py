"""Núcleo del motor de conteo / Tally engine core."""
