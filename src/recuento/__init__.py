"""Recuento: motor de sesiones de conteo manual de votos.

English: Recuento, a manual vote-tally session engine.
"""

__version__ = "0.1.0"
