"""
errors.py

Taxonomía de errores del ajuste polinomial por algoritmo genético.

Ninguno de los operadores genéticos lanza errores recuperables: los errores
de este módulo se detectan antes de empezar (configuración, datos de entrada)
o al final, cuando el coordinador reúne los resultados de los workers.
"""


class ConfigurationError(ValueError):
    """Parámetros de ejecución inválidos o faltantes. Se detecta antes de inicializar."""


class InputDataError(ValueError):
    """No se pudo construir el conjunto de puntos (archivo mal formado o vacío)."""


class CoordinationError(RuntimeError):
    """Un worker no produjo o no entregó su resultado. La ejecución se abandona."""
