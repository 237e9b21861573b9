"""Modelos, errores y reglas de forma del dominio TokenMeter.

Por qué:
- Aquí viven los providers, comandos y resultados (Pydantic v2 / dataclasses).
- El dominio no conoce procesos, intérpretes JS ni la CLI: solo conceptos del problema.
"""
