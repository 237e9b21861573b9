"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: el Core depende de abstracciones.
"""

from core.interfaces.executors import CommandSpawner, ProcessOutput, TransformRunner

__all__ = ["CommandSpawner", "ProcessOutput", "TransformRunner"]
