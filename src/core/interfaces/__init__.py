"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan los adaptadores del registro y del solver.
- Permite invertir dependencias: el coordinador depende de abstracciones y los
  tests sustituyen stubs sin red.
"""
