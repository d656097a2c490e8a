# apps/aula/__init__.py

"""
Aula - seguimiento de clases

Insignias, asistencias y comentarios por sesión de cada matrícula.
"""
