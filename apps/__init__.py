# apps/__init__.py

"""
Compás - Aplicaciones Django

Este paquete contiene todas las aplicaciones del sistema:
- core: academias, perfiles, autenticación, permisos y API base
- academico: materias, periodos, cursos, horarios, estudiantes, canciones y matrículas
- aula: seguimiento en clase (asistencias, comentarios, insignias)
- contratos: contratos, cuotas mensuales y cálculo de rango de fechas
- reportes: estados de cuenta PDF, exportaciones Excel y CSV
"""

__version__ = '0.1.0'
