# apps/academico/__init__.py

"""
Académico - catálogo de la academia

Contiene:
- Materias, canciones y periodos con su calendario
- Cursos (profesor + materia + periodo) y turnos semanales
- Estudiantes, encargados y matrículas
- Portal del encargado
"""
