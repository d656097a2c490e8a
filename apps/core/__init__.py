# apps/core/__init__.py

"""
Core - Base de Compás

Contiene:
- Academias (tenants) y usuarios con perfil por rol
- Autenticación, permisos y el middleware de redirección por rol
- Infraestructura de la API JSON
- API de academias, profesores y encargados
"""
