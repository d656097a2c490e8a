# apps/core/permissions.py

from functools import wraps
from django.shortcuts import redirect
from django.contrib import messages
from django.core.exceptions import PermissionDenied


class CompasPermissions:
    """
    Sistema de permisos de Compás
    Basado en los roles: super_admin, director, professor, guardian, student
    """

    @staticmethod
    def tiene_rol(user, *roles):
        """Verifica sesión, perfil y rol"""
        return user.is_authenticated and user.tiene_perfil and user.role in roles

    @staticmethod
    def is_gestor(user):
        """Director o super admin: gestiona el catálogo de la academia"""
        return CompasPermissions.tiene_rol(user, 'director', 'super_admin')

    @staticmethod
    def puede_gestionar_academia(user, academy_id):
        """Gestores de la misma academia (o super admin)"""
        if not CompasPermissions.is_gestor(user):
            return False
        return user.puede_acceder_academia(academy_id)

    @staticmethod
    def puede_gestionar_matricula(user, matricula):
        """
        Quién puede registrar asistencias, comentarios e insignias de una matrícula

        Gestores de la academia, o el profesor titular del curso.
        """
        if not user.is_authenticated or not user.tiene_perfil:
            return False

        if user.role == 'professor':
            return matricula.profile_id == user.id

        return CompasPermissions.puede_gestionar_academia(user, matricula.academy_id)

    @staticmethod
    def puede_ver_estudiante(user, estudiante):
        """
        Encargados ven a sus estudiantes; gestores ven los de su academia
        """
        if not user.is_authenticated or not user.tiene_perfil:
            return False

        if user.role == 'guardian':
            return estudiante.guardian_links.filter(guardian=user).exists()

        return CompasPermissions.puede_gestionar_academia(user, estudiante.academy_id)


# Decoradores para views

def requiere_rol(*roles):
    """
    Decorador para páginas: exige uno de los roles
    Redirige a la raíz (que a su vez lleva a la página de inicio del rol)
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            if not CompasPermissions.tiene_rol(request.user, *roles):
                messages.error(request, 'Acceso denegado.')
                return redirect('/')
            return view_func(request, *args, **kwargs)

        return wrapped_view

    return decorator


def ajax_requiere_permiso(permission_check):
    """
    Decorador genérico para vistas AJAX/HTMX y descargas
    Lanza 403 en lugar de redirigir
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            if not permission_check(request.user):
                raise PermissionDenied("No tienes permiso para esta acción.")
            return view_func(request, *args, **kwargs)

        return wrapped_view

    return decorator
