# apps/core/middleware.py

import logging
from urllib.parse import urlencode

from django.contrib.auth import logout
from django.shortcuts import redirect

logger = logging.getLogger(__name__)

MENSAJE_SIN_PERFIL = 'Tu cuenta no tiene un perfil configurado. Por favor, contacta al administrador.'


class RoleRedirectMiddleware:
    """
    Middleware de sesión y aislamiento por rol

    - páginas públicas: quien ya inició sesión va a la página de su rol
    - páginas protegidas: sin sesión se redirige a /login/
    - cada portal (/director, /professor, ...) solo para su rol
    - la API no se redirige: responde con códigos JSON propios
    """

    RUTAS_PUBLICAS = (
        '/login',
        '/signup',
        '/forgot-password',
        '/reset-password',
        '/auth/callback',
        '/student-info',
    )

    # Nunca redirigidas
    RUTAS_EXCLUIDAS = (
        '/api/',
        '/static/',
        '/media/',
        '/admin/',
        '/health',
        '/logout',
        '/__debug__/',
    )

    PREFIJOS_POR_ROL = (
        ('/super-admin', 'super_admin'),
        ('/director', 'director'),
        ('/professor', 'professor'),
        ('/guardian', 'guardian'),
    )

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        redireccion = self.verificar_acceso(request)
        if redireccion is not None:
            return redireccion

        response = self.get_response(request)

        # Headers de tenant
        if hasattr(request, 'user') and request.user.is_authenticated:
            response['X-Tenant'] = str(request.user.academy_id or '')
            response['X-User-Role'] = request.user.role

        return response

    def verificar_acceso(self, request):
        """Devuelve un redirect o None para seguir con la vista"""
        path = request.path
        usuario = request.user

        if path.startswith(self.RUTAS_EXCLUIDAS):
            return None

        if path.startswith(self.RUTAS_PUBLICAS):
            return self._ruta_publica(request, path, usuario)

        # Rutas protegidas
        if not usuario.is_authenticated:
            return redirect(f"/login/?{urlencode({'next': path})}")

        if not usuario.tiene_perfil:
            logger.warning("Usuario %s sin perfil intentó acceder a %s", usuario.pk, path)
            logout(request)
            return redirect(f"/login/?{urlencode({'error': MENSAJE_SIN_PERFIL})}")

        for prefijo, role in self.PREFIJOS_POR_ROL:
            if path.startswith(prefijo) and usuario.role != role:
                return redirect('/')

        # Los estudiantes no tienen portal propio
        if path.startswith('/student'):
            if usuario.role == 'student':
                return redirect('/student-info/')
            return redirect('/')

        if path == '/':
            return redirect(usuario.pagina_inicio)

        return None

    def _ruta_publica(self, request, path, usuario):
        if not usuario.is_authenticated or not usuario.tiene_perfil:
            return None

        # El estudiante se queda en su página informativa
        if path.startswith('/student-info') and usuario.role == 'student':
            return None

        # Cambiar la contraseña con un enlace válido no exige cerrar sesión
        if path.startswith('/reset-password'):
            return None

        return redirect(usuario.pagina_inicio)
