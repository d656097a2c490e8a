# apps/core/views.py

import logging

from django.contrib import messages
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_GET

from apps.academico.models import Curso, EncargadoEstudiante, Estudiante, Matricula
from apps.contratos.models import Contrato, CuotaContrato

from .auth_service import auth_service
from .forms import LoginForm, RecuperarContrasenaForm, RestablecerContrasenaForm
from .models import Academia, Usuario
from .permissions import requiere_rol

logger = logging.getLogger(__name__)


# === AUTENTICACIÓN ===

def login_view(request):
    """
    Inicio de sesión

    La lógica de bloqueo y verificación de perfil vive en auth_service;
    aquí solo se traduce el resultado a mensajes y redirecciones.
    """
    form = LoginForm()

    # Mensaje enviado por el middleware (cuenta sin perfil)
    if request.GET.get('error'):
        messages.error(request, request.GET['error'])

    if request.method == 'POST':
        form = LoginForm(request.POST)

        if form.is_valid():
            exito, mensaje = auth_service.iniciar_sesion(
                request,
                form.cleaned_data['email'],
                form.cleaned_data['password'],
                form.cleaned_data['recordarme'],
            )

            if exito:
                messages.success(request, mensaje)
                return redirect(_destino_pos_login(request))
            messages.error(request, mensaje)

    context = {
        'title': 'Iniciar sesión - Compás',
        'form': form,
    }

    return render(request, 'core/login.html', context)


def _destino_pos_login(request):
    next_url = request.GET.get('next') or request.POST.get('next')
    if next_url and url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return next_url
    return request.user.pagina_inicio


def logout_view(request):
    auth_service.cerrar_sesion(request)
    messages.info(request, 'Sesión cerrada.')
    return redirect('/login/')


def forgot_password_view(request):
    """Solicitud del enlace de recuperación (nunca revela si el email existe)"""
    form = RecuperarContrasenaForm()

    if request.method == 'POST':
        form = RecuperarContrasenaForm(request.POST)

        if form.is_valid():
            exito, mensaje = auth_service.iniciar_recuperacion(form.cleaned_data['email'])

            if exito:
                messages.success(request, mensaje)
                return redirect('core:forgot_password')
            messages.error(request, mensaje)

    context = {
        'title': 'Recuperar contraseña - Compás',
        'form': form,
    }

    return render(request, 'core/forgot_password.html', context)


def reset_password_view(request, token):
    form = RestablecerContrasenaForm()

    if request.method == 'POST':
        form = RestablecerContrasenaForm(request.POST)

        if form.is_valid():
            exito, mensaje = auth_service.validar_token_recuperacion(token, form.cleaned_data['nueva_contrasena'])

            if exito:
                messages.success(request, mensaje)
                return redirect('/login/')
            messages.error(request, mensaje)
            return redirect('core:forgot_password')

    context = {
        'title': 'Nueva contraseña - Compás',
        'form': form,
        'token': token,
    }

    return render(request, 'core/reset_password.html', context)


# === PANELES POR ROL ===

def calcular_estadisticas(usuario):
    """
    Contadores del panel, siempre limitados a lo que el rol puede ver
    """
    hoy = timezone.localdate()

    if usuario.role == 'super_admin':
        return {
            'academias': Academia.objects.count(),
            'academias_activas': Academia.objects.filter(status='active').count(),
            'directores': Usuario.objects.del_rol('director').count(),
            'estudiantes': Estudiante.objects.vigentes().count(),
        }

    if usuario.role == 'director':
        academia = usuario.academy_id
        return {
            'estudiantes': Estudiante.objects.vigentes().filter(academy_id=academia).count(),
            'profesores': Usuario.objects.del_rol('professor').filter(academy_id=academia).count(),
            'encargados': Usuario.objects.del_rol('guardian').filter(academy_id=academia).count(),
            'contratos_activos': Contrato.objects.filter(academy_id=academia, end_date__gte=hoy).count(),
            'cuotas_pendientes': CuotaContrato.objects.filter(
                contract__academy_id=academia, status='pendiente'
            ).count(),
        }

    if usuario.role == 'professor':
        matriculas = Matricula.objects.vigentes().filter(profile=usuario, status='active')
        return {
            'cursos': Curso.objects.filter(profile=usuario, period__deleted_at__isnull=True).count(),
            'estudiantes': matriculas.values('student_id').distinct().count(),
        }

    if usuario.role == 'guardian':
        return {
            'estudiantes': EncargadoEstudiante.objects.filter(
                guardian=usuario, student__deleted_at__isnull=True
            ).count(),
            'cuotas_pendientes': CuotaContrato.objects.filter(
                contract__guardian=usuario, status='pendiente'
            ).count(),
        }

    return {}


def _render_panel(request, template, title):
    stats = calcular_estadisticas(request.user)

    # HTMX solo refresca los contadores
    if request.htmx:
        return render(request, 'core/_stats.html', {'stats': stats})

    context = {
        'title': title,
        'stats': stats,
        'academia': request.user.academy,
    }
    return render(request, template, context)


@requiere_rol('super_admin')
def super_admin_dashboard(request):
    return _render_panel(request, 'core/dashboard_super_admin.html', 'Super administración - Compás')


@requiere_rol('director')
def director_dashboard(request):
    return _render_panel(request, 'core/dashboard_director.html', 'Dirección - Compás')


@requiere_rol('professor')
def professor_dashboard(request):
    return _render_panel(request, 'core/dashboard_professor.html', 'Aula - Compás')


@requiere_rol('guardian')
def guardian_dashboard(request):
    return _render_panel(request, 'core/dashboard_guardian.html', 'Hogar - Compás')


def student_info(request):
    """
    Página informativa para cuentas de estudiante

    Los estudiantes no tienen portal propio: ven sus matrículas y a quién
    acudir para el resto.
    """
    fichas = []
    if request.user.is_authenticated and request.user.role == 'student':
        fichas = list(
            Estudiante.objects.vigentes()
            .filter(user=request.user)
            .prefetch_related('matriculas__subject', 'matriculas__period')
        )

    context = {
        'title': 'Información para estudiantes - Compás',
        'fichas': fichas,
    }
    return render(request, 'core/student_info.html', context)


# === MONITOREO ===

@require_GET
def health_check(request):
    """Health check para monitoreo (sin sesión)"""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as e:
        logger.error("Health check sin base de datos: %s", e)
        return JsonResponse({
            'status': 'unhealthy',
            'database': 'error',
            'timestamp': timezone.now().isoformat(),
        }, status=500)

    return JsonResponse({
        'status': 'healthy',
        'database': 'ok',
        'timestamp': timezone.now().isoformat(),
    })
