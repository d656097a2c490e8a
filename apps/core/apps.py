# apps/core/apps.py

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Configuración de la app Core"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core - Academias y cuentas'
