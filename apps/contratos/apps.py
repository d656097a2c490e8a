# apps/contratos/apps.py

from django.apps import AppConfig


class ContratosConfig(AppConfig):
    """Configuración de la app Contratos"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.contratos'
    verbose_name = 'Contratos y cuotas'
