# apps/reportes/apps.py

from django.apps import AppConfig


class ReportesConfig(AppConfig):
    """Configuración de la app Reportes"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reportes'
    verbose_name = 'Reportes - PDF & Exports'
