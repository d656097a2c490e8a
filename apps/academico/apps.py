# apps/academico/apps.py

from django.apps import AppConfig


class AcademicoConfig(AppConfig):
    """Configuración de la app Académico"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.academico'
    verbose_name = 'Académico - Catálogo de la academia'
