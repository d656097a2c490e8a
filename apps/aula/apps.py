# apps/aula/apps.py

from django.apps import AppConfig


class AulaConfig(AppConfig):
    """Configuración de la app Aula"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.aula'
    verbose_name = 'Aula - Seguimiento de clases'
