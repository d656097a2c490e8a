#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Compás - Administración de academias de música
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Configuración por defecto para desarrollo
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    # Comandos propios de Compás
    if len(sys.argv) > 1:
        command = sys.argv[1]

        # Setup inicial
        if command == 'setup':
            print("🚀 Configurando Compás...")

            print("📊 Aplicando migraciones...")
            if os.system(f'{sys.executable} manage.py migrate') != 0:
                print("❌ Error en las migraciones")
                return

            print("📁 Recolectando archivos estáticos...")
            os.system(f'{sys.executable} manage.py collectstatic --noinput')

            print("🌱 Creando academia de demostración...")
            os.system(f'{sys.executable} manage.py seed_academia')

            print("✅ Setup terminado!")
            print("🔑 Crea el super admin con: python manage.py crear_superadmin --email ... --password ...")
            return

        elif command == 'backup':
            print("💾 Creando respaldo de la base de datos...")
            from datetime import datetime
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            backup_file = f"backup_compas_{timestamp}.json"
            os.system(f'{sys.executable} manage.py dumpdata --indent 2 > {backup_file}')
            print(f"✅ Respaldo creado: {backup_file}")
            return

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
