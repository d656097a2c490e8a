# config/asgi.py

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.production')

# Solo HTTP: la aplicación no usa WebSockets
application = get_asgi_application()
