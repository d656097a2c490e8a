# config/settings/development.py

from .base import *

# === DESARROLLO ===

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1', '0.0.0.0']

# === APPS ADICIONALES PARA DEV ===
# django_extensions ya está en base.py

# Debug Toolbar solo si está disponible
try:
    import debug_toolbar

    INSTALLED_APPS += ['debug_toolbar']
    MIDDLEWARE = ['debug_toolbar.middleware.DebugToolbarMiddleware'] + MIDDLEWARE

    DEBUG_TOOLBAR_CONFIG = {
        'SHOW_TOOLBAR_CALLBACK': lambda request: DEBUG,
        'SHOW_COLLAPSED': True,
    }

    INTERNAL_IPS = [
        '127.0.0.1',
        'localhost',
    ]

except ImportError:
    pass

# === BASE DE DATOS ===

# PostgreSQL por defecto (igual que producción)
if env('DATABASE_URL', default=None):
    import dj_database_url

    DATABASES['default'] = dj_database_url.parse(env('DATABASE_URL'), conn_max_age=600)
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': env('DB_NAME', default='compas'),
            'USER': env('DB_USER', default='compas_user'),
            'PASSWORD': env('DB_PASSWORD', default='compas123'),
            'HOST': env('DB_HOST', default='localhost'),
            'PORT': env('DB_PORT', default='5432'),
            'OPTIONS': {
                'sslmode': 'prefer',
            },
            'CONN_MAX_AGE': 60,
        }
    }

# SQLite solo si se pide explícitamente
if env('USE_SQLITE', cast=bool, default=False):
    print("🔄 Usando SQLite para desarrollo")
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
else:
    print(f"🐘 Usando PostgreSQL: {DATABASES['default']['NAME']}@{DATABASES['default']['HOST']}")

# === EMAIL ===

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

# === LOGGING MÁS VERBOSO ===

LOGGING['handlers']['console']['level'] = 'DEBUG'
LOGGING['root']['level'] = 'DEBUG'
LOGGING['loggers']['apps']['level'] = 'DEBUG'

# === CACHE ===

# Cache en memoria en desarrollo (sin Redis obligatorio)
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'compas-dev-cache',
    }
}

# Usar Redis si está disponible
if env('REDIS_URL', default=None):
    try:
        import redis

        r = redis.from_url(env('REDIS_URL'))
        r.ping()

        CACHES['default'] = {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': env('REDIS_URL'),
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            }
        }
        print("🔴 Redis conectado!")
    except Exception as e:
        print(f"⚠️  Redis no disponible: {e}")
        print("📝 Usando cache en memoria local")

# Estáticos sin manifiesto en desarrollo
STORAGES['staticfiles'] = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}

SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# shell_plus
SHELL_PLUS_IMPORTS = [
    'from apps.core.models import *',
    'from apps.academico.models import *',
    'from apps.contratos.models import *',
    'from apps.contratos.services import *',
]

print("🚀 Configuración de DESARROLLO cargada")
print(f"📁 BASE_DIR: {BASE_DIR}")
print(f"🔑 DEBUG: {DEBUG}")
