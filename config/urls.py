# config/urls.py

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API JSON
    path('api/', include('apps.core.api_urls')),
    path('api/', include('apps.contratos.urls')),
    path('api/', include('apps.academico.urls')),
    path('api/', include('apps.aula.urls')),

    # Páginas y descargas
    path('', include('apps.core.urls')),
    path('reportes/', include('apps.reportes.urls')),
]

# Servir archivos de media en desarrollo
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)

    # Debug Toolbar si está disponible
    try:
        import debug_toolbar

        urlpatterns = [
                          path('__debug__/', include(debug_toolbar.urls)),
                      ] + urlpatterns
    except ImportError:
        pass

# Títulos del admin
admin.site.site_header = 'Compás Admin'
admin.site.site_title = 'Compás'
admin.site.index_title = 'Administración de academias'
