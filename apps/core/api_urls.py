# apps/core/api_urls.py

from django.urls import path
from . import cuentas

app_name = 'cuentas'

urlpatterns = [
    # Academias
    path('academies', cuentas.AcademiasAPI.as_view(), name='academies'),
    path('academies/<str:pk>', cuentas.AcademiaDetalleAPI.as_view(), name='academy_detail'),
    path('academies/<str:pk>/status', cuentas.AcademiaStatusAPI.as_view(), name='academy_status'),

    # Profesores
    path('professors', cuentas.ProfesoresAPI.as_view(), name='professors'),
    path('professors/<str:pk>', cuentas.ProfesorDetalleAPI.as_view(), name='professor_detail'),
    path('professors/<str:pk>/status', cuentas.ProfesorStatusAPI.as_view(), name='professor_status'),

    # Encargados
    path('guardians', cuentas.EncargadosAPI.as_view(), name='guardians'),
    path('guardians/<str:pk>', cuentas.EncargadoDetalleAPI.as_view(), name='guardian_detail'),
    path('guardians/<str:pk>/status', cuentas.EncargadoStatusAPI.as_view(), name='guardian_status'),
    path('guardians/<str:pk>/students', cuentas.EncargadoEstudiantesAPI.as_view(), name='guardian_assignments'),

    # Cuenta propia
    path('user/data-export', cuentas.ExportarDatosAPI.as_view(), name='data_export'),
]
