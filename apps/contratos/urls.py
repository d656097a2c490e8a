# apps/contratos/urls.py

from django.urls import path
from . import views

app_name = 'contratos'

urlpatterns = [
    path('contracts', views.ContratosAPI.as_view(), name='contracts'),
    path('contracts/date-range', views.RangoFechasAPI.as_view(), name='date_range'),
    path('contracts/special', views.ContratoEspecialAPI.as_view(), name='special'),
    path(
        'contracts/guardians/<str:guardian_pk>/course-registrations',
        views.MatriculasEncargadoAPI.as_view(),
        name='guardian_course_registrations',
    ),
    path('contracts/<str:pk>', views.ContratoDetalleAPI.as_view(), name='contract_detail'),
    path('contracts/<str:pk>/invoices/<str:invoice_pk>', views.CuotaAPI.as_view(), name='invoice'),

    # Antes que course-registrations/<pk> de academico
    path(
        'course-registrations/bulk-with-contracts',
        views.MatriculaMasivaAPI.as_view(),
        name='bulk_with_contracts',
    ),
]
