# apps/reportes/urls.py

from django.urls import path
from . import views

app_name = 'reportes'

urlpatterns = [
    path('contratos/<uuid:contrato_id>/pdf/', views.contrato_pdf, name='contrato_pdf'),
    path('facturas/excel/', views.cuotas_excel, name='cuotas_excel'),
    path('estudiantes/csv/', views.estudiantes_csv, name='estudiantes_csv'),
]
