# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === AUTENTICACIÓN ===
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('forgot-password/', views.forgot_password_view, name='forgot_password'),
    path('reset-password/<str:token>/', views.reset_password_view, name='reset_password'),

    # === PANELES ===
    path('super-admin/', views.super_admin_dashboard, name='super_admin'),
    path('director/', views.director_dashboard, name='director'),
    path('professor/', views.professor_dashboard, name='professor'),
    path('guardian/', views.guardian_dashboard, name='guardian'),
    path('student-info/', views.student_info, name='student_info'),

    # === MONITOREO ===
    path('health/', views.health_check, name='health'),
]
