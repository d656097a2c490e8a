# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from .models import Academia, Usuario


@admin.register(Usuario)
class UsuarioAdmin(BaseUserAdmin):
    """Admin de cuentas con su perfil (rol + academia)"""

    list_display = [
        'email', 'get_full_name', 'role_badge', 'academy',
        'status', 'is_active', 'deleted_at'
    ]
    list_filter = ['role', 'status', 'academy', 'is_active']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['-date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Perfil', {
            'fields': ('role', 'academy', 'phone', 'status', 'additional_info', 'deleted_at')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Perfil', {
            'fields': ('email', 'role', 'academy')
        }),
    )

    def role_badge(self, obj):
        """Rol con color"""
        cores = {
            'super_admin': '#EF4444',
            'director': '#F59E0B',
            'professor': '#3B82F6',
            'guardian': '#10B981',
            'student': '#8B5CF6',
        }
        cor = cores.get(obj.role, '#6B7280')
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cor, obj.get_role_display() or 'Sin perfil'
        )

    role_badge.short_description = 'Rol'


@admin.register(Academia)
class AcademiaAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'phone', 'directores', 'created_at']
    list_filter = ['status']
    search_fields = ['name']

    def directores(self, obj):
        return ', '.join(d.email for d in obj.get_directores()) or '-'

    directores.short_description = 'Directores'
