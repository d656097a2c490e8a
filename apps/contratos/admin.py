# apps/contratos/admin.py

from django.contrib import admin

from .models import Contrato, ContratoMatricula, CuotaContrato


class ContratoMatriculaInline(admin.TabularInline):
    model = ContratoMatricula
    extra = 0
    raw_id_fields = ['course_registration']


class CuotaContratoInline(admin.TabularInline):
    model = CuotaContrato
    extra = 0
    fields = ['month', 'amount', 'status', 'paid_at']


@admin.register(Contrato)
class ContratoAdmin(admin.ModelAdmin):
    list_display = ['guardian', 'academy', 'monthly_amount', 'start_date', 'end_date', 'created_at']
    list_filter = ['academy']
    search_fields = ['guardian__email', 'guardian__first_name', 'guardian__last_name']
    inlines = [ContratoMatriculaInline, CuotaContratoInline]


@admin.register(CuotaContrato)
class CuotaContratoAdmin(admin.ModelAdmin):
    list_display = ['contract', 'month', 'amount', 'status', 'paid_at']
    list_filter = ['status']
    date_hierarchy = 'month'
