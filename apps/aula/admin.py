# apps/aula/admin.py

from django.contrib import admin

from .models import (
    Asistencia, ComentarioSesion, EscalaEvaluacion, EvaluacionCancion, Insignia, InsigniaEstudiante,
    RubricaEvaluacion, RubricaMateria, TareaCompletada, TareaGrupal, TareaSesion,
)


@admin.register(Insignia)
class InsigniaAdmin(admin.ModelAdmin):
    list_display = ['name', 'virtud', 'academy', 'deleted_at']
    list_filter = ['academy']
    search_fields = ['name', 'virtud']


@admin.register(InsigniaEstudiante)
class InsigniaEstudianteAdmin(admin.ModelAdmin):
    list_display = ['badge', 'course_registration', 'assigned_by', 'created_at']
    list_filter = ['badge']


@admin.register(Asistencia)
class AsistenciaAdmin(admin.ModelAdmin):
    list_display = ['course_registration', 'period_date', 'attendance_status']
    list_filter = ['attendance_status']


@admin.register(ComentarioSesion)
class ComentarioSesionAdmin(admin.ModelAdmin):
    list_display = ['course_registration', 'period_date', 'author', 'updated_at']


class RubricaMateriaInline(admin.TabularInline):
    model = RubricaMateria
    extra = 0


@admin.register(RubricaEvaluacion)
class RubricaEvaluacionAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_order', 'academy', 'deleted_at']
    list_filter = ['academy']
    inlines = [RubricaMateriaInline]


@admin.register(EscalaEvaluacion)
class EscalaEvaluacionAdmin(admin.ModelAdmin):
    list_display = ['name', 'numeric_value', 'display_order', 'academy', 'deleted_at']
    list_filter = ['academy']


@admin.register(EvaluacionCancion)
class EvaluacionCancionAdmin(admin.ModelAdmin):
    list_display = ['course_registration', 'song', 'period_date', 'rubric', 'scale']
    list_filter = ['rubric']


@admin.register(TareaSesion)
class TareaSesionAdmin(admin.ModelAdmin):
    list_display = ['course_registration', 'period_date', 'updated_at']


@admin.register(TareaGrupal)
class TareaGrupalAdmin(admin.ModelAdmin):
    list_display = ['period_date', 'updated_at']


@admin.register(TareaCompletada)
class TareaCompletadaAdmin(admin.ModelAdmin):
    list_display = ['student', 'session_assignment', 'session_group_assignment', 'completed_at']
