# apps/academico/admin.py

from django.contrib import admin

from .models import (
    Cancion, Curso, EncargadoEstudiante, Estudiante, FechaPeriodo, Horario,
    Materia, Matricula, MatriculaCancion, Periodo, ProfesorMateria,
)


class ProfesorMateriaInline(admin.TabularInline):
    model = ProfesorMateria
    extra = 0


@admin.register(Materia)
class MateriaAdmin(admin.ModelAdmin):
    list_display = ['name', 'academy', 'deleted_at', 'created_at']
    list_filter = ['academy']
    search_fields = ['name', 'description']
    inlines = [ProfesorMateriaInline]


class FechaPeriodoInline(admin.TabularInline):
    model = FechaPeriodo
    extra = 0
    fields = ['date_type', 'date', 'subject', 'profile', 'comment', 'deleted_at']


@admin.register(Periodo)
class PeriodoAdmin(admin.ModelAdmin):
    """Admin de periodos con su calendario"""

    list_display = ['__str__', 'academy', 'fechas_count', 'deleted_at']
    list_filter = ['academy', 'year', 'period']
    inlines = [FechaPeriodoInline]

    def fechas_count(self, obj):
        return obj.fechas.vigentes().count()

    fechas_count.short_description = 'Fechas'


@admin.register(Curso)
class CursoAdmin(admin.ModelAdmin):
    list_display = ['subject', 'period', 'profile', 'mensualidad']
    list_filter = ['period__academy', 'period']
    search_fields = ['subject__name', 'profile__email']


@admin.register(Horario)
class HorarioAdmin(admin.ModelAdmin):
    list_display = ['name', 'profile', 'nombre_dia', 'start_time', 'end_time', 'period']
    list_filter = ['academy', 'day_of_week']
    search_fields = ['name', 'profile__email']


class EncargadoEstudianteInline(admin.TabularInline):
    model = EncargadoEstudiante
    extra = 0
    fk_name = 'student'


@admin.register(Estudiante)
class EstudianteAdmin(admin.ModelAdmin):
    list_display = ['nombre_completo', 'academy', 'enrollment_status', 'deleted_at']
    list_filter = ['academy', 'enrollment_status']
    search_fields = ['first_name', 'last_name']
    inlines = [EncargadoEstudianteInline]


@admin.register(Cancion)
class CancionAdmin(admin.ModelAdmin):
    list_display = ['name', 'author', 'difficulty_level', 'academy']
    list_filter = ['academy', 'difficulty_level']
    search_fields = ['name', 'author']


class MatriculaCancionInline(admin.TabularInline):
    model = MatriculaCancion
    extra = 0


@admin.register(Matricula)
class MatriculaAdmin(admin.ModelAdmin):
    list_display = ['student', 'subject', 'period', 'profile', 'status', 'enrollment_date']
    list_filter = ['academy', 'status', 'period']
    search_fields = ['student__first_name', 'student__last_name', 'subject__name']
    inlines = [MatriculaCancionInline]
