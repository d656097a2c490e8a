# apps/academico/urls.py

from django.urls import path
from . import portal, views

app_name = 'academico'

urlpatterns = [
    # Materias y repertorio
    path('subjects', views.MateriasAPI.as_view(), name='subjects'),
    path('subjects/<str:pk>', views.MateriaDetalleAPI.as_view(), name='subject_detail'),
    path('songs', views.CancionesAPI.as_view(), name='songs'),
    path('songs/<str:pk>', views.CancionDetalleAPI.as_view(), name='song_detail'),

    # Periodos y calendario
    path('periods', views.PeriodosAPI.as_view(), name='periods'),
    path('periods/<str:pk>', views.PeriodoDetalleAPI.as_view(), name='period_detail'),
    path('periods/<str:pk>/dates', views.FechasPeriodoAPI.as_view(), name='period_dates'),
    path('periods/<str:pk>/dates/<str:date_pk>', views.FechaDetalleAPI.as_view(), name='period_date_detail'),

    # Cursos y turnos
    path('courses', views.CursosAPI.as_view(), name='courses'),
    path('courses/<str:pk>', views.CursoDetalleAPI.as_view(), name='course_detail'),
    path('courses/<str:pk>/sessions', views.SesionesCursoAPI.as_view(), name='course_sessions'),
    path('schedules', views.HorariosAPI.as_view(), name='schedules'),
    path('schedules/<str:pk>', views.HorarioDetalleAPI.as_view(), name='schedule_detail'),

    # Estudiantes
    path('students', views.EstudiantesAPI.as_view(), name='students'),
    path('students/<str:pk>', views.EstudianteDetalleAPI.as_view(), name='student_detail'),

    # Matrículas
    path('course-registrations', views.MatriculasAPI.as_view(), name='course_registrations'),
    path('course-registrations/<str:pk>', views.MatriculaDetalleAPI.as_view(), name='course_registration_detail'),
    path(
        'course-registrations/<str:pk>/songs',
        views.MatriculaCancionesAPI.as_view(),
        name='course_registration_songs',
    ),
    path(
        'course-registrations/<str:pk>/songs/<str:song_pk>',
        views.MatriculaCancionDetalleAPI.as_view(),
        name='course_registration_song_detail',
    ),

    # Portal del encargado
    path('guardian/students', portal.EstudiantesEncargadoAPI.as_view(), name='guardian_students'),
    path(
        'guardian/students/<str:pk>/courses',
        portal.CursosEstudianteEncargadoAPI.as_view(),
        name='guardian_student_courses',
    ),
    path(
        'guardian/students/<str:pk>/courses/<str:registration_pk>/progress',
        portal.ProgresoCursoEncargadoAPI.as_view(),
        name='guardian_course_progress',
    ),
]
