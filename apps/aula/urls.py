# apps/aula/urls.py

from django.urls import path
from . import views

app_name = 'aula'

urlpatterns = [
    # Insignias
    path('badges', views.InsigniasAPI.as_view(), name='badges'),
    path('student-badges', views.InsigniasEstudianteAPI.as_view(), name='student_badges'),

    # Sesiones
    path('session-attendances', views.AsistenciasAPI.as_view(), name='session_attendances'),
    path('session-comments', views.ComentariosSesionAPI.as_view(), name='session_comments'),

    # Evaluaciones
    path('evaluation-data', views.DatosEvaluacionAPI.as_view(), name='evaluation_data'),
    path('song-evaluations', views.EvaluacionesCancionAPI.as_view(), name='song_evaluations'),

    # Tareas
    path('session-assignments', views.TareasSesionAPI.as_view(), name='session_assignments'),
    path('session-group-assignments', views.TareaGrupalAPI.as_view(), name='session_group_assignments'),
    path('task-completions', views.TareasCompletadasAPI.as_view(), name='task_completions'),
]
