# apps/academico/portal.py

"""Portal del encargado: sus estudiantes y el progreso de cada uno"""

from django.db.models import Count, Q
from django.http import JsonResponse
from django.utils import timezone

from apps.aula.models import Asistencia, EvaluacionCancion, TareaCompletada, TareaGrupal
from apps.core.api import APIView, ErrorAPI, falla_bd, uuid_o_none
from apps.core.models import Usuario
from apps.core.permissions import CompasPermissions

from .models import EncargadoEstudiante, Estudiante, FechaPeriodo, Matricula
from .serializers import resumen_materia, resumen_periodo, serializar_cancion


class PortalAPIView(APIView):
    roles = ('guardian', 'director', 'super_admin')

    def estudiante_visible(self, pk):
        estudiante = Estudiante.objects.vigentes().filter(id=uuid_o_none(pk)).first()
        if estudiante is None:
            if self.perfil.role == 'guardian':
                raise ErrorAPI('Forbidden', 403)
            raise ErrorAPI('Student not found', 404)
        if not CompasPermissions.puede_ver_estudiante(self.perfil, estudiante):
            raise ErrorAPI('Forbidden', 403)
        return estudiante


class EstudiantesEncargadoAPI(PortalAPIView):
    """
    GET /api/guardian/students

    El encargado ve sus propios estudiantes; director y super admin
    indican ?guardian_id=.
    """

    def get(self, request):
        if self.perfil.role == 'guardian':
            encargado = self.perfil
        else:
            guardian_id = request.GET.get('guardian_id')
            if not guardian_id:
                raise ErrorAPI('guardian_id is required for director/super_admin', 400)
            encargado = Usuario.objects.vigentes().del_rol('guardian').filter(id=uuid_o_none(guardian_id)).first()
            if encargado is None:
                raise ErrorAPI('Guardian not found', 404)
            self.verificar_academia(encargado.academy_id)

        with falla_bd('Failed to fetch students'):
            vinculos = list(
                EncargadoEstudiante.objects.filter(guardian=encargado, student__deleted_at__isnull=True)
                .select_related('student')
                .order_by('created_at')
            )

        return JsonResponse({'students': [
            {
                'id': v.student.id,
                'first_name': v.student.first_name,
                'last_name': v.student.last_name,
                'enrollment_status': v.student.enrollment_status,
                'date_of_birth': v.student.date_of_birth,
                'relationship': v.relationship or None,
                'assignment_id': v.id,
            }
            for v in vinculos
        ]})


class CursosEstudianteEncargadoAPI(PortalAPIView):
    """
    GET /api/guardian/students/<id>/courses

    Matrículas del estudiante separadas en actuales (periodo del año en
    curso) e históricas, con repertorio, resumen de asistencia e insignias.
    """

    def get(self, request, pk):
        estudiante = self.estudiante_visible(pk)

        with falla_bd('Error al cargar cursos'):
            matriculas = list(
                Matricula.objects.vigentes()
                .filter(student=estudiante)
                .select_related('subject', 'period', 'profile')
                .order_by('-created_at')
            )
            cursos = [self._serializar(m) for m in matriculas]

        actuales = [c for c in cursos if c['isCurrent']]
        historicos = [c for c in cursos if not c['isCurrent']]
        return JsonResponse({
            'currentCourses': actuales,
            'historicalCourses': historicos,
            'allCourses': cursos,
        })

    def _serializar(self, matricula):
        periodo = matricula.period
        profesor = matricula.profile
        return {
            'id': matricula.id,
            'student_id': matricula.student_id,
            'subject_id': matricula.subject_id,
            'period_id': matricula.period_id,
            'academy_id': matricula.academy_id,
            'status': matricula.status,
            'enrollment_date': matricula.enrollment_date,
            'subject': resumen_materia(matricula.subject),
            'period': resumen_periodo(periodo),
            'profile': {
                'id': profesor.id,
                'first_name': profesor.first_name,
                'last_name': profesor.last_name,
            } if profesor else None,
            'isCurrent': periodo.year == timezone.localdate().year,
            'songs': [
                serializar_cancion(a.song)
                for a in matricula.canciones_asignadas.select_related('song').filter(song__deleted_at__isnull=True)
            ],
            'attendance': self._resumen_asistencia(matricula),
            'badges': [
                {'id': a.badge.id, 'name': a.badge.name, 'virtud': a.badge.virtud or None, 'assigned_at': a.created_at}
                for a in matricula.insignias.select_related('badge').filter(badge__deleted_at__isnull=True)
            ],
        }

    def _resumen_asistencia(self, matricula):
        conteos = Asistencia.objects.filter(course_registration=matricula).aggregate(
            total=Count('id'),
            **{
                estado: Count('id', filter=Q(attendance_status=estado))
                for estado, _ in Asistencia.STATUS_CHOICES
            },
        )
        return conteos


class ProgresoCursoEncargadoAPI(PortalAPIView):
    """
    GET /api/guardian/students/<id>/courses/<registration_id>/progress

    Historial de una matrícula: evaluaciones, comentarios, tareas
    (individuales y grupales, con su marca de completada) e insignias.
    Todo ordenado de la sesión más reciente a la más antigua.
    """

    def get(self, request, pk, registration_pk):
        estudiante = self.estudiante_visible(pk)
        matricula = (
            Matricula.objects.vigentes()
            .select_related('subject', 'period')
            .filter(id=uuid_o_none(registration_pk), student=estudiante)
            .first()
        )
        if matricula is None:
            raise ErrorAPI('Matrícula no encontrada', 404)

        with falla_bd('Error al cargar progreso'):
            return JsonResponse({
                'registration': {
                    'id': matricula.id,
                    'subject': resumen_materia(matricula.subject),
                    'period': resumen_periodo(matricula.period),
                    'status': matricula.status,
                },
                'evaluations': self._evaluaciones(matricula),
                'comments': [
                    {'id': c.id, 'date': c.period_date.date, 'comment': c.comment}
                    for c in matricula.comentarios.select_related('period_date').order_by('-period_date__date')
                ],
                'assignments': self._tareas(matricula, estudiante),
                'groupAssignments': self._tareas_grupales(matricula, estudiante),
                'badges': [
                    {
                        'id': a.id,
                        'badgeId': a.badge_id,
                        'name': a.badge.name,
                        'virtud': a.badge.virtud or None,
                        'description': a.badge.description or None,
                        'frase': a.badge.frase or None,
                        'imageUrl': a.badge.image_url or None,
                        'assigned_at': a.created_at,
                    }
                    for a in matricula.insignias.select_related('badge').filter(badge__deleted_at__isnull=True)
                ],
            })

    def _evaluaciones(self, matricula):
        evaluaciones = (
            EvaluacionCancion.objects.filter(course_registration=matricula)
            .select_related('period_date', 'song', 'rubric', 'scale')
            .order_by('-period_date__date', 'rubric__display_order')
        )
        return [
            {
                'id': e.id,
                'date': e.period_date.date,
                'songName': e.song.name,
                'rubricName': e.rubric.name,
                'scaleName': e.scale.name if e.scale else 'Sin calificar',
                'scaleValue': e.scale.numeric_value if e.scale else None,
            }
            for e in evaluaciones
        ]

    def _tareas(self, matricula, estudiante):
        completadas = set(
            TareaCompletada.objects.filter(student=estudiante, session_assignment__isnull=False)
            .values_list('session_assignment_id', flat=True)
        )
        return [
            {
                'id': t.id,
                'date': t.period_date.date,
                'assignmentText': t.assignment_text,
                'isCompleted': t.id in completadas,
            }
            for t in matricula.tareas.select_related('period_date').order_by('-period_date__date')
        ]

    def _tareas_grupales(self, matricula, estudiante):
        sesiones = FechaPeriodo.objects.vigentes().filter(
            period_id=matricula.period_id, subject_id=matricula.subject_id, date_type='clase',
        ).filter(Q(profile_id=matricula.profile_id) | Q(profile__isnull=True))
        tareas = (
            TareaGrupal.objects.filter(period_date__in=sesiones)
            .select_related('period_date')
            .order_by('-period_date__date')
        )
        completadas = set(
            TareaCompletada.objects.filter(student=estudiante, session_group_assignment__isnull=False)
            .values_list('session_group_assignment_id', flat=True)
        )
        return [
            {
                'id': t.id,
                'date': t.period_date.date,
                'assignmentText': t.assignment_text,
                'isGroup': True,
                'isCompleted': t.id in completadas,
            }
            for t in tareas
        ]
