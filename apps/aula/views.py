# apps/aula/views.py

"""
Seguimiento del aula: insignias, asistencias, comentarios, evaluaciones
y tareas por sesión

El profesor solo actúa sobre las matrículas de sus propios cursos.
"""

import logging

from django.db import IntegrityError, transaction
from django.http import JsonResponse

from apps.academico.models import Cancion, Curso, Estudiante, FechaPeriodo, Matricula
from apps.core.api import ROLES_AULA, ROLES_GESTION, APIView, ErrorAPI, falla_bd, texto, uuid_o_none
from apps.core.permissions import CompasPermissions

from .models import (
    Asistencia, ComentarioSesion, EscalaEvaluacion, EvaluacionCancion, Insignia, InsigniaEstudiante,
    RubricaEvaluacion, TareaCompletada, TareaGrupal, TareaSesion,
)

logger = logging.getLogger(__name__)


def serializar_insignia(insignia):
    return {
        'id': insignia.id,
        'name': insignia.name,
        'virtud': insignia.virtud or None,
        'description': insignia.description or None,
        'frase': insignia.frase or None,
        'image_url': insignia.image_url or None,
    }


class AulaAPIView(APIView):
    """Base de las vistas del aula"""

    roles = ROLES_AULA

    def matricula_gestionable(self, course_registration_id):
        matricula = Matricula.objects.vigentes().filter(id=uuid_o_none(course_registration_id)).first()
        if matricula is None:
            raise ErrorAPI('Course registration not found', 404)
        if not CompasPermissions.puede_gestionar_matricula(self.perfil, matricula):
            raise ErrorAPI('Forbidden', 403)
        return matricula

    def sesion(self, period_date_id):
        fecha = FechaPeriodo.objects.vigentes().select_related('period').filter(
            id=uuid_o_none(period_date_id)
        ).first()
        if fecha is None:
            raise ErrorAPI('Period date not found', 404)
        self.verificar_academia(fecha.period.academy_id)
        return fecha

    def por_sesion(self, modelo, fecha):
        """Registros de la sesión visibles para el perfil"""
        registros = modelo.objects.filter(period_date=fecha)
        if self.perfil.role == 'professor':
            registros = registros.filter(course_registration__profile=self.perfil)
        return registros

    def parametros_obligatorios(self, fuente, *nombres):
        valores = [fuente.get(n) for n in nombres]
        if not all(valores):
            if len(nombres) == 1:
                raise ErrorAPI(f'{nombres[0]} is required', 400)
            raise ErrorAPI(f"{', '.join(nombres[:-1])} and {nombres[-1]} are required", 400)
        return valores


# === INSIGNIAS ===

class InsigniasAPI(AulaAPIView):
    roles_por_metodo = {'POST': ROLES_GESTION}

    def get(self, request):
        academy_id = uuid_o_none(request.GET.get('academy_id')) or self.perfil.academy_id
        if academy_id is None:
            raise ErrorAPI('academy_id is required', 400)
        self.verificar_academia(academy_id)

        with falla_bd('Error al cargar badges'):
            insignias = list(Insignia.objects.vigentes().filter(academy_id=academy_id).order_by('name'))
        return JsonResponse({'badges': [serializar_insignia(i) for i in insignias]})

    def post(self, request):
        name = texto(self.datos.get('name'))
        if not name:
            raise ErrorAPI('Name is required', 400)

        academia = self.academia_destino(self.datos)
        with falla_bd('Error al crear badge'):
            insignia = Insignia.objects.create(
                academy=academia,
                name=name[:100],
                virtud=texto(self.datos.get('virtud'))[:100],
                description=texto(self.datos.get('description')),
                frase=texto(self.datos.get('frase'))[:300],
                image_url=texto(self.datos.get('image_url')),
            )
        return JsonResponse({'badge': serializar_insignia(insignia)}, status=201)


class InsigniasEstudianteAPI(AulaAPIView):
    roles_por_metodo = {'GET': ROLES_AULA + ('guardian', 'student')}

    def get(self, request):
        course_registration_id = request.GET.get('course_registration_id')
        if not course_registration_id:
            raise ErrorAPI('course_registration_id is required', 400)

        matricula = Matricula.objects.vigentes().select_related('student').filter(
            id=uuid_o_none(course_registration_id)
        ).first()
        if matricula is None:
            raise ErrorAPI('Course registration not found', 404)
        if not self._puede_ver(matricula):
            raise ErrorAPI('Forbidden', 403)

        with falla_bd('Error al cargar badges'):
            asignadas = list(
                matricula.insignias.select_related('badge').filter(badge__deleted_at__isnull=True)
            )
        return JsonResponse({'badges': [
            {
                **serializar_insignia(a.badge),
                'id': a.id,
                'badge_id': a.badge_id,
                'notes': a.notes or None,
                'assigned_at': a.created_at,
            }
            for a in asignadas
        ]})

    def post(self, request):
        course_registration_id, badge_id = self.parametros_obligatorios(
            self.datos, 'course_registration_id', 'badge_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)

        insignia = Insignia.objects.vigentes().filter(
            id=uuid_o_none(badge_id), academy_id=matricula.academy_id
        ).first()
        if insignia is None:
            raise ErrorAPI('Badge not found', 404)

        try:
            with transaction.atomic():
                InsigniaEstudiante.objects.create(
                    course_registration=matricula,
                    badge=insignia,
                    assigned_by=self.perfil,
                    notes=texto(self.datos.get('notes')),
                )
        except IntegrityError:
            raise ErrorAPI('El badge ya está asignado a este estudiante', 409)

        logger.info("Insignia %s otorgada a %s", insignia.name, matricula.student_id)
        return JsonResponse({'success': True})

    def delete(self, request):
        course_registration_id, badge_id = self.parametros_obligatorios(
            request.GET, 'course_registration_id', 'badge_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        with falla_bd('Error al quitar badge'):
            matricula.insignias.filter(badge_id=uuid_o_none(badge_id)).delete()
        return JsonResponse({'success': True})

    def _puede_ver(self, matricula):
        if self.perfil.role == 'guardian':
            return CompasPermissions.puede_ver_estudiante(self.perfil, matricula.student)
        if self.perfil.role == 'student':
            return matricula.student.user_id == self.perfil.id
        return self.perfil.puede_acceder_academia(matricula.academy_id)


# === ASISTENCIAS ===

class AsistenciasAPI(AulaAPIView):

    def get(self, request):
        if not request.GET.get('period_date_id'):
            raise ErrorAPI('period_date_id is required', 400)
        fecha = self.sesion(request.GET['period_date_id'])

        with falla_bd('Error al cargar asistencias'):
            asistencias = {
                str(a.course_registration_id): {
                    'attendance_status': a.attendance_status,
                    'notes': a.notes or None,
                }
                for a in self.por_sesion(Asistencia, fecha)
            }
        return JsonResponse({'attendances': asistencias})

    def put(self, request):
        course_registration_id, period_date_id, status = self.parametros_obligatorios(
            self.datos, 'course_registration_id', 'period_date_id', 'attendance_status'
        )
        validos = [s for s, _ in Asistencia.STATUS_CHOICES]
        if status not in validos:
            raise ErrorAPI(f"attendance_status must be one of: {', '.join(validos)}", 400)

        notes = self.datos.get('notes')
        if isinstance(notes, str) and len(notes) > 500:
            raise ErrorAPI('notes must be at most 500 characters', 400)

        matricula = self.matricula_gestionable(course_registration_id)
        fecha = self.sesion(period_date_id)

        with falla_bd('Error al registrar asistencia'):
            asistencia, _ = Asistencia.objects.update_or_create(
                course_registration=matricula,
                period_date=fecha,
                defaults={'attendance_status': status, 'notes': texto(notes)},
            )
        return JsonResponse({'attendance': {
            'id': asistencia.id,
            'course_registration_id': asistencia.course_registration_id,
            'period_date_id': asistencia.period_date_id,
            'attendance_status': asistencia.attendance_status,
            'notes': asistencia.notes or None,
            'updated_at': asistencia.updated_at,
        }})

    def delete(self, request):
        course_registration_id, period_date_id = self.parametros_obligatorios(
            request.GET, 'course_registration_id', 'period_date_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        with falla_bd('Error al eliminar asistencia'):
            Asistencia.objects.filter(
                course_registration=matricula, period_date_id=uuid_o_none(period_date_id)
            ).delete()
        return JsonResponse({'success': True})


# === COMENTARIOS ===

class ComentariosSesionAPI(AulaAPIView):

    def get(self, request):
        if not request.GET.get('period_date_id'):
            raise ErrorAPI('period_date_id is required', 400)
        fecha = self.sesion(request.GET['period_date_id'])

        with falla_bd('Error al cargar comentarios'):
            comentarios = {
                str(c.course_registration_id): c.comment
                for c in self.por_sesion(ComentarioSesion, fecha)
            }
        return JsonResponse({'comments': comentarios})

    def put(self, request):
        course_registration_id, period_date_id = self.parametros_obligatorios(
            self.datos, 'course_registration_id', 'period_date_id'
        )
        comment = self.datos.get('comment')
        if not isinstance(comment, str):
            raise ErrorAPI('comment is required', 400)
        if len(comment) > ComentarioSesion.MAX_LENGTH:
            raise ErrorAPI(f'comment must be at most {ComentarioSesion.MAX_LENGTH} characters', 400)

        matricula = self.matricula_gestionable(course_registration_id)
        fecha = self.sesion(period_date_id)

        with falla_bd('Error al guardar comentario'):
            comentario, _ = ComentarioSesion.objects.update_or_create(
                course_registration=matricula,
                period_date=fecha,
                defaults={'comment': comment, 'author': self.perfil},
            )
        return JsonResponse({'comment': {
            'id': comentario.id,
            'course_registration_id': comentario.course_registration_id,
            'period_date_id': comentario.period_date_id,
            'comment': comentario.comment,
            'updated_at': comentario.updated_at,
        }})

    def delete(self, request):
        course_registration_id, period_date_id = self.parametros_obligatorios(
            request.GET, 'course_registration_id', 'period_date_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        with falla_bd('Error al eliminar comentario'):
            ComentarioSesion.objects.filter(
                course_registration=matricula, period_date_id=uuid_o_none(period_date_id)
            ).delete()
        return JsonResponse({'success': True})


# === EVALUACIONES ===

class DatosEvaluacionAPI(AulaAPIView):
    """Rúbricas y escala con que se califican las canciones"""

    def get(self, request):
        academy_id = uuid_o_none(request.GET.get('academy_id'))
        if academy_id is None:
            raise ErrorAPI('academy_id is required', 400)
        self.verificar_academia(academy_id)

        rubricas = RubricaEvaluacion.objects.vigentes().filter(academy_id=academy_id)
        subject_id = uuid_o_none(request.GET.get('subject_id'))
        if subject_id and rubricas.filter(materias__subject_id=subject_id).exists():
            rubricas = rubricas.filter(materias__subject_id=subject_id)

        with falla_bd('Error al cargar datos de evaluación'):
            return JsonResponse({
                'rubrics': [
                    {'id': r.id, 'name': r.name, 'display_order': r.display_order}
                    for r in rubricas.order_by('display_order', 'name')
                ],
                'scales': [
                    {'id': e.id, 'name': e.name, 'numeric_value': e.numeric_value, 'display_order': e.display_order}
                    for e in EscalaEvaluacion.objects.vigentes().filter(academy_id=academy_id)
                ],
            })


class EvaluacionesCancionAPI(AulaAPIView):
    """
    Calificaciones por canción, sesión y rúbrica

    El GET devuelve un mapa "matricula:cancion:rubrica" -> escala, solo con
    las canciones ya calificadas.
    """

    def get(self, request):
        if not request.GET.get('period_date_id'):
            raise ErrorAPI('period_date_id is required', 400)
        fecha = self.sesion(request.GET['period_date_id'])

        evaluaciones = self.por_sesion(EvaluacionCancion, fecha).filter(scale__isnull=False)
        if request.GET.get('course_registration_id'):
            evaluaciones = evaluaciones.filter(
                course_registration_id=uuid_o_none(request.GET['course_registration_id'])
            )

        with falla_bd('Error al cargar evaluaciones'):
            mapa = {
                f'{e.course_registration_id}:{e.song_id}:{e.rubric_id}': str(e.scale_id)
                for e in evaluaciones
            }
        return JsonResponse({'evaluations': mapa})

    def put(self, request):
        course_registration_id, song_id, period_date_id, rubric_id = self.parametros_obligatorios(
            self.datos, 'course_registration_id', 'song_id', 'period_date_id', 'rubric_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        fecha = self.sesion(period_date_id)

        cancion = Cancion.objects.vigentes().filter(
            id=uuid_o_none(song_id), academy_id=matricula.academy_id
        ).first()
        if cancion is None:
            raise ErrorAPI('Song not found', 404)
        rubrica = RubricaEvaluacion.objects.vigentes().filter(
            id=uuid_o_none(rubric_id), academy_id=matricula.academy_id
        ).first()
        if rubrica is None:
            raise ErrorAPI('Rubric not found', 404)

        escala = None
        if self.datos.get('scale_id'):
            escala = EscalaEvaluacion.objects.vigentes().filter(
                id=uuid_o_none(self.datos['scale_id']), academy_id=matricula.academy_id
            ).first()
            if escala is None:
                raise ErrorAPI('Scale not found', 404)

        with falla_bd('Error al guardar evaluación'):
            EvaluacionCancion.objects.update_or_create(
                course_registration=matricula,
                song=cancion,
                period_date=fecha,
                rubric=rubrica,
                defaults={'scale': escala},
            )
        return JsonResponse({'success': True})

    def delete(self, request):
        course_registration_id, song_id, period_date_id, rubric_id = self.parametros_obligatorios(
            request.GET, 'course_registration_id', 'song_id', 'period_date_id', 'rubric_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        with falla_bd('Error al eliminar evaluación'):
            EvaluacionCancion.objects.filter(
                course_registration=matricula,
                song_id=uuid_o_none(song_id),
                period_date_id=uuid_o_none(period_date_id),
                rubric_id=uuid_o_none(rubric_id),
            ).delete()
        return JsonResponse({'success': True})


# === TAREAS ===

def _texto_tarea(valor, maximo):
    if not isinstance(valor, str):
        raise ErrorAPI('assignment_text is required', 400)
    if len(valor) > maximo:
        raise ErrorAPI(f'assignment_text must be at most {maximo} characters', 400)
    return valor


class TareasSesionAPI(AulaAPIView):

    def get(self, request):
        if not request.GET.get('period_date_id'):
            raise ErrorAPI('period_date_id is required', 400)
        fecha = self.sesion(request.GET['period_date_id'])

        with falla_bd('Error al cargar tareas'):
            tareas = {
                str(t.course_registration_id): t.assignment_text
                for t in self.por_sesion(TareaSesion, fecha)
            }
        return JsonResponse({'assignments': tareas})

    def put(self, request):
        course_registration_id, period_date_id = self.parametros_obligatorios(
            self.datos, 'course_registration_id', 'period_date_id'
        )
        assignment_text = _texto_tarea(self.datos.get('assignment_text'), TareaSesion.MAX_LENGTH)

        matricula = self.matricula_gestionable(course_registration_id)
        fecha = self.sesion(period_date_id)

        with falla_bd('Error al guardar tarea'):
            tarea, _ = TareaSesion.objects.update_or_create(
                course_registration=matricula,
                period_date=fecha,
                defaults={'assignment_text': assignment_text},
            )
        return JsonResponse({'assignment': {
            'id': tarea.id,
            'course_registration_id': tarea.course_registration_id,
            'period_date_id': tarea.period_date_id,
            'assignment_text': tarea.assignment_text,
            'updated_at': tarea.updated_at,
        }})

    def delete(self, request):
        course_registration_id, period_date_id = self.parametros_obligatorios(
            request.GET, 'course_registration_id', 'period_date_id'
        )
        matricula = self.matricula_gestionable(course_registration_id)
        with falla_bd('Error al eliminar tarea'):
            TareaSesion.objects.filter(
                course_registration=matricula, period_date_id=uuid_o_none(period_date_id)
            ).delete()
        return JsonResponse({'success': True})


def serializar_tarea_grupal(tarea):
    if tarea is None:
        return None
    return {
        'id': tarea.id,
        'period_date_id': tarea.period_date_id,
        'assignment_text': tarea.assignment_text,
        'updated_at': tarea.updated_at,
    }


class TareaGrupalAPI(AulaAPIView):
    """
    Tarea grupal de una sesión de clase

    La leen también el estudiante y el encargado cuando hay matrícula en
    el curso; la escriben el profesor del curso y la dirección.
    """

    roles_por_metodo = {'GET': ROLES_AULA + ('guardian', 'student')}

    def get(self, request):
        if not request.GET.get('period_date_id'):
            raise ErrorAPI('period_date_id is required', 400)
        fecha = self._sesion_del_curso(request.GET['period_date_id'])
        if not self._puede_ver(fecha):
            raise ErrorAPI('Forbidden', 403)

        tarea = TareaGrupal.objects.filter(period_date=fecha).first()
        return JsonResponse({'groupAssignment': serializar_tarea_grupal(tarea)})

    def put(self, request):
        (period_date_id,) = self.parametros_obligatorios(self.datos, 'period_date_id')
        fecha = self._sesion_del_curso(period_date_id)
        if not self._puede_editar(fecha):
            raise ErrorAPI('Forbidden', 403)

        assignment_text = self.datos.get('assignment_text')
        if not isinstance(assignment_text, str) or not assignment_text.strip():
            with falla_bd('Error al eliminar tarea grupal'):
                TareaGrupal.objects.filter(period_date=fecha).delete()
            return JsonResponse({'groupAssignment': None, 'deleted': True})

        assignment_text = _texto_tarea(assignment_text, TareaGrupal.MAX_LENGTH)
        with falla_bd('Error al guardar tarea grupal'):
            tarea, _ = TareaGrupal.objects.update_or_create(
                period_date=fecha, defaults={'assignment_text': assignment_text}
            )
        return JsonResponse({'groupAssignment': serializar_tarea_grupal(tarea)})

    def delete(self, request):
        (period_date_id,) = self.parametros_obligatorios(request.GET, 'period_date_id')
        fecha = self._sesion_del_curso(period_date_id)
        if not self._puede_editar(fecha):
            raise ErrorAPI('Forbidden', 403)
        with falla_bd('Error al eliminar tarea grupal'):
            TareaGrupal.objects.filter(period_date=fecha).delete()
        return JsonResponse({'success': True})

    def _sesion_del_curso(self, period_date_id):
        fecha = FechaPeriodo.objects.vigentes().select_related('period').filter(
            id=uuid_o_none(period_date_id)
        ).first()
        if fecha is None:
            raise ErrorAPI('Period date not found', 404)
        if fecha.date_type != 'clase' or fecha.subject_id is None:
            raise ErrorAPI('Forbidden', 403)
        return fecha

    def _matriculas_del_curso(self, fecha):
        return Matricula.objects.vigentes().filter(period_id=fecha.period_id, subject_id=fecha.subject_id)

    def _puede_editar(self, fecha):
        if self.perfil.role == 'professor':
            return Curso.objects.filter(
                period_id=fecha.period_id, subject_id=fecha.subject_id, profile=self.perfil
            ).exists()
        return self.perfil.puede_acceder_academia(fecha.period.academy_id)

    def _puede_ver(self, fecha):
        if self.perfil.role == 'student':
            return self._matriculas_del_curso(fecha).filter(student__user=self.perfil).exists()
        if self.perfil.role == 'guardian':
            return self._matriculas_del_curso(fecha).filter(
                student__guardian_links__guardian=self.perfil
            ).exists()
        return self._puede_editar(fecha)


# === TAREAS COMPLETADAS ===

def serializar_tarea_completada(completada):
    return {
        'id': completada.id,
        'session_assignment_id': completada.session_assignment_id,
        'session_group_assignment_id': completada.session_group_assignment_id,
        'student_id': completada.student_id,
        'completed_by': completada.completed_by_id,
        'completed_at': completada.completed_at,
    }


class TareasCompletadasAPI(AulaAPIView):
    """
    Marcas de tareas completadas por estudiante

    El encargado marca las tareas de sus estudiantes; profesor y dirección
    las consultan y corrigen.
    """

    roles = ('guardian', 'director', 'professor', 'super_admin')

    def get(self, request):
        estudiante = self._estudiante(request.GET.get('student_id'))
        with falla_bd('Error al cargar tareas completadas'):
            completadas = [
                serializar_tarea_completada(c)
                for c in TareaCompletada.objects.filter(student=estudiante).order_by('-completed_at')
            ]
        return JsonResponse({'completions': completadas})

    def post(self, request):
        estudiante = self._estudiante(self.datos.get('student_id'))
        assignment_id = self.datos.get('session_assignment_id')
        group_assignment_id = self.datos.get('session_group_assignment_id')
        if bool(assignment_id) == bool(group_assignment_id):
            raise ErrorAPI(
                'Exactly one of session_assignment_id or session_group_assignment_id must be provided', 400
            )

        if assignment_id:
            tarea = TareaSesion.objects.select_related('course_registration').filter(
                id=uuid_o_none(assignment_id)
            ).first()
            if tarea is None:
                raise ErrorAPI('Assignment not found', 404)
            if tarea.course_registration.student_id != estudiante.id:
                raise ErrorAPI('Assignment does not belong to this student', 400)
            campos = {'session_assignment': tarea}
        else:
            tarea = TareaGrupal.objects.select_related('period_date').filter(
                id=uuid_o_none(group_assignment_id)
            ).first()
            if tarea is None:
                raise ErrorAPI('Group assignment not found', 404)
            inscrito = estudiante.matriculas.vigentes().filter(
                period_id=tarea.period_date.period_id, subject_id=tarea.period_date.subject_id
            ).exists()
            if not inscrito:
                raise ErrorAPI('Student is not enrolled in this course', 400)
            campos = {'session_group_assignment': tarea}

        try:
            with transaction.atomic():
                completada = TareaCompletada.objects.create(
                    student=estudiante, completed_by=self.perfil, **campos
                )
        except IntegrityError:
            raise ErrorAPI('Task already marked as completed', 409)

        logger.info("Tarea completada por %s (%s)", estudiante, self.perfil.email)
        return JsonResponse({'completion': serializar_tarea_completada(completada)}, status=201)

    def delete(self, request):
        completion_id = request.GET.get('id')
        student_id = request.GET.get('student_id')
        assignment_id = request.GET.get('session_assignment_id')
        group_assignment_id = request.GET.get('session_group_assignment_id')

        if completion_id:
            filtro = {'id': uuid_o_none(completion_id)}
        elif student_id and (assignment_id or group_assignment_id):
            filtro = {'student_id': uuid_o_none(student_id)}
            if assignment_id:
                filtro['session_assignment_id'] = uuid_o_none(assignment_id)
            else:
                filtro['session_group_assignment_id'] = uuid_o_none(group_assignment_id)
        else:
            raise ErrorAPI(
                'Either id or (session_assignment_id/session_group_assignment_id + student_id) is required', 400
            )

        completada = TareaCompletada.objects.select_related('student').filter(**filtro).first()
        if completada is None:
            raise ErrorAPI('Task completion not found', 404)
        if not self._puede_ver(completada.student):
            raise ErrorAPI('Forbidden', 403)

        with falla_bd('Error al eliminar tarea completada'):
            completada.delete()
        return JsonResponse({'success': True})

    def _estudiante(self, student_id):
        if not student_id:
            raise ErrorAPI('student_id is required', 400)
        estudiante = Estudiante.objects.vigentes().filter(id=uuid_o_none(student_id)).first()
        if estudiante is None:
            raise ErrorAPI('Student not found', 404)
        if not self._puede_ver(estudiante):
            raise ErrorAPI('Forbidden', 403)
        return estudiante

    def _puede_ver(self, estudiante):
        if self.perfil.role == 'professor':
            return estudiante.matriculas.vigentes().filter(profile=self.perfil).exists()
        return CompasPermissions.puede_ver_estudiante(self.perfil, estudiante)
