# apps/academico/serializers.py

"""Conversión de los modelos académicos a dicts JSON"""

from apps.core.serializers import resumen_perfil


def serializar_materia(materia):
    return {
        'id': materia.id,
        'academy_id': materia.academy_id,
        'name': materia.name,
        'description': materia.description,
        'created_at': materia.created_at,
        'updated_at': materia.updated_at,
    }


def resumen_materia(materia):
    if materia is None:
        return None
    return {'id': materia.id, 'name': materia.name}


def serializar_periodo(periodo, con_fechas=False):
    datos = {
        'id': periodo.id,
        'academy_id': periodo.academy_id,
        'year': periodo.year,
        'period': periodo.period,
        'created_at': periodo.created_at,
        'updated_at': periodo.updated_at,
    }
    if con_fechas:
        datos['dates'] = [
            serializar_fecha(f)
            for f in periodo.fechas.vigentes().select_related('subject', 'profile').order_by('date')
        ]
    return datos


def resumen_periodo(periodo):
    if periodo is None:
        return None
    return {'id': periodo.id, 'year': periodo.year, 'period': periodo.period}


def serializar_fecha(fecha):
    return {
        'id': fecha.id,
        'period_id': fecha.period_id,
        'date_type': fecha.date_type,
        'date': fecha.date,
        'subject_id': fecha.subject_id,
        'profile_id': fecha.profile_id,
        'schedule_id': fecha.schedule_id,
        'comment': fecha.comment or None,
        'subject': resumen_materia(fecha.subject),
        'profile': resumen_perfil(fecha.profile),
    }


def serializar_horario(horario, con_perfil=True):
    datos = {
        'id': horario.id,
        'academy_id': horario.academy_id,
        'subject_id': horario.subject_id,
        'period_id': horario.period_id,
        'name': horario.name,
        'profile_id': horario.profile_id,
        'day_of_week': horario.day_of_week,
        'start_time': horario.start_time.strftime('%H:%M'),
        'end_time': horario.end_time.strftime('%H:%M'),
        'created_at': horario.created_at,
    }
    if con_perfil:
        datos['profile'] = resumen_perfil(horario.profile)
    return datos


def serializar_curso(curso, contadores=False):
    datos = {
        'id': curso.id,
        'profile_id': curso.profile_id,
        'subject_id': curso.subject_id,
        'period_id': curso.period_id,
        'period': resumen_periodo(curso.period),
        'subject': resumen_materia(curso.subject),
        'profile': resumen_perfil(curso.profile),
        'mensualidad': float(curso.mensualidad) if curso.mensualidad is not None else None,
    }
    if contadores:
        datos['sessions_count'] = curso.fechas_clase().count()
        datos['turnos_count'] = curso.horarios().count()
    return datos


def serializar_estudiante(estudiante, con_encargado=False):
    datos = {
        'id': estudiante.id,
        'academy_id': estudiante.academy_id,
        'user_id': estudiante.user_id,
        'first_name': estudiante.first_name,
        'last_name': estudiante.last_name,
        'date_of_birth': estudiante.date_of_birth,
        'additional_info': estudiante.additional_info,
        'enrollment_status': estudiante.enrollment_status,
        'created_at': estudiante.created_at,
        'updated_at': estudiante.updated_at,
    }
    if con_encargado:
        datos['guardian'] = resumen_perfil(estudiante.encargado)
    return datos


def resumen_estudiante(estudiante):
    if estudiante is None:
        return None
    return {
        'id': estudiante.id,
        'first_name': estudiante.first_name,
        'last_name': estudiante.last_name,
        'enrollment_status': estudiante.enrollment_status,
    }


def serializar_vinculo(vinculo):
    return {
        'id': vinculo.id,
        'guardian_id': vinculo.guardian_id,
        'student_id': vinculo.student_id,
        'academy_id': vinculo.academy_id,
        'relationship': vinculo.relationship or None,
        'created_at': vinculo.created_at,
        'student': resumen_estudiante(vinculo.student),
    }


def serializar_cancion(cancion):
    return {
        'id': cancion.id,
        'academy_id': cancion.academy_id,
        'name': cancion.name,
        'author': cancion.author or None,
        'difficulty_level': cancion.difficulty_level,
        'created_at': cancion.created_at,
        'updated_at': cancion.updated_at,
    }


def serializar_matricula(matricula, con_canciones=False, songs_count=None):
    datos = {
        'id': matricula.id,
        'student_id': matricula.student_id,
        'subject_id': matricula.subject_id,
        'period_id': matricula.period_id,
        'profile_id': matricula.profile_id,
        'academy_id': matricula.academy_id,
        'status': matricula.status,
        'enrollment_date': matricula.enrollment_date,
        'notes': matricula.notes or None,
        'created_at': matricula.created_at,
        'updated_at': matricula.updated_at,
        'student': resumen_estudiante(matricula.student),
        'subject': resumen_materia(matricula.subject),
        'period': resumen_periodo(matricula.period),
        'profile': resumen_perfil(matricula.profile),
    }
    if songs_count is not None:
        datos['songs_count'] = songs_count
    if con_canciones:
        datos['songs'] = [
            serializar_cancion(a.song)
            for a in matricula.canciones_asignadas.select_related('song').filter(song__deleted_at__isnull=True)
        ]
    return datos
