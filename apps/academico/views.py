# apps/academico/views.py

"""
API del catálogo académico: materias, canciones, periodos y su calendario,
cursos, turnos, estudiantes y matrículas.
"""

import logging
from datetime import time, timedelta

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.http import JsonResponse
from django.utils import timezone

from apps.core.api import (
    ROLES_AULA, APIView, ErrorAPI, entero, falla_bd,
    fecha_iso_o_none, hora_o_none, lista_uuids, monto_o_none, texto, uuid_o_none,
)
from apps.core.models import Usuario
from apps.core.permissions import CompasPermissions

from .models import (
    Cancion, Curso, EncargadoEstudiante, Estudiante, FechaPeriodo, Horario,
    Materia, Matricula, MatriculaCancion, Periodo, ProfesorMateria,
)
from .serializers import (
    serializar_cancion, serializar_curso, serializar_estudiante,
    serializar_fecha, serializar_horario, serializar_materia,
    serializar_matricula, serializar_periodo,
)

logger = logging.getLogger(__name__)

PERIODOS = [p for p, _ in Periodo.PERIOD_CHOICES]
TIPOS_FECHA = [t for t, _ in FechaPeriodo.DATE_TYPE_CHOICES]

# Franja en la que se imparten clases
HORA_MINIMA = time(7, 0)
HORA_MAXIMA = time(22, 0)


def _profesor_de_la_academia(profile_id, academy_id):
    """Profesor vigente de la academia o ErrorAPI"""
    profesor = Usuario.objects.vigentes().del_rol('professor').filter(id=uuid_o_none(profile_id)).first()
    if profesor is None:
        raise ErrorAPI('Profesor no encontrado o inválido', 404)
    if profesor.academy_id != academy_id:
        raise ErrorAPI('El profesor no pertenece a esta academia', 403)
    return profesor


def _verificar_materia_asignada(profesor, materia):
    if not ProfesorMateria.objects.filter(profile=profesor, subject=materia).exists():
        raise ErrorAPI('Este profesor no tiene asignada la materia seleccionada', 400)


def _materia_de_la_academia(subject_id, academy_id):
    materia = Materia.objects.vigentes().filter(id=uuid_o_none(subject_id)).first()
    if materia is None:
        raise ErrorAPI('Materia (subject) no encontrada', 404)
    if materia.academy_id != academy_id:
        raise ErrorAPI('La materia no pertenece a esta academia', 403)
    return materia


def _verificar_clase(materia, profile_id, academy_id):
    """Una fecha 'clase' lleva materia y un profesor que la imparte"""
    if materia is None:
        raise ErrorAPI("subject_id is required when date_type is 'clase'", 400)
    if not profile_id:
        raise ErrorAPI("profile_id (profesor) is required when date_type is 'clase'", 400)
    profesor = _profesor_de_la_academia(profile_id, academy_id)
    _verificar_materia_asignada(profesor, materia)
    return profesor


# === MATERIAS ===

class MateriasAPI(APIView):

    def get(self, request):
        with falla_bd('Failed to fetch subjects'):
            materias = list(self.filtrar_academia(Materia.objects.vigentes()).order_by('name'))
        return JsonResponse({'subjects': [serializar_materia(m) for m in materias]})

    def post(self, request):
        name = texto(self.datos.get('name'))
        if not name:
            raise ErrorAPI('Name is required', 400)

        academia = self.academia_destino(self.datos)
        with falla_bd('Failed to create subject'):
            materia = Materia.objects.create(
                academy=academia,
                name=name,
                description=texto(self.datos.get('description')),
            )

        logger.info("Materia %s creada en %s", materia.name, academia.name)
        return JsonResponse(
            {'subject': serializar_materia(materia), 'message': 'Subject created successfully'},
            status=201,
        )


class MateriaDetalleAPI(APIView):
    roles_por_metodo = {'GET': None}

    def get(self, request, pk):
        materia = self.obtener(Materia.objects.vigentes(), pk, 'Subject not found')
        return JsonResponse({'subject': serializar_materia(materia)})

    def patch(self, request, pk):
        materia = self.obtener(Materia.objects.vigentes(), pk, 'Subject not found')

        if 'name' in self.datos:
            name = texto(self.datos['name'])
            if not name:
                raise ErrorAPI('Name cannot be empty', 400)
            materia.name = name
        if 'description' in self.datos:
            materia.description = texto(self.datos['description'])

        with falla_bd('Failed to update subject'):
            materia.save()
        return JsonResponse({'subject': serializar_materia(materia), 'message': 'Subject updated successfully'})

    def delete(self, request, pk):
        materia = self.obtener(Materia.objects.vigentes(), pk, 'Subject not found')
        with falla_bd('Failed to delete subject'):
            materia.eliminar()
        return JsonResponse({'message': 'Subject deleted successfully'})


# === CANCIONES ===

def _validar_cancion(datos, parcial=False):
    """Campos válidos de una canción (solo los enviados si es parcial)"""
    campos = {}

    if 'name' in datos or not parcial:
        name = texto(datos.get('name'))
        if not name:
            raise ErrorAPI('Name cannot be empty' if parcial else 'Name is required', 400)
        if len(name) > 200:
            raise ErrorAPI('Name must be 200 characters or less', 400)
        campos['name'] = name

    if 'author' in datos:
        author = texto(datos.get('author'))
        if len(author) > 200:
            raise ErrorAPI('Author must be 200 characters or less', 400)
        campos['author'] = author

    if 'difficulty_level' in datos:
        nivel = datos.get('difficulty_level')
        if nivel is not None and (not entero(nivel) or not 1 <= nivel <= 5):
            raise ErrorAPI('Difficulty level must be between 1 and 5', 400)
        campos['difficulty_level'] = nivel

    return campos


class CancionesAPI(APIView):
    roles_por_metodo = {'GET': None}

    def get(self, request):
        with falla_bd('Failed to fetch songs'):
            canciones = list(self.filtrar_academia(Cancion.objects.vigentes()).order_by('-created_at'))
        return JsonResponse({'songs': [serializar_cancion(c) for c in canciones]})

    def post(self, request):
        campos = _validar_cancion(self.datos)
        academia = self.academia_destino(self.datos)
        with falla_bd('Failed to create song'):
            cancion = Cancion.objects.create(academy=academia, **campos)
        return JsonResponse({'song': serializar_cancion(cancion)}, status=201)


class CancionDetalleAPI(APIView):
    roles_por_metodo = {'GET': None}

    def get(self, request, pk):
        cancion = self.obtener(Cancion.objects.vigentes(), pk, 'Song not found')
        return JsonResponse({'song': serializar_cancion(cancion)})

    def patch(self, request, pk):
        cancion = self.obtener(Cancion.objects.vigentes(), pk, 'Song not found')
        campos = _validar_cancion(self.datos, parcial=True)
        if not campos:
            raise ErrorAPI('No valid fields to update', 400)

        for campo, valor in campos.items():
            setattr(cancion, campo, valor)
        with falla_bd('Failed to update song'):
            cancion.save()
        return JsonResponse({'song': serializar_cancion(cancion)})

    def delete(self, request, pk):
        cancion = self.obtener(Cancion.objects.vigentes(), pk, 'Song not found')
        with falla_bd('Failed to delete song'):
            cancion.eliminar()
        return JsonResponse({'message': 'Song deleted successfully'})


# === PERIODOS Y CALENDARIO ===

def _validar_anio(year):
    if not entero(year) or not 2000 <= year <= 2100:
        raise ErrorAPI('Year must be between 2000 and 2100', 400)


def _validar_periodo(period):
    if period not in PERIODOS:
        raise ErrorAPI('Period must be I, II, III, IV, V, or VI', 400)


class PeriodosAPI(APIView):
    roles_por_metodo = {'GET': None}

    def get(self, request):
        with falla_bd('Failed to fetch periods'):
            periodos = list(self.filtrar_academia(Periodo.objects.vigentes()).order_by('-year', 'period'))
        return JsonResponse({'periods': [serializar_periodo(p) for p in periodos]})

    def post(self, request):
        year = self.datos.get('year')
        period = self.datos.get('period')
        _validar_anio(year)
        _validar_periodo(period)

        academia = self.academia_destino(
            self.datos, 'academy_id is required when your account is not linked to an academy'
        )

        with falla_bd('Failed to create period'):
            existente = Periodo.objects.filter(academy=academia, year=year, period=period).first()
            if existente is not None and not existente.eliminado:
                raise ErrorAPI('This period already exists', 400)

            if existente is not None:
                existente.restaurar()
                periodo = existente
            else:
                periodo = Periodo.objects.create(academy=academia, year=year, period=period)

        return JsonResponse({'period': serializar_periodo(periodo)}, status=201)


class PeriodoDetalleAPI(APIView):
    roles_por_metodo = {'GET': None}

    def get(self, request, pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')
        return JsonResponse({'period': serializar_periodo(periodo, con_fechas=True)})

    def patch(self, request, pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')

        if 'year' in self.datos:
            _validar_anio(self.datos['year'])
            periodo.year = self.datos['year']
        if 'period' in self.datos:
            _validar_periodo(self.datos['period'])
            periodo.period = self.datos['period']
        if 'year' not in self.datos and 'period' not in self.datos:
            raise ErrorAPI('No valid fields to update', 400)

        duplicado = Periodo.objects.filter(
            academy_id=periodo.academy_id, year=periodo.year, period=periodo.period
        ).exclude(id=periodo.id)
        if duplicado.exists():
            raise ErrorAPI('This period already exists', 400)

        with falla_bd('Failed to update period'):
            periodo.save()
        return JsonResponse({'period': serializar_periodo(periodo)})

    def delete(self, request, pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')
        with falla_bd('Failed to delete period'):
            periodo.eliminar()
        return JsonResponse({'message': 'Period deleted successfully'})


class FechasPeriodoAPI(APIView):
    """
    Calendario de un periodo

    Al registrar fechas 'clase' se crean los cursos (profesor, materia,
    periodo) que aún no existan.
    """

    roles_por_metodo = {'GET': None}

    def get(self, request, pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')
        with falla_bd('Failed to fetch dates'):
            fechas = list(
                periodo.fechas.vigentes().select_related('subject', 'profile').order_by('date')
            )
        return JsonResponse({'dates': [serializar_fecha(f) for f in fechas]})

    def post(self, request, pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')

        entradas = self.datos.get('dates')
        if not isinstance(entradas, list) or not entradas:
            raise ErrorAPI('dates must be a non-empty array', 400)

        nuevas = [self._preparar_fecha(periodo, entrada) for entrada in entradas]

        with transaction.atomic():
            with falla_bd('Failed to create dates'):
                FechaPeriodo.objects.bulk_create(nuevas)

            cursos = {(f.profile_id, f.subject_id) for f in nuevas if f.date_type == 'clase'}
            for profile_id, subject_id in cursos:
                Curso.objects.get_or_create(profile_id=profile_id, subject_id=subject_id, period=periodo)

        return JsonResponse({'dates': [serializar_fecha(f) for f in nuevas]}, status=201)

    def _preparar_fecha(self, periodo, entrada):
        """Valida una entrada y devuelve la FechaPeriodo sin guardar"""
        if not isinstance(entrada, dict):
            entrada = {}

        date_type = entrada.get('date_type')
        if date_type not in TIPOS_FECHA:
            raise ErrorAPI('Invalid date_type. Must be: inicio, cierre, feriado, recital, clase, or otro', 400)

        fecha = fecha_iso_o_none(entrada.get('date'))
        if fecha is None:
            raise ErrorAPI('date is required and must be a string (YYYY-MM-DD)', 400)

        comment = texto(entrada.get('comment'))
        if len(comment) > 500:
            raise ErrorAPI('comment must be 500 characters or less', 400)

        materia = None
        if entrada.get('subject_id'):
            materia = _materia_de_la_academia(entrada['subject_id'], periodo.academy_id)

        profesor = None
        if date_type == 'clase':
            profesor = _verificar_clase(materia, entrada.get('profile_id'), periodo.academy_id)

        horario = None
        if entrada.get('schedule_id'):
            horario = Horario.objects.vigentes().filter(
                id=uuid_o_none(entrada['schedule_id']), academy_id=periodo.academy_id
            ).first()
            if horario is None:
                raise ErrorAPI('Schedule not found', 404)

        return FechaPeriodo(
            period=periodo,
            date_type=date_type,
            date=fecha,
            subject=materia,
            profile=profesor,
            schedule=horario,
            comment=comment,
        )


class FechaDetalleAPI(APIView):

    def _obtener_fecha(self, pk, date_pk):
        periodo = self.obtener(Periodo.objects.vigentes(), pk, 'Period not found')
        fecha = periodo.fechas.vigentes().filter(id=uuid_o_none(date_pk)).first()
        if fecha is None:
            raise ErrorAPI('Date not found', 404)
        return periodo, fecha

    def patch(self, request, pk, date_pk):
        periodo, fecha = self._obtener_fecha(pk, date_pk)

        if 'date_type' in self.datos:
            if self.datos['date_type'] not in TIPOS_FECHA:
                raise ErrorAPI('Invalid date_type. Must be: inicio, cierre, feriado, recital, clase, or otro', 400)
            fecha.date_type = self.datos['date_type']

        if 'subject_id' in self.datos:
            fecha.subject = None
            if self.datos['subject_id']:
                fecha.subject = _materia_de_la_academia(self.datos['subject_id'], periodo.academy_id)

        if fecha.date_type != 'clase':
            fecha.profile = None
        elif {'date_type', 'subject_id', 'profile_id'} & set(self.datos):
            profile_id = self.datos.get('profile_id', fecha.profile_id)
            fecha.profile = _verificar_clase(fecha.subject, profile_id, periodo.academy_id)

        if 'date' in self.datos:
            nueva = fecha_iso_o_none(self.datos['date'])
            if nueva is None:
                raise ErrorAPI('date is required and must be a string (YYYY-MM-DD)', 400)
            fecha.date = nueva

        if 'schedule_id' in self.datos:
            fecha.schedule = None
            if self.datos['schedule_id']:
                horario = Horario.objects.vigentes().filter(id=uuid_o_none(self.datos['schedule_id'])).first()
                if horario is None:
                    raise ErrorAPI('Schedule not found', 404)
                if horario.academy_id != periodo.academy_id:
                    raise ErrorAPI('Schedule does not belong to the same academy', 403)
                fecha.schedule = horario

        if 'comment' in self.datos:
            comment = texto(self.datos['comment'])
            if len(comment) > 500:
                raise ErrorAPI('comment must be 500 characters or less', 400)
            fecha.comment = comment

        with falla_bd('Failed to update date'):
            fecha.save()
        return JsonResponse({'date': serializar_fecha(fecha)})

    def delete(self, request, pk, date_pk):
        _, fecha = self._obtener_fecha(pk, date_pk)
        with falla_bd('Failed to delete date'):
            fecha.eliminar()
        return JsonResponse({'message': 'Date deleted successfully'})


# === CURSOS ===

def _leer_turnos(turnos):
    """Turnos [(día, inicio, fin)] validados"""
    if not isinstance(turnos, list) or not turnos:
        raise ErrorAPI('turnos debe ser un array con al menos un elemento: { day_of_week, start_time, end_time }', 400)

    resultado = []
    for turno in turnos:
        if not isinstance(turno, dict):
            turno = {}
        dia = turno.get('day_of_week')
        inicio = hora_o_none(turno.get('start_time'))
        fin = hora_o_none(turno.get('end_time'))

        if not entero(dia) or not 1 <= dia <= 7 or inicio is None or fin is None:
            raise ErrorAPI('Cada turno debe tener day_of_week (1-7), start_time y end_time', 400)
        if fin <= inicio:
            raise ErrorAPI(
                f'En el turno {Horario.DAY_NAMES[dia - 1]}: la hora de fin debe ser posterior a la de inicio', 400
            )
        if inicio < HORA_MINIMA or fin > HORA_MAXIMA:
            raise ErrorAPI('Las horas deben estar entre 07:00 y 22:00', 400)

        resultado.append((dia, inicio, fin))
    return resultado


def _mensualidad(datos):
    """mensualidad opcional del curso: null o número >= 0"""
    valor = datos.get('mensualidad')
    if valor is None:
        return None
    monto = monto_o_none(valor)
    if monto is None:
        raise ErrorAPI('mensualidad must be a non-negative number', 400)
    return monto


def _fechas_de_sesiones(session_dates):
    """Fechas YYYY-MM-DD válidas, sin repetir (las demás se ignoran)"""
    fechas = []
    for valor in session_dates:
        fecha = fecha_iso_o_none(valor)
        if fecha is not None and fecha not in fechas:
            fechas.append(fecha)
    return fechas


def _fechas_del_rango(inicio, fin, dias):
    """Días del rango [inicio, fin] cuyo día ISO está en `dias`"""
    fechas = []
    actual = inicio
    while actual <= fin:
        if actual.isoweekday() in dias:
            fechas.append(actual)
        actual += timedelta(days=1)
    return fechas


def _programar_curso(curso, fechas, turnos):
    """
    Crea las sesiones 'clase' y un turno por cada elemento de `turnos`

    Debe correr dentro de una transacción: un solapamiento lanza ErrorAPI
    y deshace lo creado.
    """
    periodo = curso.period
    FechaPeriodo.objects.bulk_create([
        FechaPeriodo(
            period=periodo,
            date_type='clase',
            date=fecha,
            subject_id=curso.subject_id,
            profile_id=curso.profile_id,
        )
        for fecha in fechas
    ])

    nombre = f"{curso.subject.name} {periodo.year}-{periodo.period}"[:100]
    horarios = []
    for dia, inicio, fin in turnos:
        if Horario.conflictos(curso.profile_id, dia, inicio, fin, period_id=periodo.id).exists():
            raise ErrorAPI(
                f"En {periodo.year}-{periodo.period} el profesor ya tiene una clase en "
                f"{Horario.DAY_NAMES[dia - 1]} que se solapa con {inicio:%H:%M}-{fin:%H:%M}",
                400,
            )
        horarios.append(Horario.objects.create(
            academy_id=periodo.academy_id,
            subject_id=curso.subject_id,
            period=periodo,
            name=nombre,
            profile_id=curso.profile_id,
            day_of_week=dia,
            start_time=inicio,
            end_time=fin,
        ))
    return horarios


class CursosAPI(APIView):
    """
    Cursos = profesor + materia + periodo

    POST arma el curso completo: periodo (creado o restaurado), sesiones
    'clase' y turnos semanales.
    """

    roles_por_metodo = {'GET': ROLES_AULA}

    def get(self, request):
        period_id = request.GET.get('period_id')
        profile_id = request.GET.get('profile_id')

        # Un profesor solo lista sus propios cursos
        if self.perfil.role == 'professor' and uuid_o_none(profile_id) != self.perfil.id:
            raise ErrorAPI('Forbidden', 403)

        cursos = self.filtrar_academia(
            Curso.objects.select_related('period', 'subject', 'profile'), 'period__academy'
        ).filter(
            period__deleted_at__isnull=True,
            subject__deleted_at__isnull=True,
            profile__deleted_at__isnull=True,
        )
        if period_id:
            cursos = cursos.filter(period_id=uuid_o_none(period_id))
        if profile_id:
            cursos = cursos.filter(profile_id=uuid_o_none(profile_id))

        with falla_bd('Failed to fetch courses'):
            datos = [serializar_curso(c, contadores=True) for c in cursos]
        return JsonResponse({'courses': datos})

    def post(self, request):
        datos = self.datos
        year = datos.get('year')
        if not entero(year) or not 2000 <= year <= 2100:
            raise ErrorAPI('year es obligatorio y debe ser un número entre 2000 y 2100', 400)
        if datos.get('period') not in PERIODOS:
            raise ErrorAPI('period es obligatorio y debe ser I, II, III, IV, V o VI', 400)
        if not datos.get('subject_id') or not datos.get('profile_id'):
            raise ErrorAPI('subject_id y profile_id son obligatorios', 400)

        academia = self.academia_destino(
            datos, 'academy_id es obligatorio cuando tu cuenta no está vinculada a una academia'
        )

        session_dates = datos.get('session_dates')
        usar_sesiones = isinstance(session_dates, list) and len(session_dates) > 0
        if not usar_sesiones:
            inicio = fecha_iso_o_none(datos.get('start_date'))
            fin = fecha_iso_o_none(datos.get('end_date'))
            if inicio is None or fin is None:
                raise ErrorAPI(
                    'Indica start_date y end_date, o envía session_dates (fechas de sesiones generadas)', 400
                )
            if fin < inicio:
                raise ErrorAPI('end_date debe ser posterior o igual a start_date', 400)

        turnos = _leer_turnos(datos.get('turnos'))
        mensualidad = _mensualidad(datos)

        materia = Materia.objects.vigentes().filter(id=uuid_o_none(datos['subject_id'])).first()
        if materia is None:
            raise ErrorAPI('Materia no encontrada', 404)
        if materia.academy_id != academia.id:
            raise ErrorAPI('La materia no pertenece a la academia del periodo', 400)

        profesor = _profesor_de_la_academia(datos['profile_id'], academia.id)
        _verificar_materia_asignada(profesor, materia)

        if usar_sesiones:
            fechas = _fechas_de_sesiones(session_dates)
        else:
            fechas = _fechas_del_rango(inicio, fin, {dia for dia, _, _ in turnos})

        with transaction.atomic():
            periodo = self._resolver_periodo(academia, year, datos['period'])
            curso, _ = Curso.objects.get_or_create(profile=profesor, subject=materia, period=periodo)
            if mensualidad is not None:
                curso.mensualidad = mensualidad
                curso.save(update_fields=['mensualidad', 'updated_at'])
            horarios = _programar_curso(curso, fechas, turnos)

        logger.info("Curso %s creado con %s sesiones", curso, len(fechas))
        return JsonResponse(
            {
                'message': 'Curso creado correctamente',
                'period_dates_count': len(fechas),
                'schedules': [serializar_horario(h, con_perfil=False) for h in horarios],
            },
            status=201,
        )

    def _resolver_periodo(self, academia, year, period):
        """Periodo vigente, restaurado o nuevo"""
        periodo = Periodo.objects.filter(academy=academia, year=year, period=period).first()
        if periodo is None:
            return Periodo.objects.create(academy=academia, year=year, period=period)
        if periodo.eliminado:
            periodo.restaurar()
        return periodo


class CursoDetalleAPI(APIView):

    def _obtener_curso(self, pk):
        return self.obtener(
            Curso.objects.select_related('period', 'subject', 'profile'),
            pk,
            'Curso no encontrado',
            campo_academia='period__academy',
        )

    def get(self, request, pk):
        curso = self._obtener_curso(pk)
        datos = serializar_curso(curso)
        datos['session_dates'] = [f.date for f in curso.fechas_clase().order_by('date')]
        datos['turnos'] = [
            {
                'id': h.id,
                'day_of_week': h.day_of_week,
                'start_time': h.start_time.strftime('%H:%M'),
                'end_time': h.end_time.strftime('%H:%M'),
            }
            for h in curso.horarios().order_by('day_of_week', 'start_time')
        ]
        return JsonResponse({'course': datos})

    def patch(self, request, pk):
        """
        Reemplaza sesiones y turnos, o solo cambia la mensualidad

        Profesor, materia y periodo no cambian.
        """
        curso = self._obtener_curso(pk)
        reprogramar = 'mensualidad' not in self.datos or bool({'session_dates', 'turnos'} & set(self.datos))

        if reprogramar:
            session_dates = self.datos.get('session_dates')
            if not isinstance(session_dates, list) or not session_dates:
                raise ErrorAPI('session_dates debe ser un array con al menos una fecha (YYYY-MM-DD)', 400)
            turnos = _leer_turnos(self.datos.get('turnos'))
        if 'mensualidad' in self.datos:
            curso.mensualidad = _mensualidad(self.datos)

        with transaction.atomic():
            curso.save()
            if reprogramar:
                curso.fechas_clase().eliminar()
                curso.horarios().eliminar()
                _programar_curso(curso, _fechas_de_sesiones(session_dates), turnos)

        return JsonResponse({'message': 'Curso actualizado'})

    def delete(self, request, pk):
        curso = self._obtener_curso(pk)
        with transaction.atomic():
            curso.fechas_clase().eliminar()
            curso.horarios().eliminar()
            curso.delete()
        return JsonResponse({'message': 'Curso eliminado'})


class SesionesCursoAPI(APIView):
    """GET /api/courses/<id>/sessions - fechas 'clase' del curso por fecha"""

    def get(self, request, pk):
        curso = self.obtener(Curso.objects.select_related('period'), pk, 'Curso no encontrado', 'period__academy')
        with falla_bd('Error al cargar sesiones'):
            sesiones = list(curso.fechas_clase().order_by('date'))
        return JsonResponse({'sessions': [
            {
                'id': s.id,
                'date': s.date,
                'date_type': s.date_type,
                'comment': s.comment or None,
                'profile_id': s.profile_id,
            }
            for s in sesiones
        ]})


# === TURNOS (SCHEDULES) ===

class HorariosAPI(APIView):

    def get(self, request):
        horarios = self.filtrar_academia(Horario.objects.vigentes().select_related('profile'))
        if request.GET.get('profile_id'):
            horarios = horarios.filter(profile_id=uuid_o_none(request.GET['profile_id']))
        if request.GET.get('period_id'):
            horarios = horarios.filter(period_id=uuid_o_none(request.GET['period_id']))

        with falla_bd('Failed to fetch schedules'):
            horarios = list(horarios.order_by('day_of_week', 'start_time'))
        return JsonResponse({'schedules': [serializar_horario(h) for h in horarios]})

    def post(self, request):
        datos = self.datos
        name = texto(datos.get('name'))
        if not name or not datos.get('profile_id'):
            raise ErrorAPI('Missing required fields: name and profile_id are required', 400)

        franjas = self._leer_franjas(datos)
        academia = self.academia_destino(datos)

        profesor = Usuario.objects.vigentes().del_rol('professor').filter(id=uuid_o_none(datos['profile_id'])).first()
        if profesor is None:
            raise ErrorAPI('Invalid professor profile', 400)
        if profesor.academy_id != academia.id:
            raise ErrorAPI('Professor does not belong to this academy', 400)

        materia = self._opcional(Materia, datos.get('subject_id'), academia, 'Subject not found')
        periodo = self._opcional(Periodo, datos.get('period_id'), academia, 'Period not found')

        creados, errores = [], []
        for dia, inicio, fin in franjas:
            if Horario.conflictos(profesor.id, dia, inicio, fin).exists():
                errores.append(
                    f"Schedule conflict for professor on day {dia} ({inicio:%H:%M} - {fin:%H:%M})"
                )
                continue
            with falla_bd('Failed to create schedules'):
                creados.append(Horario.objects.create(
                    academy=academia,
                    subject=materia,
                    period=periodo,
                    name=name[:100],
                    profile=profesor,
                    day_of_week=dia,
                    start_time=inicio,
                    end_time=fin,
                ))

        if errores and not creados:
            raise ErrorAPI('Failed to create schedules', 400, errores)

        horarios = [serializar_horario(h) for h in creados]
        if errores:
            return JsonResponse(
                {
                    'schedules': horarios,
                    'warnings': errores,
                    'message': 'Some schedules were created, but some had conflicts',
                },
                status=207,
            )
        return JsonResponse({'schedules': horarios, 'message': 'Schedules created successfully'}, status=201)

    def _leer_franjas(self, datos):
        """time_slots, o el formato days_of_week + start_time + end_time"""
        time_slots = datos.get('time_slots')
        if time_slots is not None:
            if not isinstance(time_slots, list) or not time_slots:
                raise ErrorAPI('time_slots must be a non-empty array', 400)
            franjas = []
            for slot in time_slots:
                if not isinstance(slot, dict):
                    slot = {}
                dia = slot.get('day_of_week')
                inicio = hora_o_none(slot.get('start_time'))
                fin = hora_o_none(slot.get('end_time'))
                if not entero(dia) or not 1 <= dia <= 7 or inicio is None or fin is None:
                    raise ErrorAPI(
                        'Invalid time slot format. Each slot must have day_of_week (1-7), start_time, and end_time',
                        400,
                    )
                if fin <= inicio:
                    raise ErrorAPI(f'end_time must be after start_time for slot on day {dia}', 400)
                franjas.append((dia, inicio, fin))
            return franjas

        dias = datos.get('days_of_week')
        inicio = hora_o_none(datos.get('start_time'))
        fin = hora_o_none(datos.get('end_time'))
        if dias is None or inicio is None or fin is None:
            raise ErrorAPI(
                'Must provide either time_slots array or days_of_week with start_time and end_time', 400
            )
        if not isinstance(dias, list) or not dias or not all(entero(d) and 1 <= d <= 7 for d in dias):
            raise ErrorAPI('days_of_week must be a non-empty array', 400)
        if fin <= inicio:
            raise ErrorAPI('end_time must be after start_time', 400)
        return [(dia, inicio, fin) for dia in dias]

    def _opcional(self, modelo, valor, academia, mensaje):
        if not valor:
            return None
        objeto = modelo.objects.vigentes().filter(id=uuid_o_none(valor), academy=academia).first()
        if objeto is None:
            raise ErrorAPI(mensaje, 404)
        return objeto


class HorarioDetalleAPI(APIView):

    def get(self, request, pk):
        horario = self.obtener(Horario.objects.vigentes().select_related('profile'), pk, 'Schedule not found')
        return JsonResponse({'schedule': serializar_horario(horario)})

    def patch(self, request, pk):
        horario = self.obtener(Horario.objects.vigentes().select_related('profile'), pk, 'Schedule not found')
        datos = self.datos

        if 'name' in datos:
            name = texto(datos['name'])
            if not name:
                raise ErrorAPI('Name cannot be empty', 400)
            horario.name = name[:100]

        if datos.get('profile_id'):
            profesor = Usuario.objects.vigentes().del_rol('professor').filter(
                id=uuid_o_none(datos['profile_id'])
            ).first()
            if profesor is None:
                raise ErrorAPI('Invalid professor profile', 400)
            if profesor.academy_id != horario.academy_id:
                raise ErrorAPI('Professor does not belong to this academy', 400)
            horario.profile = profesor

        if 'day_of_week' in datos:
            if not entero(datos['day_of_week']) or not 1 <= datos['day_of_week'] <= 7:
                raise ErrorAPI('day_of_week must be between 1 and 7', 400)
            horario.day_of_week = datos['day_of_week']

        for campo in ('start_time', 'end_time'):
            if campo in datos:
                hora = hora_o_none(datos[campo])
                if hora is None:
                    raise ErrorAPI(f'Invalid {campo}', 400)
                setattr(horario, campo, hora)

        if horario.end_time <= horario.start_time:
            raise ErrorAPI('end_time must be after start_time', 400)

        conflicto = Horario.conflictos(
            horario.profile_id, horario.day_of_week, horario.start_time, horario.end_time,
            excluir_id=horario.id,
        ).first()
        if conflicto is not None:
            raise ErrorAPI('Schedule conflict detected', 400, f"Conflicto de horario: {conflicto.name}")

        with falla_bd('Failed to update schedule'):
            horario.save()
        return JsonResponse({'schedule': serializar_horario(horario), 'message': 'Schedule updated successfully'})

    def delete(self, request, pk):
        horario = self.obtener(Horario.objects.vigentes(), pk, 'Schedule not found')
        with falla_bd('Failed to delete schedule'):
            horario.eliminar()
        return JsonResponse({'message': 'Schedule deleted successfully'})


# === ESTUDIANTES ===

def _campos_estudiante(datos):
    campos = {
        'first_name': texto(datos.get('first_name')),
        'last_name': texto(datos.get('last_name')),
    }
    if not campos['first_name'] or not campos['last_name']:
        raise ErrorAPI('First name and last name are required', 400)

    if 'date_of_birth' in datos:
        campos['date_of_birth'] = fecha_iso_o_none(datos.get('date_of_birth'))
    if 'additional_info' in datos:
        campos['additional_info'] = texto(datos.get('additional_info'))
    if 'enrollment_status' in datos:
        estados = [e for e, _ in Estudiante.ENROLLMENT_STATUS_CHOICES]
        if datos['enrollment_status'] not in estados:
            raise ErrorAPI('Invalid enrollment_status. Must be: inscrito, retirado, or graduado', 400)
        campos['enrollment_status'] = datos['enrollment_status']
    return campos


class EstudiantesAPI(APIView):
    roles_por_metodo = {'GET': ROLES_AULA}

    def get(self, request):
        estudiantes = self.filtrar_academia(Estudiante.objects.vigentes())

        # El profesor ve a quienes están matriculados en sus cursos
        if self.perfil.role == 'professor':
            estudiantes = estudiantes.filter(
                matriculas__profile=self.perfil, matriculas__deleted_at__isnull=True
            ).distinct()

        with falla_bd('Failed to fetch students'):
            estudiantes = list(estudiantes.order_by('first_name', 'last_name'))
        return JsonResponse({'students': [serializar_estudiante(e) for e in estudiantes]})

    def post(self, request):
        campos = _campos_estudiante(self.datos)
        academia = self.academia_destino(self.datos)

        encargado = None
        if self.datos.get('guardian_id'):
            encargado = Usuario.objects.vigentes().del_rol('guardian').filter(
                id=uuid_o_none(self.datos['guardian_id'])
            ).first()
            if encargado is None:
                raise ErrorAPI('Guardian not found', 404)
            if encargado.academy_id != academia.id:
                raise ErrorAPI('Guardian does not belong to this academy', 403)

        with transaction.atomic():
            with falla_bd('Failed to create student'):
                estudiante = Estudiante.objects.create(academy=academia, **campos)
                if encargado is not None:
                    EncargadoEstudiante.objects.create(
                        guardian=encargado,
                        student=estudiante,
                        academy=academia,
                        relationship=texto(self.datos.get('relationship'))[:50],
                    )

        return JsonResponse(
            {
                'student': serializar_estudiante(estudiante, con_encargado=True),
                'message': 'Student created successfully',
            },
            status=201,
        )


class EstudianteDetalleAPI(APIView):

    def get(self, request, pk):
        estudiante = self.obtener(Estudiante.objects.vigentes(), pk, 'Student not found')
        return JsonResponse({'student': serializar_estudiante(estudiante, con_encargado=True)})

    def patch(self, request, pk):
        campos = _campos_estudiante(self.datos)
        estudiante = self.obtener(Estudiante.objects.vigentes(), pk, 'Student not found')

        for campo, valor in campos.items():
            setattr(estudiante, campo, valor)
        with falla_bd('Failed to update student'):
            estudiante.save()
        return JsonResponse({
            'student': serializar_estudiante(estudiante, con_encargado=True),
            'message': 'Student updated successfully',
        })

    def delete(self, request, pk):
        estudiante = self.obtener(Estudiante.objects.vigentes(), pk, 'Student not found')
        with falla_bd('Failed to delete student'):
            estudiante.eliminar()
        return JsonResponse({'message': 'Student deleted successfully'})


# === MATRÍCULAS (COURSE REGISTRATIONS) ===

def _matriculas_vigentes():
    """Matrículas vigentes cuyo estudiante, materia y periodo siguen vigentes"""
    return Matricula.objects.vigentes().filter(
        student__deleted_at__isnull=True,
        subject__deleted_at__isnull=True,
        period__deleted_at__isnull=True,
    ).select_related('student', 'subject', 'period', 'profile')


class MatriculasAPI(APIView):
    roles_por_metodo = {'GET': ROLES_AULA}

    def get(self, request):
        matriculas = self.filtrar_academia(_matriculas_vigentes())

        for filtro in ('student_id', 'period_id', 'subject_id'):
            if request.GET.get(filtro):
                matriculas = matriculas.filter(**{filtro: uuid_o_none(request.GET[filtro])})

        course_id = request.GET.get('course_id')
        if course_id:
            curso = Curso.objects.filter(id=uuid_o_none(course_id)).first()
            if curso is None:
                return JsonResponse({'courseRegistrations': []})
            if self.perfil.role == 'professor' and curso.profile_id != self.perfil.id:
                raise ErrorAPI('Forbidden', 403)
            matriculas = matriculas.filter(
                profile_id=curso.profile_id, subject_id=curso.subject_id, period_id=curso.period_id
            )
        elif self.perfil.role == 'professor':
            matriculas = matriculas.filter(profile=self.perfil)

        matriculas = matriculas.annotate(
            num_canciones=Count('canciones_asignadas', filter=Q(canciones_asignadas__song__deleted_at__isnull=True))
        ).order_by('-created_at')

        with falla_bd('Failed to fetch course registrations'):
            datos = [serializar_matricula(m, songs_count=m.num_canciones) for m in matriculas]
        return JsonResponse({'courseRegistrations': datos})

    def post(self, request):
        datos = self.datos
        if not datos.get('student_id') or not datos.get('subject_id') or not datos.get('period_id'):
            raise ErrorAPI('student_id, subject_id and period_id are required', 400)
        if not datos.get('profile_id'):
            raise ErrorAPI('profile_id (profesor del curso) es obligatorio', 400)

        estudiante = Estudiante.objects.vigentes().filter(id=uuid_o_none(datos['student_id'])).first()
        if estudiante is None:
            raise ErrorAPI('Student not found or inactive', 404)
        if not self.perfil.es_super_admin and estudiante.academy_id != self.perfil.academy_id:
            raise ErrorAPI('Student does not belong to this academy', 400)
        if estudiante.enrollment_status == 'retirado':
            raise ErrorAPI('Student is withdrawn', 400)
        academy_id = estudiante.academy_id

        materia = Materia.objects.vigentes().filter(id=uuid_o_none(datos['subject_id'])).first()
        if materia is None:
            raise ErrorAPI('Materia (clase) no encontrada', 404)
        if materia.academy_id != academy_id:
            raise ErrorAPI('La materia no pertenece a esta academia', 400)

        periodo = Periodo.objects.vigentes().filter(id=uuid_o_none(datos['period_id'])).first()
        if periodo is None:
            raise ErrorAPI('Period not found', 404)
        if periodo.academy_id != academy_id:
            raise ErrorAPI('Period does not belong to this academy', 400)

        profile_id = uuid_o_none(datos['profile_id'])
        if not Curso.objects.filter(profile_id=profile_id, subject=materia, period=periodo).exists():
            raise ErrorAPI('El curso (profesor, materia, periodo) no existe', 400)

        duplicada = Matricula.objects.vigentes().filter(
            student=estudiante, subject=materia, period=periodo, profile_id=profile_id
        )
        if duplicada.exists():
            raise ErrorAPI('Este estudiante ya está matriculado en este curso', 400)

        enrollment_date = fecha_iso_o_none(datos.get('enrollment_date')) or timezone.localdate()
        try:
            with transaction.atomic():
                matricula = Matricula.objects.create(
                    student=estudiante,
                    subject=materia,
                    period=periodo,
                    profile_id=profile_id,
                    academy_id=academy_id,
                    enrollment_date=enrollment_date,
                    notes=texto(datos.get('notes')),
                )
                canciones = Cancion.objects.vigentes().filter(
                    id__in=lista_uuids(datos.get('song_ids')), academy_id=academy_id
                )
                MatriculaCancion.objects.bulk_create([
                    MatriculaCancion(course_registration=matricula, song=c) for c in canciones
                ])
        except IntegrityError:
            raise ErrorAPI('Este estudiante ya está matriculado en este curso.', 400)

        logger.info("Matrícula de %s en %s %s", estudiante, materia, periodo)
        return JsonResponse({'courseRegistration': serializar_matricula(matricula)}, status=201)


class MatriculaDetalleAPI(APIView):
    roles_por_metodo = {'GET': ROLES_AULA}

    def _obtener_matricula(self, pk):
        matricula = self.obtener(_matriculas_vigentes(), pk, 'Course registration not found')
        if not CompasPermissions.puede_gestionar_matricula(self.perfil, matricula):
            raise ErrorAPI('Forbidden', 403)
        return matricula

    def get(self, request, pk):
        matricula = self._obtener_matricula(pk)
        return JsonResponse({'courseRegistration': serializar_matricula(matricula, con_canciones=True)})

    def patch(self, request, pk):
        matricula = self._obtener_matricula(pk)
        cambio = False

        if 'status' in self.datos:
            if self.datos['status'] not in [s for s, _ in Matricula.STATUS_CHOICES]:
                raise ErrorAPI('Invalid status', 400)
            matricula.status = self.datos['status']
            cambio = True
        if 'notes' in self.datos:
            matricula.notes = texto(self.datos['notes'])
            cambio = True

        if not cambio:
            raise ErrorAPI('No valid fields to update', 400)

        with falla_bd('Failed to update'):
            matricula.save()
        return JsonResponse({'courseRegistration': serializar_matricula(matricula)})

    def delete(self, request, pk):
        matricula = self._obtener_matricula(pk)
        with falla_bd('Failed to delete'):
            matricula.eliminar()
        return JsonResponse({'message': 'Course registration deleted'})


class MatriculaCancionesAPI(APIView):
    roles = ROLES_AULA

    def _obtener_matricula(self, pk):
        matricula = self.obtener(Matricula.objects.vigentes(), pk, 'Course registration not found')
        if not CompasPermissions.puede_gestionar_matricula(self.perfil, matricula):
            raise ErrorAPI('Forbidden', 403)
        return matricula

    def _canciones(self, matricula):
        asignadas = matricula.canciones_asignadas.select_related('song').filter(song__deleted_at__isnull=True)
        return [serializar_cancion(a.song) for a in asignadas]

    def get(self, request, pk):
        matricula = self._obtener_matricula(pk)
        return JsonResponse({'songs': self._canciones(matricula)})

    def post(self, request, pk):
        matricula = self._obtener_matricula(pk)

        song_ids = self.datos.get('song_ids')
        if not isinstance(song_ids, list) or not song_ids:
            raise ErrorAPI('song_ids array is required', 400)

        ya_asignadas = set(matricula.canciones_asignadas.values_list('song_id', flat=True))
        canciones = Cancion.objects.vigentes().filter(
            id__in=lista_uuids(song_ids), academy_id=matricula.academy_id
        ).exclude(id__in=ya_asignadas)

        with falla_bd('Failed to add songs'):
            MatriculaCancion.objects.bulk_create([
                MatriculaCancion(course_registration=matricula, song=c) for c in canciones
            ])
        return JsonResponse({'songs': self._canciones(matricula)})


class MatriculaCancionDetalleAPI(APIView):

    def delete(self, request, pk, song_pk):
        matricula = self.obtener(Matricula.objects.vigentes(), pk, 'Course registration not found')
        with falla_bd('Failed to remove song'):
            matricula.canciones_asignadas.filter(song_id=uuid_o_none(song_pk)).delete()
        return JsonResponse({'message': 'Song removed'})
